"""LLM Prompt 定义"""


def get_system_prompt(context: str = "", config=None):
    """获取 AI 助手系统提示词

    Args:
        context: 当前门店状态摘要，为空时使用占位说明
        config: 业务配置实例，如果为 None 则使用默认的 business_config
    """
    from config.business_config import business_config
    template = (config or business_config).get_assistant_system_prompt()
    return template.format(context=context or "No specific context provided.")
