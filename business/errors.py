"""业务异常"""


class BusinessRuleError(ValueError):
    """用户输入校验失败。

    在任何状态修改之前抛出，调用方（Web 层）将其转换为提示信息。
    """
