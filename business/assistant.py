"""AI 经营助手 —— 组装门店状态摘要并调用大模型生成回复。

通过 OpenAI 兼容接口调用（默认指向 Gemini 的 OpenAI 兼容端点）。
未配置 API Key 或调用失败时返回固定提示，从不抛异常。
"""
from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from openai import OpenAI

from config.prompts import get_system_prompt
from config.settings import settings
from database import SalonDatabase
from .reports import low_stock

NOT_CONFIGURED_MESSAGE = (
    "AI service is not configured. Please ensure ASSISTANT_API_KEY is set "
    "in the environment variables."
)
EMPTY_RESPONSE_MESSAGE = "I couldn't generate a response at this time."
UNAVAILABLE_MESSAGE = (
    "I'm having trouble connecting to the AI service right now. "
    "Please try again later."
)


def build_context(db: SalonDatabase, today: Optional[str] = None) -> str:
    """门店状态摘要：低库存商品、今日销售单数"""
    today = today or datetime.now(timezone.utc).date().isoformat()
    low = ", ".join(p.get("name", "") for p in low_stock(db))
    sales_today = sum(
        1 for s in db.sales.get_all() if (s.get("date") or "").startswith(today)
    )
    return (
        "Current Salon Status:\n"
        f"- Low Stock Items: {low or 'None'}\n"
        f"- Sales Count Today: {sales_today}"
    )


class SalonAssistant:
    """AI 助手

    Example::

        assistant = SalonAssistant()
        reply = assistant.generate_text("How do I boost sales this week?",
                                        build_context(db))
    """

    def __init__(self, api_key: Optional[str] = None,
                 model: Optional[str] = None,
                 base_url: Optional[str] = None,
                 client: Optional[OpenAI] = None) -> None:
        self.api_key = api_key if api_key is not None else settings.assistant_api_key
        self.model = model or settings.assistant_model
        self.base_url = base_url or settings.assistant_base_url
        self._client = client
        self._owns_client = client is None

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    def generate_text(self, prompt: str, context: str = "") -> str:
        """生成回复文本"""
        if not self.is_configured:
            return NOT_CONFIGURED_MESSAGE

        try:
            completion = self._get_client().chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": get_system_prompt(context)},
                    {"role": "user", "content": prompt},
                ],
            )
            content = completion.choices[0].message.content
        except Exception as e:
            logger.error(f"AI 助手调用失败: {e}")
            # 自建的客户端可能处于异常状态，下次重新创建；外部注入的保留
            if self._owns_client:
                self._client = None
            return UNAVAILABLE_MESSAGE

        return content or EMPTY_RESPONSE_MESSAGE
