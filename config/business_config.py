"""
业务配置接口 - 支持可替换的业务配置

新门店可以实现自己的业务配置，替换默认配置。
"""
from abc import ABC, abstractmethod
from typing import List, Dict, Any


class BusinessConfig(ABC):
    """业务配置抽象基类"""

    @abstractmethod
    def get_default_categories(self) -> List[Dict[str, Any]]:
        """获取初始化时写入的服务分类"""
        pass

    @abstractmethod
    def get_membership_discount_percent(self) -> int:
        """获取会员预约服务时的默认折扣（百分比）"""
        pass

    @abstractmethod
    def get_standard_shift_hours(self) -> float:
        """获取标准班次时长（小时），超出部分计为加班"""
        pass

    @abstractmethod
    def get_salon_profile(self) -> Dict[str, str]:
        """获取门店信息（发票抬头使用）"""
        pass

    @abstractmethod
    def get_assistant_system_prompt(self) -> str:
        """获取 AI 助手系统提示词"""
        pass


class SalonConfig(BusinessConfig):
    """美发美容沙龙业务配置"""

    def get_default_categories(self) -> List[Dict[str, Any]]:
        return [
            {"name": "Hair", "description": "Cuts, colour and styling"},
            {"name": "Skin", "description": "Facials and clean-ups"},
            {"name": "Nails", "description": "Manicure and pedicure"},
            {"name": "Spa", "description": "Massage and body treatments"},
            {"name": "Bridal", "description": "Bridal and party makeup"},
        ]

    def get_membership_discount_percent(self) -> int:
        return 10

    def get_standard_shift_hours(self) -> float:
        return 9.0

    def get_salon_profile(self) -> Dict[str, str]:
        return {
            "name": "The London Salon",
            "address": "123 High Street",
            "phone": "+91 98765 43210",
        }

    def get_assistant_system_prompt(self) -> str:
        return """You are an expert Salon Manager AI Assistant for 'The London Salon'.
Your tone is professional, helpful, and creative.

Context from the current salon state:
{context}

Provide a concise and actionable response. Use Markdown for formatting.
"""


# 全局业务配置实例（可以在 app.py 中替换）
business_config: BusinessConfig = SalonConfig()
