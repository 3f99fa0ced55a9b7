"""全局配置管理

所有用户可配置项均通过 .env 文件设置，运行时自动加载到此处。

使用方式：
    1. 运行 python scripts/setup_env.py 生成 .env 文件
    2. 或手动创建 .env 文件（参考 .env.example）
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用配置 - 所有字段均可通过 .env 或环境变量覆盖"""

    # ========== 本地存储 ==========
    database_url: str = "sqlite:///data/salon.db"
    storage_key_version: str = "v6"

    # ========== 表格镜像（Google Apps Script Web App） ==========
    mirror_script_url: str = ""
    mirror_view_url: str = ""
    mirror_timeout: Optional[float] = None  # None 表示不设超时

    # ========== 业务时区 ==========
    timezone: str = "Asia/Kolkata"

    # ========== AI 助手（OpenAI 兼容接口） ==========
    assistant_api_key: str = ""
    assistant_model: str = "gemini-2.5-flash"
    assistant_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"

    # ========== Web 平台配置 ==========
    web_host: str = "0.0.0.0"
    web_port: int = 8080
    web_username: str = "admin"
    web_password: str = "admin123"

    # ========== 定时检查 ==========
    notification_poll_seconds: int = 5
    membership_alert_days: int = 7

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# 全局配置实例
settings = Settings()
