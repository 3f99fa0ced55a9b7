"""SQLAlchemy ORM 模型定义。

本地持久化介质是一个简单的键值表：每张业务表以 JSON 数组的形式
存放在一行里，键名带版本号（如 ``salon_customers_v6``）。
镜像地址等少量设置项也存放在同一张表中。
"""
from datetime import datetime

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import declarative_base

# SQLAlchemy declarative base，所有模型都继承自此类
Base = declarative_base()

# 允许使用旧式类型注解
Base.__allow_unmapped__ = True


class StoredEntry(Base):
    """键值存储表模型。

    Attributes:
        key: 主键，存储键名，最大长度100字符。
        value: 存储值（JSON 文本）。
        updated_at: 最后写入时间，每次写入自动更新为当前UTC时间。
    """
    __tablename__ = "stored_entries"

    key: str = Column(String(100), primary_key=True)
    value: str = Column(Text, nullable=False)
    updated_at: datetime = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
