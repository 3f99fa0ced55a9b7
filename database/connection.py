"""本地存储连接与基础设施管理。

本模块负责本地持久化介质的底层基础设施，包括：
- 数据库引擎创建（默认 SQLite 文件）
- 会话（Session）管理
- 存储表创建

本模块不包含任何业务逻辑，仅提供数据库基础操作。
"""
import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session

from .models import Base
from config.settings import settings


class DatabaseConnection:
    """数据库连接管理器。

    负责数据库引擎的创建和会话管理。SQLite 文件所在目录不存在时
    会自动创建。

    Attributes:
        database_url: 数据库连接URL。
        engine: SQLAlchemy引擎对象。
        SessionLocal: 会话工厂。

    Example:
        ```python
        # SQLite 文件
        conn = DatabaseConnection("sqlite:///data/salon.db")

        # 内存数据库（测试）
        conn = DatabaseConnection("sqlite://")

        # 使用默认配置
        conn = DatabaseConnection()
        ```
    """

    def __init__(self, database_url: Optional[str] = None) -> None:
        """初始化数据库连接。

        Args:
            database_url: 数据库连接URL，如果为None则使用settings中的配置。
        """
        self.database_url: str = database_url or settings.database_url

        if self.database_url.startswith("sqlite"):
            self._ensure_sqlite_dir(self.database_url)
            self.engine = create_engine(
                self.database_url,
                echo=False,
                connect_args={"check_same_thread": False}
            )
        else:
            self.engine = create_engine(self.database_url, echo=False)
        self.SessionLocal = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False
        )

    @staticmethod
    def _ensure_sqlite_dir(database_url: str) -> None:
        db_path = make_url(database_url).database
        if db_path and db_path != ":memory:":
            directory = os.path.dirname(os.path.abspath(db_path))
            os.makedirs(directory, exist_ok=True)

    def create_tables(self) -> None:
        """创建所有存储表。

        如果表已存在则不会重复创建（幂等操作）。
        """
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """获取数据库会话。"""
        return self.SessionLocal()

    def close(self) -> None:
        """关闭数据库连接，释放引擎资源。

        释放连接池中的所有连接。调用后不应再使用此连接实例。
        """
        if self.engine is not None:
            self.engine.dispose()
