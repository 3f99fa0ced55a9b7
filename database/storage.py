"""存储适配器 —— 持久化介质的统一接口。

业务表只依赖 ``StorageAdapter`` 的 get/put 接口，持久化介质可以替换：

- ``SqlStorageAdapter``：基于 SQLAlchemy 的键值表（默认 SQLite 文件）
- ``MemoryStorageAdapter``：进程内字典，适合测试和临时运行

适配器只负责字符串读写；JSON 编解码和容错由 ``TableStore`` 处理。
"""
import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from .connection import DatabaseConnection
from .models import StoredEntry


class StorageAdapter(ABC):
    """存储适配器抽象基类"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """读取键对应的原始字符串，不存在返回 None"""
        pass

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """写入（覆盖）键对应的原始字符串"""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """删除键，不存在时忽略"""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """列出所有已存储的键"""
        pass

    def get_table(self, key: str) -> Optional[Any]:
        """读取并 JSON 解码。

        Raises:
            ValueError: 存储内容不是合法 JSON。
        """
        raw = self.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def put_table(self, key: str, records: List[Dict[str, Any]]) -> None:
        """JSON 编码后整体写入"""
        self.put(key, json.dumps(records, ensure_ascii=False, default=str))


class SqlStorageAdapter(StorageAdapter):
    """基于 SQLAlchemy 键值表的存储适配器。

    Attributes:
        conn: 数据库连接管理器。
    """

    def __init__(self, conn: DatabaseConnection) -> None:
        self.conn = conn

    def get(self, key: str) -> Optional[str]:
        with self.conn.get_session() as session:
            entry = session.get(StoredEntry, key)
            return entry.value if entry else None

    def put(self, key: str, value: str) -> None:
        with self.conn.get_session() as session:
            entry = session.get(StoredEntry, key)
            if entry is None:
                session.add(StoredEntry(key=key, value=value))
            else:
                entry.value = value
                entry.updated_at = datetime.utcnow()
            session.commit()

    def delete(self, key: str) -> None:
        with self.conn.get_session() as session:
            entry = session.get(StoredEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()

    def keys(self) -> List[str]:
        with self.conn.get_session() as session:
            return [row[0] for row in session.query(StoredEntry.key).all()]


class MemoryStorageAdapter(StorageAdapter):
    """进程内字典存储，数据随进程结束而丢失。"""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())
