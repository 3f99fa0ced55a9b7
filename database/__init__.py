"""数据模块 - 本地表存储与表格镜像同步

核心组件：
- SalonDatabase: 统一门面（所有业务表 + 同步）
- TableStore: 单张业务表的读写契约
- ChangeNotifier: 表写入后的变更广播
- RemoteMirrorClient: 表格镜像客户端
- SyncOrchestrator: 镜像拉取/推送编排
- StorageAdapter: 持久化介质接口（SQLite / 内存）
"""
from database.events import ChangeNotifier
from database.manager import SalonDatabase
from database.mirror import MirrorResult, RemoteMirrorClient
from database.storage import MemoryStorageAdapter, SqlStorageAdapter, StorageAdapter
from database.sync import SyncOrchestrator, SyncResult
from database.table_store import TableStore

__all__ = [
    "SalonDatabase",
    "TableStore",
    "ChangeNotifier",
    "RemoteMirrorClient",
    "MirrorResult",
    "SyncOrchestrator",
    "SyncResult",
    "StorageAdapter",
    "SqlStorageAdapter",
    "MemoryStorageAdapter",
]
