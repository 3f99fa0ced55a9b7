"""数据库管理器 —— 统一门面（Facade）。

SalonDatabase 是 database 模块的统一入口，组合了存储介质、变更广播、
表格镜像、所有业务表以及同步编排器：

1. **表访问**：通过 ``db.staff``、``db.customers`` 等属性直接访问
   ``TableStore``，读写整表。

2. **便捷方法**：通知创建（自动去重）、未读数统计、按名称取表等。

设计目标：
- 持久化介质可替换（SQLite 文件 / 内存字典）
- 镜像未配置时完全离线运行
"""
from typing import Any, Dict, List, Optional

from loguru import logger

from .connection import DatabaseConnection
from .events import ChangeNotifier
from .mirror import RemoteMirrorClient
from .schemas import TABLE_SPECS, NotificationType, generate_id, utc_now_iso
from .storage import StorageAdapter, SqlStorageAdapter
from .sync import SyncOrchestrator
from .table_store import Record, TableStore


class SalonDatabase:
    """沙龙数据管理器 —— 统一门面。

    Attributes:
        conn: 数据库连接管理器（使用自定义存储适配器时为 None）。
        storage: 存储适配器。
        notifier: 变更广播器。
        mirror: 表格镜像客户端。
        sync: 同步编排器。
        staff, categories, services, combos, inventory, packages, customers,
        leads, appointments, sales, notifications, coupon_templates,
        attendance: 各业务表。

    Example::

        db = SalonDatabase("sqlite:///data/salon.db")
        db.create_tables()

        db.sync.pull_once()
        customers = db.customers.get_all()
    """

    staff: TableStore
    categories: TableStore
    services: TableStore
    combos: TableStore
    inventory: TableStore
    packages: TableStore
    customers: TableStore
    leads: TableStore
    appointments: TableStore
    sales: TableStore
    notifications: TableStore
    coupon_templates: TableStore
    attendance: TableStore

    def __init__(self, database_url: Optional[str] = None,
                 storage: Optional[StorageAdapter] = None,
                 mirror: Optional[RemoteMirrorClient] = None,
                 push_in_background: bool = True) -> None:
        """初始化数据管理器。

        Args:
            database_url: 数据库连接URL。如果为None则使用settings配置。
                        传入 storage 时忽略。
            storage: 自定义存储适配器（如 ``MemoryStorageAdapter``）。
            mirror: 自定义镜像客户端，默认按存储中的地址/settings 创建。
            push_in_background: 镜像推送是否在后台线程执行。
        """
        # 基础设施层
        if storage is None:
            self.conn: Optional[DatabaseConnection] = DatabaseConnection(database_url)
            self.conn.create_tables()
            self.storage: StorageAdapter = SqlStorageAdapter(self.conn)
        else:
            self.conn = None
            self.storage = storage

        self.notifier = ChangeNotifier()
        self.mirror = mirror or RemoteMirrorClient(storage=self.storage)

        # 业务表
        self._tables: Dict[str, TableStore] = {}
        for spec in TABLE_SPECS:
            store = TableStore(
                spec.attr, spec.storage_key(), spec.tab,
                self.storage, self.notifier, self.mirror,
                push_in_background=push_in_background,
            )
            self._tables[spec.attr] = store
            setattr(self, spec.attr, store)

        # 同步编排
        self.sync = SyncOrchestrator(
            list(self._tables.values()), self.mirror, self.notifier
        )

    # ================================================================
    # 基础设施方法
    # ================================================================

    def create_tables(self) -> None:
        """创建存储表（幂等操作，内存存储时无操作）。"""
        if self.conn is not None:
            self.conn.create_tables()

    @property
    def database_url(self) -> Optional[str]:
        """数据库连接URL（内存存储时为 None）。"""
        return self.conn.database_url if self.conn else None

    @property
    def tables(self) -> Dict[str, TableStore]:
        """所有业务表（按属性名）。"""
        return dict(self._tables)

    def get_table(self, name: str) -> Optional[TableStore]:
        """按属性名或工作表名获取业务表。

        Args:
            name: 如 ``coupon_templates`` 或 ``CouponTemplates``。
        """
        if name in self._tables:
            return self._tables[name]
        for store in self._tables.values():
            if store.tab == name:
                return store
        return None

    def close(self) -> None:
        """关闭数据库连接，释放所有资源。"""
        if self.conn is not None:
            self.conn.close()

    # ================================================================
    # 通知
    # ================================================================

    def create_notification(self, notification_type: NotificationType,
                            title: str, message: str,
                            related_id: Optional[str] = None,
                            dedupe: bool = False) -> Optional[Record]:
        """创建通知。

        dedupe 为真且已存在相同类型、相同关联ID的未读通知时跳过
        （库存预警、会员到期提醒使用）。

        Returns:
            新建的通知记录；被去重跳过时返回 None。
        """
        notification_type = NotificationType(notification_type)
        if dedupe:
            for existing in self.notifications.get_all():
                if (existing.get("type") == notification_type.value
                        and existing.get("relatedId") == related_id
                        and not existing.get("read")):
                    logger.debug(f"跳过重复通知: {notification_type.value} {related_id}")
                    return None

        record: Dict[str, Any] = {
            "id": generate_id(),
            "type": notification_type.value,
            "title": title,
            "message": message,
            "date": utc_now_iso(),
            "read": False,
        }
        if related_id is not None:
            record["relatedId"] = related_id
        self.notifications.add(record)
        return record

    def unread_notification_count(self) -> int:
        """未读通知数量（角标显示）。"""
        return sum(1 for n in self.notifications.get_all() if not n.get("read"))

    def list_notifications(self) -> List[Record]:
        """按时间倒序返回全部通知。"""
        return sorted(
            self.notifications.get_all(),
            key=lambda n: n.get("date") or "",
            reverse=True,
        )
