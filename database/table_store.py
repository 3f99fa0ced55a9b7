"""表存储 —— 单张业务表的统一读写契约。

每个 ``TableStore`` 实例管理一种实体（员工、顾客、预约……）的完整集合：

- ``get_all()``：从本地介质读取整表，读取失败回退为空表，从不抛异常
- ``save()``：整表覆盖写入 → 触发变更广播 → 后台推送到表格镜像
- ``add()``：插入到表头后整表保存
- ``override_local()``：仅写本地，不推送（同步拉取时使用，避免回写）

写入语义是整表级别的"最后写入者胜出"，没有加锁、版本号或合并。
"""
import copy
import threading
from typing import Any, Dict, List, Optional

from loguru import logger

from .events import ChangeNotifier
from .mirror import RemoteMirrorClient
from .storage import StorageAdapter

Record = Dict[str, Any]


class TableStore:
    """单张业务表。

    Attributes:
        name: 表名（``SalonDatabase`` 上的属性名）。
        storage_key: 本地存储键。
        tab: 远端表格中的工作表名。
        push_in_background: 镜像推送是否在后台线程执行；为 False 时同步执行（测试用）。

    Example::

        customers = TableStore("customers", "salon_customers_v6", "Customers",
                               storage, notifier, mirror)
        customers.add({"id": generate_id(), "name": "Asha", "walletBalance": 0})
        records = customers.get_all()
    """

    def __init__(self, name: str, storage_key: str, tab: str,
                 storage: StorageAdapter,
                 notifier: ChangeNotifier,
                 mirror: Optional[RemoteMirrorClient] = None,
                 initial: Optional[List[Record]] = None,
                 push_in_background: bool = True) -> None:
        self.name = name
        self.storage_key = storage_key
        self.tab = tab
        self._storage = storage
        self._notifier = notifier
        self._mirror = mirror
        self._initial: List[Record] = initial or []
        self.push_in_background = push_in_background

    # ================================================================
    # 基本契约
    # ================================================================

    def get_all(self) -> List[Record]:
        """读取整表。

        本地没有存储值时，用初始数据（默认空表）初始化介质并返回。
        解码失败或介质异常时记录日志并返回初始数据的副本。
        """
        try:
            stored = self._storage.get_table(self.storage_key)
        except Exception as e:
            logger.error(f"本地存储读取失败 {self.storage_key}: {e}")
            return copy.deepcopy(self._initial)

        if stored is None:
            try:
                self._storage.put_table(self.storage_key, self._initial)
            except Exception as e:
                logger.warning(f"本地存储初始化失败 {self.storage_key}: {e}")
            return copy.deepcopy(self._initial)

        if not isinstance(stored, list):
            logger.error(f"本地存储内容不是列表 {self.storage_key}")
            return copy.deepcopy(self._initial)
        return stored

    def save(self, records: List[Record]) -> None:
        """整表覆盖保存。

        写入本地后触发变更广播；镜像已配置时推送同样的整表内容。
        推送失败只记录日志，不重试，也不回滚本地写入。
        """
        try:
            self._storage.put_table(self.storage_key, records)
        except Exception as e:
            logger.error(f"本地存储写入失败 {self.storage_key}: {e}")
            return

        self._notifier.emit()

        if self._mirror is not None and self._mirror.is_configured():
            payload = copy.deepcopy(records)
            if self.push_in_background:
                threading.Thread(
                    target=self._push, args=(payload,),
                    name=f"mirror-push-{self.tab}", daemon=True
                ).start()
            else:
                self._push(payload)

    def add(self, record: Record) -> None:
        """将记录插入表头并保存"""
        self.save([record] + self.get_all())

    def override_local(self, records: List[Record]) -> None:
        """仅覆盖本地数据，不推送镜像、不触发广播"""
        try:
            self._storage.put_table(self.storage_key, records)
        except Exception as e:
            logger.error(f"本地存储覆盖失败 {self.storage_key}: {e}")

    def _push(self, records: List[Record]) -> None:
        try:
            result = self._mirror.write(self.tab, records)
        except Exception as e:
            logger.warning(f"推送 {self.tab} 到表格镜像出错: {e}")
            return
        if result.ok:
            logger.debug(f"已同步 {self.tab} 到表格镜像 ({len(records)} 行)")
        else:
            logger.warning(f"推送 {self.tab} 到表格镜像失败: {result.message}")

    # ================================================================
    # 便捷方法
    # ================================================================

    def get_by_id(self, record_id: str) -> Optional[Record]:
        """按ID查找记录"""
        for record in self.get_all():
            if record.get("id") == record_id:
                return record
        return None

    def update(self, record_id: str, **changes: Any) -> Optional[Record]:
        """按ID更新记录的部分字段并保存。

        Returns:
            更新后的记录，ID不存在时返回 None（不写入）。
        """
        records = self.get_all()
        for index, record in enumerate(records):
            if record.get("id") == record_id:
                records[index] = {**record, **changes}
                self.save(records)
                return records[index]
        return None

    def remove(self, record_id: str) -> bool:
        """按ID删除记录。

        Returns:
            是否删除了记录。
        """
        records = self.get_all()
        remaining = [r for r in records if r.get("id") != record_id]
        if len(remaining) == len(records):
            return False
        self.save(remaining)
        return True

    def filter(self, **equals: Any) -> List[Record]:
        """按字段等值过滤"""
        return [
            record for record in self.get_all()
            if all(record.get(k) == v for k, v in equals.items())
        ]

    def count(self) -> int:
        return len(self.get_all())
