"""同步编排 —— 表格镜像与本地表之间的拉取/推送。

- ``pull()``：拉取远端全部工作表 → 按表清洗 → 直接覆盖本地（不回写镜像）
  → 广播一次变更；顾客、预约两张表被远端截断时改为分页拉取完整数据
- ``pull_once()``：每个会话（编排器实例）只自动拉取一次，避免会话中途
  覆盖本地编辑；之后的拉取需手动触发 ``pull()``
- ``push_all()``：把所有本地表依次整表推送到镜像

所有失败都以 ``SyncResult`` 返回，不抛异常。
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from .codecs import sanitize_records
from .events import ChangeNotifier
from .mirror import RemoteMirrorClient
from .table_store import TableStore

# 远端整表读取对这些工作表只返回前 20 行，需要分页补齐
PAGED_TABS = ("Customers", "Appointments")
PAGE_SIZE = 20


@dataclass
class SyncResult:
    """同步结果

    Attributes:
        success: 是否成功
        message: 面向用户的提示信息
        tables: 成功同步的工作表名
        failed: 推送失败的工作表名
    """
    success: bool
    message: str
    tables: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class SyncOrchestrator:
    """同步编排器。

    Attributes:
        mirror: 表格镜像客户端。
        notifier: 变更广播器。
    """

    def __init__(self, tables: List[TableStore],
                 mirror: RemoteMirrorClient,
                 notifier: ChangeNotifier) -> None:
        self._tables_by_tab: Dict[str, TableStore] = {t.tab: t for t in tables}
        self.mirror = mirror
        self.notifier = notifier
        self._first_pull: Optional[SyncResult] = None

    def pull(self) -> SyncResult:
        """拉取远端全部数据并覆盖本地表"""
        if not self.mirror.is_configured():
            return SyncResult(False, "Cloud integration (Sheets) not configured.")

        result = self.mirror.read_all()
        if not result.ok:
            message = result.message or "Sync failed."
            logger.warning(f"从表格镜像拉取失败: {message}")
            return SyncResult(False, message)

        synced = []
        for tab, rows in (result.data or {}).items():
            store = self._tables_by_tab.get(tab)
            if store is None:
                logger.debug(f"忽略未知工作表: {tab}")
                continue
            if tab in PAGED_TABS and len(rows) >= PAGE_SIZE:
                rows = self._read_all_pages(tab)
                if rows is None:
                    continue
            store.override_local(sanitize_records(tab, rows))
            synced.append(tab)

        self.notifier.emit()
        logger.info(f"已从表格镜像同步 {len(synced)} 张表")
        return SyncResult(True, "Data synchronized from Google Sheets.", tables=synced)

    def _read_all_pages(self, tab: str) -> Optional[List[dict]]:
        """逐页读取整张工作表，直到取满远端报告的总行数。

        任一页失败时返回 None，调用方保留本地数据不覆盖。
        """
        rows: List[dict] = []
        page = 1
        while True:
            result = self.mirror.read_page(tab, page, PAGE_SIZE)
            if not result.ok or not isinstance(result.data, list):
                logger.warning(f"分页拉取 {tab} 第 {page} 页失败: {result.message}，保留本地数据")
                return None
            rows.extend(result.data)
            if not result.data:
                return rows
            if isinstance(result.total, (int, float)):
                if len(rows) >= result.total:
                    return rows
            elif len(result.data) < PAGE_SIZE:
                return rows
            page += 1

    def pull_once(self) -> SyncResult:
        """会话内首次调用时拉取，之后返回首次结果"""
        if self._first_pull is None:
            self._first_pull = self.pull()
        return self._first_pull

    @property
    def has_pulled(self) -> bool:
        return self._first_pull is not None

    def push_all(self) -> SyncResult:
        """把所有本地表依次推送到镜像"""
        if not self.mirror.is_configured():
            return SyncResult(False, "Cloud integration (Sheets) not configured.")

        pushed, failed = [], []
        for tab, store in self._tables_by_tab.items():
            result = self.mirror.write(tab, store.get_all())
            if result.ok:
                pushed.append(tab)
            else:
                logger.warning(f"推送 {tab} 失败: {result.message}")
                failed.append(tab)

        if failed:
            return SyncResult(
                False, f"Failed to push: {', '.join(failed)}",
                tables=pushed, failed=failed
            )
        return SyncResult(True, "All tables pushed to Google Sheets.", tables=pushed)
