"""表格镜像客户端 —— 与 Google Apps Script Web App 的请求/响应协议。

远端协议（单一 HTTP(S) 地址）：

- ``GET ?action=readAll`` → ``{"status": "success", "data": {tab: [records]}}``
- ``GET ?action=readPage&table=&page=&pageSize=`` → ``{"status", "data", "total"}``
- ``POST {"action": "write", "tab": ..., "data": [...]}`` → ``{"status", "message"}``

POST 使用 ``text/plain`` 内容类型，避免浏览器端的 CORS 预检。
每次写入都是整表覆盖，不做增量同步，失败不重试。
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from loguru import logger

from config.settings import settings
from .codecs import encode_record
from .schemas import MIRROR_URL_KEY, MIRROR_VIEW_URL_KEY
from .storage import StorageAdapter


@dataclass
class MirrorResult:
    """镜像请求结果

    Attributes:
        status: ``success`` 或 ``error``
        message: 错误或提示信息
        data: 返回数据（readAll 为 ``{tab: records}``，readPage 为记录列表）
        total: 分页读取时的总行数
    """
    status: str
    message: Optional[str] = None
    data: Any = None
    total: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def error(cls, message: str) -> "MirrorResult":
        return cls(status="error", message=message)


def _maybe_decode(value: Any) -> Any:
    """单元格看起来像 JSON 数组/对象时尝试解码"""
    if isinstance(value, str) and value.startswith(("[", "{")):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def decode_rows(rows: List[Any]) -> List[Any]:
    """对一张表的所有行做 JSON 单元格解码"""
    return [
        {key: _maybe_decode(value) for key, value in row.items()}
        if isinstance(row, dict) else row
        for row in rows
    ]


class RemoteMirrorClient:
    """表格镜像客户端（无状态请求/响应）。

    脚本地址的解析顺序：构造参数 → 本地存储中保存的地址 → settings 默认值。

    Example::

        mirror = RemoteMirrorClient(storage=storage)
        mirror.set_script_url("https://script.google.com/macros/s/xxx/exec")
        result = mirror.write("Customers", customers)
        if not result.ok:
            print(result.message)
    """

    def __init__(self, script_url: Optional[str] = None,
                 view_url: Optional[str] = None,
                 storage: Optional[StorageAdapter] = None,
                 timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None) -> None:
        self._script_url = script_url
        self._view_url = view_url
        self._storage = storage
        self.timeout = timeout if timeout is not None else settings.mirror_timeout
        self.session = session or requests.Session()

    # ================================================================
    # 地址配置
    # ================================================================

    def _stored(self, key: str) -> Optional[str]:
        if self._storage is None:
            return None
        try:
            return self._storage.get(key)
        except Exception as e:
            logger.warning(f"读取镜像配置失败 {key}: {e}")
            return None

    def get_script_url(self) -> str:
        """当前生效的脚本地址，未配置时返回空字符串"""
        return (
            self._script_url
            or self._stored(MIRROR_URL_KEY)
            or settings.mirror_script_url
        )

    def set_script_url(self, url: str) -> None:
        """设置脚本地址（有存储时持久化）"""
        self._script_url = url
        if self._storage is not None:
            self._storage.put(MIRROR_URL_KEY, url)

    def get_view_url(self) -> str:
        """表格查看地址（仅用于展示链接）"""
        return (
            self._view_url
            or self._stored(MIRROR_VIEW_URL_KEY)
            or settings.mirror_view_url
        )

    def set_view_url(self, url: str) -> None:
        self._view_url = url
        if self._storage is not None:
            self._storage.put(MIRROR_VIEW_URL_KEY, url)

    def is_configured(self) -> bool:
        return bool(self.get_script_url())

    # ================================================================
    # 请求
    # ================================================================

    def _parse(self, response: requests.Response) -> MirrorResult:
        if not response.ok:
            return MirrorResult.error(f"HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError:
            return MirrorResult.error("Invalid JSON response from mirror")
        if not isinstance(payload, dict):
            return MirrorResult.error("Unexpected response from mirror")
        return MirrorResult(
            status=payload.get("status", "error"),
            message=payload.get("message"),
            data=payload.get("data"),
            total=payload.get("total"),
        )

    def read_all(self) -> MirrorResult:
        """拉取所有工作表的完整内容"""
        url = self.get_script_url()
        if not url:
            return MirrorResult.error("Script URL not configured")

        try:
            response = self.session.get(
                url, params={"action": "readAll"}, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning(f"表格镜像读取失败: {e}")
            return MirrorResult.error("Failed to fetch from Google Sheets")

        result = self._parse(response)
        if result.ok:
            tables = result.data if isinstance(result.data, dict) else {}
            result.data = {
                tab: decode_rows(rows) if isinstance(rows, list) else []
                for tab, rows in tables.items()
            }
        return result

    def read_page(self, tab: str, page: int = 1,
                  page_size: int = 20) -> MirrorResult:
        """分页读取单张工作表"""
        url = self.get_script_url()
        if not url:
            return MirrorResult.error("Script URL not configured")

        params = {
            "action": "readPage",
            "table": tab,
            "page": page,
            "pageSize": page_size,
        }
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"表格镜像分页读取失败 {tab}: {e}")
            return MirrorResult.error("Failed to fetch page from Google Sheets")

        result = self._parse(response)
        if result.ok and isinstance(result.data, list):
            result.data = decode_rows(result.data)
        return result

    def write(self, tab: str, records: List[Dict[str, Any]]) -> MirrorResult:
        """整表覆盖写入指定工作表"""
        url = self.get_script_url()
        if not url:
            return MirrorResult.error("Script URL not configured")

        body = {
            "action": "write",
            "tab": tab,
            "data": [encode_record(record) for record in records],
        }
        try:
            response = self.session.post(
                url,
                data=json.dumps(body, ensure_ascii=False, default=str).encode("utf-8"),
                headers={"Content-Type": "text/plain;charset=utf-8"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"表格镜像写入失败 {tab}: {e}")
            return MirrorResult.error("Failed to write to Google Sheets")

        return self._parse(response)
