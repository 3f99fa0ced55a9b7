"""CSV 导出

格式约定：
- 首行为表头，取第一条记录的键（不加引号）
- 字符串用双引号包裹，内部双引号写成两个
- 字典/列表先 JSON 编码再按字符串处理
- None 输出为空，布尔值输出 ``true``/``false``，数字原样输出
"""
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from .errors import BusinessRuleError


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        value = json.dumps(value, ensure_ascii=False)
    if isinstance(value, str):
        return '"' + value.replace('"', '""') + '"'
    return str(value)


def to_csv(records: List[Dict[str, Any]]) -> str:
    """把记录列表转成 CSV 文本。

    Raises:
        BusinessRuleError: 没有可导出的数据。
    """
    if not records:
        raise BusinessRuleError("No data to export")
    headers = list(records[0].keys())
    lines = [",".join(headers)]
    lines += [",".join(_cell(row.get(h)) for h in headers) for row in records]
    return "\n".join(lines)


def export_filename(name: str, today: Optional[str] = None) -> str:
    """导出文件名 ``{name}_{YYYY-MM-DD}.csv``（日期取 UTC）"""
    today = today or datetime.now(timezone.utc).date().isoformat()
    return f"{name}_{today}.csv"


def export_csv(records: List[Dict[str, Any]], name: str,
               directory: Union[str, Path] = ".") -> Path:
    """导出 CSV 文件，返回文件路径"""
    content = to_csv(records)
    target = Path(directory)
    target.mkdir(parents=True, exist_ok=True)
    path = target / export_filename(name)
    path.write_text(content, encoding="utf-8")
    logger.info(f"已导出 {len(records)} 行到 {path}")
    return path
