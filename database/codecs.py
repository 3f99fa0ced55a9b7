"""字段编解码 —— 表格镜像数据的入库清洗。

远端表格在往返过程中会改变部分字段的形态：

- 纯日期字段会变成完整时间戳（``2024-03-05T00:00:00.000Z``）
- 纯时间字段会变成锚定在表格纪元日期上的时间戳（``1899-12-30T14:30:00.000Z``）
- 列表/对象字段以 JSON 字符串形式存放

每张表按 ``TABLE_CODECS`` 中声明的字段逐一解码，未声明的字段原样保留。
"""
import json
import re
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from loguru import logger

from .schemas import local_tz, parse_timestamp

FieldCodec = Callable[[Any], Any]

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_ONLY = re.compile(r"^\d{1,2}:\d{2}$")
_TIME_IN_TIMESTAMP = re.compile(r"T(\d{2}):(\d{2})")


def decode_date_only(value: Any, tz: Optional[ZoneInfo] = None) -> Any:
    """时间戳 → 业务时区下的日历日期（YYYY-MM-DD）"""
    if not isinstance(value, str) or not value or _DATE_ONLY.match(value):
        return value
    try:
        stamp = parse_timestamp(value)
    except ValueError:
        return value
    return stamp.astimezone(tz or local_tz()).date().isoformat()


def decode_time_only(value: Any) -> Any:
    """纪元日期时间戳 → HH:MM（取时间戳中书写的时分，不做时区换算）"""
    if not isinstance(value, str) or not value or _TIME_ONLY.match(value):
        return value
    match = _TIME_IN_TIMESTAMP.search(value)
    if not match:
        return value
    return f"{match.group(1)}:{match.group(2)}"


def decode_json_list(value: Any) -> List[Any]:
    """JSON 字符串 → 列表，解码失败或类型不符时返回空列表"""
    if isinstance(value, list):
        return value
    if not isinstance(value, str) or not value.strip():
        return []
    try:
        decoded = json.loads(value)
    except ValueError:
        logger.debug(f"列表字段解码失败，使用空列表: {value[:50]}")
        return []
    return decoded if isinstance(decoded, list) else []


def decode_json_object(value: Any) -> Optional[Dict[str, Any]]:
    """JSON 字符串 → 字典，解码失败时返回 None"""
    if isinstance(value, dict):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        decoded = json.loads(value)
    except ValueError:
        return None
    return decoded if isinstance(decoded, dict) else None


def decode_bool(value: Any) -> bool:
    """表格布尔值（TRUE/FALSE、true/false、1/0）→ bool"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return False


def decode_number(value: Any) -> Any:
    """数字字符串 → int/float，空值返回 None，无法解析时原样返回"""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value) if float(value).is_integer() else value
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return value
    return int(number) if number.is_integer() else number


def decode_amount(value: Any) -> Any:
    """必填数值字段（数量、金额、阈值）：空单元格或无法解析时记为 0"""
    number = decode_number(value)
    return number if isinstance(number, (int, float)) else 0


TABLE_CODECS: Dict[str, Dict[str, FieldCodec]] = {
    "Staff": {
        "specialties": decode_json_list,
        "active": decode_bool,
        "target": decode_number,
        "salary": decode_number,
    },
    "Services": {
        "price": decode_amount,
        "durationMin": decode_number,
        "active": decode_bool,
    },
    "Combos": {
        "services": decode_json_list,
        "price": decode_amount,
        "active": decode_bool,
    },
    "Inventory": {
        "quantity": decode_amount,
        "price": decode_amount,
        "minThreshold": decode_amount,
    },
    "Packages": {
        "complimentaryServices": decode_json_list,
        "cost": decode_amount,
        "creditValue": decode_amount,
        "validityMonths": decode_amount,
    },
    "Customers": {
        "birthday": decode_date_only,
        "anniversary": decode_date_only,
        "joinDate": decode_date_only,
        "walletBalance": decode_amount,
        "isMember": decode_bool,
        "coupons": decode_json_list,
    },
    "Leads": {
        "comments": decode_json_list,
    },
    "Appointments": {
        "date": decode_date_only,
        "time": decode_time_only,
        "durationMin": decode_number,
        "price": decode_amount,
        "discount": decode_amount,
    },
    "Sales": {
        "items": decode_json_list,
        "total": decode_amount,
    },
    "Notifications": {
        "read": decode_bool,
    },
    "CouponTemplates": {
        "value": decode_amount,
        "validityDays": decode_amount,
        "active": decode_bool,
    },
    "Attendance": {
        "date": decode_date_only,
    },
}


def sanitize_record(tab: str, record: Dict[str, Any]) -> Dict[str, Any]:
    """按表声明的字段编解码清洗一条记录（返回新字典）"""
    codecs = TABLE_CODECS.get(tab, {})
    cleaned = dict(record)
    for field, codec in codecs.items():
        if field in cleaned:
            cleaned[field] = codec(cleaned[field])
    return cleaned


def sanitize_records(tab: str,
                     records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """清洗整张表，非字典行直接丢弃"""
    return [
        sanitize_record(tab, record)
        for record in records
        if isinstance(record, dict)
    ]


def encode_cell(value: Any) -> Any:
    """写入远端前的单元格编码：列表/对象转 JSON 字符串"""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


def encode_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """将一条记录编码为扁平行"""
    return {key: encode_cell(value) for key, value in record.items()}
