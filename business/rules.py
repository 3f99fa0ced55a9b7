"""业务规则 —— 纯函数，不访问存储。

包括：
- 折扣计算（百分比折扣，四舍五入到整数货币单位）
- 会员有效期判断与预约默认折扣
- 考勤工时与加班时长
- 优惠券发放（模板快照 + 有效期）
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from config.business_config import business_config
from database.schemas import CatalogKind, generate_id, parse_timestamp

Timestamp = Union[str, datetime, None]

# 生日/纪念日统一归一化到的年份（闰年，保证 2 月 29 日合法）
CELEBRATION_YEAR = 2000


@dataclass(frozen=True)
class DiscountResult:
    """折扣计算结果

    Attributes:
        discount: 折扣金额（整数货币单位）
        final_price: 折后价格（不小于 0）
    """
    discount: int
    final_price: Union[int, float]


def round_half_up(value: Union[int, float]) -> int:
    """四舍五入到整数（0.5 进位，与 Python 内置的银行家舍入不同）"""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_discount(list_price: Union[int, float],
                     percent: Union[int, float]) -> DiscountResult:
    """按百分比计算折扣。

    Args:
        list_price: 标价。
        percent: 折扣百分比，0-100。

    Returns:
        DiscountResult，final_price = max(0, 标价 - 折扣金额)。

    Raises:
        ValueError: 百分比超出 0-100。
    """
    if percent < 0 or percent > 100:
        raise ValueError(f"Discount percent must be between 0 and 100, got {percent}")
    discount = round_half_up(list_price * percent / 100)
    return DiscountResult(discount=discount, final_price=max(0, list_price - discount))


def _to_datetime(value: Timestamp) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return parse_timestamp(value)


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return now if now.tzinfo else now.replace(tzinfo=timezone.utc)


def is_membership_active(customer: Dict[str, Any],
                         now: Optional[datetime] = None) -> bool:
    """会员标记为真且会员到期时间严格晚于当前时间"""
    if not customer.get("isMember"):
        return False
    try:
        expiry = _to_datetime(customer.get("membershipExpiry"))
    except ValueError:
        return False
    return expiry is not None and expiry > _now(now)


def default_discount_percent(customer: Optional[Dict[str, Any]],
                             kind: Union[CatalogKind, str],
                             now: Optional[datetime] = None) -> int:
    """预约表单的默认折扣百分比。

    只有选择目录中的单项服务（非套餐组合）且顾客会员有效时才给默认折扣，
    该值仅用于预填，可在提交前修改。
    """
    if customer is None or CatalogKind(kind) != CatalogKind.SERVICE:
        return 0
    if is_membership_active(customer, now):
        return business_config.get_membership_discount_percent()
    return 0


def hours_worked(login: Timestamp, logout: Timestamp) -> float:
    """考勤工时（小时），未签退时为 0"""
    start = _to_datetime(login)
    end = _to_datetime(logout)
    if start is None or end is None:
        return 0.0
    return (end - start).total_seconds() / 3600


def overtime_hours(hours: float, baseline: Optional[float] = None) -> float:
    """超出标准班次的加班时长"""
    if baseline is None:
        baseline = business_config.get_standard_shift_hours()
    return max(0.0, hours - baseline)


def issue_coupon(template: Dict[str, Any],
                 issued_at: Optional[datetime] = None) -> Dict[str, Any]:
    """根据优惠券模板生成发给顾客的优惠券快照。

    名称/代码/描述/面值在发放时冻结，之后修改模板不影响已发放的券。
    """
    issued = _now(issued_at)
    expires = issued + timedelta(days=int(template.get("validityDays") or 0))
    return {
        "id": generate_id(),
        "templateId": template.get("id"),
        "name": template.get("name"),
        "code": template.get("code"),
        "description": template.get("description", ""),
        "value": template.get("value"),
        "issuedAt": issued.isoformat(),
        "expiresAt": expires.isoformat(),
        "used": False,
    }


def is_coupon_valid(coupon: Dict[str, Any],
                    now: Optional[datetime] = None) -> bool:
    """未使用且未过期"""
    if coupon.get("used"):
        return False
    try:
        expires = _to_datetime(coupon.get("expiresAt"))
    except ValueError:
        return False
    return expires is not None and expires > _now(now)


def cart_total(items: Sequence[Dict[str, Any]]) -> Union[int, float]:
    """购物车合计：单价 × 数量之和"""
    return sum((item.get("price") or 0) * item.get("quantity", 1) for item in items)


def add_months(moment: datetime, months: int) -> datetime:
    """按自然月加月份，目标月天数不足时取月末"""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    next_month = date(year + month // 12, month % 12 + 1, 1)
    last_day = (next_month - timedelta(days=1)).day
    return moment.replace(year=year, month=month, day=min(moment.day, last_day))


def normalize_celebration(value: Union[str, date, None]) -> str:
    """生日/纪念日归一化到固定年份，便于跨年比较月日"""
    if value is None or value == "":
        return ""
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    return date(CELEBRATION_YEAR, value.month, value.day).isoformat()


def paginate(records: List[Any], page: int,
             page_size: int) -> Tuple[List[Any], int]:
    """本地分页，page 从 1 开始。

    Returns:
        (当前页记录, 总数)
    """
    start = (max(page, 1) - 1) * page_size
    return records[start:start + page_size], len(records)
