"""经营报表 —— 营收、商品/服务排行、顾客结构、库存。

所有报表都是对整表数据的只读聚合，不写入任何表。
日期参数统一为 ``YYYY-MM-DD`` 字符串，区间两端均包含。
"""
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from database import SalonDatabase
from database.schemas import AppointmentStatus, SaleItemType

# 营收日报最多展示的天数
MAX_REVENUE_DAYS = 31


def _in_range(day: str, start: Optional[str], end: Optional[str]) -> bool:
    return (not start or day >= start) and (not end or day <= end)


def _ranked(counts: Dict[str, float], limit: int) -> List[Dict[str, Any]]:
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [{"name": name, "value": value} for name, value in ranked[:limit]]


def _completed(appointment: Dict[str, Any]) -> bool:
    return appointment.get("status") == AppointmentStatus.COMPLETED.value


def revenue_by_day(db: SalonDatabase, start: str, end: str) -> List[Dict[str, Any]]:
    """按天统计营收。

    零售营收 = 当天含商品明细的销售单合计；服务营收 = 当天已完成预约的金额。
    区间超过 31 天时只返回最后 31 天。

    Returns:
        ``[{"date", "retail", "service", "total"}, ...]``
    """
    first, last = date.fromisoformat(start), date.fromisoformat(end)
    days = [
        (first + timedelta(days=offset)).isoformat()
        for offset in range((last - first).days + 1)
    ][-MAX_REVENUE_DAYS:]

    retail: Dict[str, float] = {}
    for sale in db.sales.get_all():
        day = (sale.get("date") or "")[:10]
        if any(i.get("type") == SaleItemType.PRODUCT.value for i in sale.get("items", [])):
            retail[day] = retail.get(day, 0) + (sale.get("total") or 0)

    service: Dict[str, float] = {}
    for appt in db.appointments.get_all():
        if _completed(appt):
            day = appt.get("date") or ""
            service[day] = service.get(day, 0) + (appt.get("price") or 0)

    return [
        {
            "date": day,
            "retail": retail.get(day, 0),
            "service": service.get(day, 0),
            "total": retail.get(day, 0) + service.get(day, 0),
        }
        for day in days
    ]


def top_products(db: SalonDatabase, start: Optional[str] = None,
                 end: Optional[str] = None, limit: int = 5) -> List[Dict[str, Any]]:
    """区间内销量最高的商品（按数量）"""
    counts: Dict[str, float] = {}
    for sale in db.sales.get_all():
        if not _in_range((sale.get("date") or "")[:10], start, end):
            continue
        for item in sale.get("items", []):
            if item.get("type") == SaleItemType.PRODUCT.value:
                counts[item.get("name")] = counts.get(item.get("name"), 0) + (item.get("quantity") or 0)
    return _ranked(counts, limit)


def popular_services(db: SalonDatabase, start: Optional[str] = None,
                     end: Optional[str] = None, limit: int = 5) -> List[Dict[str, Any]]:
    """区间内预约次数最多的服务（不区分状态）"""
    counts: Dict[str, float] = {}
    for appt in db.appointments.get_all():
        if _in_range(appt.get("date") or "", start, end):
            name = appt.get("serviceName")
            counts[name] = counts.get(name, 0) + 1
    return _ranked(counts, limit)


def wallet_distribution(db: SalonDatabase) -> Dict[str, int]:
    """钱包有余额 / 无余额的顾客数"""
    customers = db.customers.get_all()
    with_credit = sum(1 for c in customers if (c.get("walletBalance") or 0) > 0)
    return {"withCredit": with_credit, "noCredit": len(customers) - with_credit}


def retention(db: SalonDatabase) -> Dict[str, Any]:
    """新客（≤1 次预约）与回头客数量，以及平均顾客价值"""
    customers = db.customers.get_all()
    appointments = db.appointments.get_all()
    visits: Dict[str, int] = {}
    for appt in appointments:
        visits[appt.get("customerId")] = visits.get(appt.get("customerId"), 0) + 1

    new = sum(1 for c in customers if visits.get(c.get("id"), 0) <= 1)
    lifetime = (
        sum((s.get("total") or 0) for s in db.sales.get_all())
        + sum((a.get("price") or 0) for a in appointments if _completed(a))
    )
    return {
        "new": new,
        "returning": len(customers) - new,
        "averageLifetimeValue": round(lifetime / len(customers), 2) if customers else 0,
    }


def low_stock(db: SalonDatabase) -> List[Dict[str, Any]]:
    """库存数量不高于最低阈值的商品"""
    return [
        p for p in db.inventory.get_all()
        if (p.get("quantity") or 0) <= (p.get("minThreshold") or 0)
    ]


def stock_value_by_category(db: SalonDatabase) -> Dict[str, float]:
    """按分类统计库存货值（单价 × 数量）"""
    values: Dict[str, float] = {}
    for product in db.inventory.get_all():
        category = product.get("category") or "Uncategorized"
        amount = (product.get("price") or 0) * (product.get("quantity") or 0)
        values[category] = values.get(category, 0) + amount
    return values


def staff_revenue(db: SalonDatabase, staff_id: str, month: str) -> Dict[str, Any]:
    """员工当月业绩（已完成预约金额）与目标完成度。

    Args:
        month: ``YYYY-MM``。
    """
    member = db.staff.get_by_id(staff_id) or {}
    done = [
        a for a in db.appointments.get_all()
        if a.get("staffId") == staff_id and _completed(a)
        and (a.get("date") or "").startswith(month)
    ]
    revenue = sum((a.get("price") or 0) for a in done)
    target = member.get("target") or 0
    return {
        "staffId": staff_id,
        "appointments": len(done),
        "revenue": revenue,
        "target": target,
        "progress": round(revenue / target * 100, 1) if target else 0,
    }
