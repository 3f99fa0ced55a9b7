"""预约管理 —— 预约登记、状态变更、筛选与开单。

服务名称、价格在预约时从目录复制到预约记录中，之后修改目录不会
影响历史预约。状态之间可以任意切换，不做状态机限制。
"""
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from config.business_config import business_config
from database import SalonDatabase
from database.schemas import (
    AppointmentStatus, CatalogKind, NotificationType, PaymentMethod,
    generate_id, today_local
)
from .errors import BusinessRuleError
from .rules import compute_discount, default_discount_percent

_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME = re.compile(r"^\d{2}:\d{2}$")


@dataclass
class Invoice:
    """发票

    Attributes:
        invoice_no: 发票号（首个预约ID前8位大写）
        customer: 顾客记录
        date: 开票日期
        lines: 明细（服务名、技师、折扣、金额）
        total: 合计
        payment_method: 支付方式
        salon: 门店抬头（名称、地址、电话）
    """
    invoice_no: str
    customer: Dict[str, Any]
    date: str
    lines: List[Dict[str, Any]] = field(default_factory=list)
    total: Union[int, float] = 0
    payment_method: str = PaymentMethod.CASH.value
    salon: Dict[str, str] = field(default_factory=dict)


class AppointmentBook:
    """预约簿

    Example::

        book = AppointmentBook(db)
        percent = book.prefill_discount(customer_id, CatalogKind.SERVICE)
        appt = book.book(customer_id, staff_id, "Hair Spa", "2024-03-05", "10:00",
                         list_price=1000, discount_percent=percent)
    """

    def __init__(self, db: SalonDatabase) -> None:
        self.db = db

    def prefill_discount(self, customer_id: str,
                         kind: Union[CatalogKind, str] = CatalogKind.SERVICE,
                         now: Optional[datetime] = None) -> int:
        """选择顾客和目录项后预填的折扣百分比"""
        customer = self.db.customers.get_by_id(customer_id)
        return default_discount_percent(customer, kind, now)

    def book(self, customer_id: str, staff_id: str, service_name: str,
             date: str, time: str, list_price: Union[int, float],
             discount_percent: Union[int, float] = 0,
             duration_min: int = 60) -> Dict[str, Any]:
        """登记预约。

        Raises:
            BusinessRuleError: 未选择顾客/技师、服务名为空、日期时间格式错误、
                价格为负或折扣超出 0-100。
        """
        if not customer_id:
            raise BusinessRuleError("Please select a customer")
        if not staff_id:
            raise BusinessRuleError("Please select a staff member")
        customer = self.db.customers.get_by_id(customer_id)
        if customer is None:
            raise BusinessRuleError(f"Customer not found: {customer_id}")
        stylist = self.db.staff.get_by_id(staff_id)
        if stylist is None:
            raise BusinessRuleError(f"Staff not found: {staff_id}")
        if not service_name or not service_name.strip():
            raise BusinessRuleError("Please enter a service")
        if not _DATE.match(date or "") or not _TIME.match(time or ""):
            raise BusinessRuleError("Date must be YYYY-MM-DD and time HH:MM")
        if list_price < 0:
            raise BusinessRuleError("Price cannot be negative")
        try:
            pricing = compute_discount(list_price, discount_percent)
        except ValueError as e:
            raise BusinessRuleError(str(e)) from e

        appointment = {
            "id": generate_id(),
            "customerId": customer_id,
            "staffId": staff_id,
            "serviceName": service_name.strip(),
            "date": date,
            "time": time,
            "durationMin": int(duration_min),
            "status": AppointmentStatus.SCHEDULED.value,
            "price": pricing.final_price,
            "discount": pricing.discount,
        }
        self.db.appointments.save(self.db.appointments.get_all() + [appointment])

        self.db.create_notification(
            NotificationType.STAFF,
            "New Appointment",
            f"New booking: {customer.get('name')} for {appointment['serviceName']} "
            f"on {date} at {time}",
            related_id=staff_id,
        )
        logger.info(f"预约已登记: {customer.get('name')} {date} {time}")
        return appointment

    def book_from_catalog(self, customer_id: str, staff_id: str, item_id: str,
                          kind: Union[CatalogKind, str], date: str, time: str,
                          discount_percent: Optional[Union[int, float]] = None,
                          now: Optional[datetime] = None) -> Dict[str, Any]:
        """按目录项（单项服务或组合）登记预约。

        未指定折扣时使用会员默认折扣。
        """
        kind = CatalogKind(kind)
        table = self.db.services if kind == CatalogKind.SERVICE else self.db.combos
        item = table.get_by_id(item_id)
        if item is None:
            raise BusinessRuleError(f"Catalog item not found: {item_id}")
        if discount_percent is None:
            discount_percent = self.prefill_discount(customer_id, kind, now)
        return self.book(
            customer_id, staff_id, item.get("name", ""), date, time,
            list_price=item.get("price") or 0,
            discount_percent=discount_percent,
            duration_min=item.get("durationMin") or 60,
        )

    def set_status(self, appointment_id: str,
                   status: Union[AppointmentStatus, str]) -> Dict[str, Any]:
        """修改预约状态（任意状态之间均可切换）"""
        status = AppointmentStatus(status)
        updated = self.db.appointments.update(appointment_id, status=status.value)
        if updated is None:
            raise BusinessRuleError(f"Appointment not found: {appointment_id}")
        return updated

    def filter(self, staff_id: Optional[str] = None,
               start: Optional[str] = None, end: Optional[str] = None,
               status: Optional[Union[AppointmentStatus, str]] = None
               ) -> List[Dict[str, Any]]:
        """按技师、日期区间、状态筛选，按日期、时间升序"""
        status_value = AppointmentStatus(status).value if status else None
        matched = [
            a for a in self.db.appointments.get_all()
            if (not staff_id or a.get("staffId") == staff_id)
            and (not start or (a.get("date") or "") >= start)
            and (not end or (a.get("date") or "") <= end)
            and (not status_value or a.get("status") == status_value)
        ]
        return sorted(matched, key=lambda a: (a.get("date") or "", a.get("time") or ""))

    def unbilled(self) -> Dict[str, List[Dict[str, Any]]]:
        """已完成但未开单的预约，按顾客分组"""
        groups: Dict[str, List[Dict[str, Any]]] = {}
        for appt in self.filter(status=AppointmentStatus.COMPLETED):
            if not appt.get("paymentMethod"):
                groups.setdefault(appt.get("customerId"), []).append(appt)
        return groups

    def bill(self, appointment_ids: List[str],
             payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH
             ) -> Invoice:
        """为同一顾客的已完成预约开单。

        确认后每个预约记录支付方式；钱包支付时余额不足直接拒绝，
        不修改任何数据。

        Raises:
            BusinessRuleError: 预约不存在、未完成、属于不同顾客或余额不足。
        """
        payment_method = PaymentMethod(payment_method)
        if not appointment_ids:
            raise BusinessRuleError("No appointments selected")

        by_id = {a.get("id"): a for a in self.db.appointments.get_all()}
        selected = []
        for appointment_id in appointment_ids:
            appt = by_id.get(appointment_id)
            if appt is None:
                raise BusinessRuleError(f"Appointment not found: {appointment_id}")
            if appt.get("status") != AppointmentStatus.COMPLETED.value:
                raise BusinessRuleError("Only completed appointments can be billed")
            selected.append(appt)

        customer_ids = {a.get("customerId") for a in selected}
        if len(customer_ids) != 1:
            raise BusinessRuleError("Appointments belong to different customers")
        customer = self.db.customers.get_by_id(customer_ids.pop())
        if customer is None:
            raise BusinessRuleError("Missing customer data for this appointment")

        staff_names = {s.get("id"): s.get("name") for s in self.db.staff.get_all()}
        lines = [
            {
                "serviceName": a.get("serviceName"),
                "staffName": staff_names.get(a.get("staffId"), ""),
                "discount": a.get("discount", 0),
                "amount": a.get("price") or 0,
            }
            for a in selected
        ]
        total = sum(line["amount"] for line in lines)

        if payment_method == PaymentMethod.WALLET:
            balance = customer.get("walletBalance") or 0
            if balance < total:
                raise BusinessRuleError(
                    f"Insufficient wallet balance ({balance}). "
                    "Please use another method or top up."
                )
            self.db.customers.update(customer["id"], walletBalance=balance - total)

        billed = set(appointment_ids)
        records = [
            {**a, "paymentMethod": payment_method.value} if a.get("id") in billed else a
            for a in self.db.appointments.get_all()
        ]
        self.db.appointments.save(records)

        return Invoice(
            invoice_no=selected[0]["id"][:8].upper(),
            customer=customer,
            date=today_local(),
            lines=lines,
            total=total,
            payment_method=payment_method.value,
            salon=business_config.get_salon_profile(),
        )
