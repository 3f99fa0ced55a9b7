"""顾客管理 —— 建档、钱包充值、会员/套餐购买、优惠券与消费记录。

钱包余额只允许通过充值和消费扣款变动，不能通过普通资料编辑修改。
"""
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from database import SalonDatabase
from database.schemas import (
    AppointmentStatus, PaymentMethod, SaleItemType,
    generate_id, parse_timestamp, today_local, utc_now_iso
)
from .errors import BusinessRuleError
from .rules import add_months, issue_coupon, normalize_celebration

# 会员有效期（月）
MEMBERSHIP_MONTHS = 12


class CustomerBook:
    """顾客档案

    Example::

        customers = CustomerBook(db)
        asha = customers.register("Asha", "9876500000", birthday="1990-07-14")
        customers.top_up_wallet(asha["id"], 500)
    """

    def __init__(self, db: SalonDatabase) -> None:
        self.db = db

    def _require(self, customer_id: str) -> Dict[str, Any]:
        customer = self.db.customers.get_by_id(customer_id)
        if customer is None:
            raise BusinessRuleError(f"Customer not found: {customer_id}")
        return customer

    def register(self, name: str, phone: str = "", email: str = "",
                 apartment: str = "", birthday: str = "",
                 anniversary: str = "", notes: str = "") -> Dict[str, Any]:
        """新建顾客档案"""
        if not name or not name.strip():
            raise BusinessRuleError("Customer name is required")
        try:
            birthday = normalize_celebration(birthday)
            anniversary = normalize_celebration(anniversary)
        except ValueError as e:
            raise BusinessRuleError(f"Invalid date: {e}") from e
        customer = {
            "id": generate_id(),
            "name": name.strip(),
            "email": email,
            "phone": phone,
            "apartment": apartment,
            "birthday": birthday,
            "anniversary": anniversary,
            "walletBalance": 0,
            "isMember": False,
            "coupons": [],
            "joinDate": today_local(),
            "notes": notes,
        }
        self.db.customers.save(self.db.customers.get_all() + [customer])
        return customer

    def update(self, customer_id: str, **changes: Any) -> Dict[str, Any]:
        """修改顾客资料（不允许修改钱包余额）"""
        if "walletBalance" in changes:
            raise BusinessRuleError("Wallet balance can only change through top-up or sales")
        self._require(customer_id)
        for key in ("birthday", "anniversary"):
            if key in changes:
                changes[key] = normalize_celebration(changes[key])
        return self.db.customers.update(customer_id, **changes)

    def top_up_wallet(self, customer_id: str,
                      amount: Union[int, float]) -> Dict[str, Any]:
        """钱包充值"""
        if amount <= 0:
            raise BusinessRuleError("Top-up amount must be positive")
        customer = self._require(customer_id)
        balance = (customer.get("walletBalance") or 0) + amount
        logger.info(f"钱包充值: {customer.get('name')} +{amount} = {balance}")
        return self.db.customers.update(customer_id, walletBalance=balance)

    def _record_purchase(self, customer_id: str, name: str,
                         price: Union[int, float], item_type: SaleItemType,
                         payment_method: PaymentMethod) -> Dict[str, Any]:
        sale = {
            "id": generate_id(),
            "date": utc_now_iso(),
            "customerId": customer_id,
            "staffId": None,
            "items": [{"name": name, "price": price, "quantity": 1,
                       "type": item_type.value}],
            "total": price,
            "paymentMethod": payment_method.value,
        }
        self.db.sales.add(sale)
        return sale

    def purchase_membership(self, customer_id: str, fee: Union[int, float],
                            payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH,
                            now: Optional[datetime] = None) -> Dict[str, Any]:
        """购买（续费）年度会员。

        未过期时从原到期时间顺延，否则从当前时间起算。
        """
        payment_method = PaymentMethod(payment_method)
        if payment_method == PaymentMethod.WALLET:
            raise BusinessRuleError("Membership cannot be paid from the wallet")
        customer = self._require(customer_id)
        now = now or datetime.now(timezone.utc)

        start = now
        current = customer.get("membershipExpiry")
        if customer.get("isMember") and current:
            try:
                expiry = parse_timestamp(current)
                if expiry > now:
                    start = expiry
            except ValueError:
                logger.warning(f"会员到期时间格式错误: {current}")

        updated = self.db.customers.update(
            customer_id,
            isMember=True,
            membershipExpiry=add_months(start, MEMBERSHIP_MONTHS).isoformat(),
        )
        self._record_purchase(customer_id, "Annual Membership", fee,
                              SaleItemType.MEMBERSHIP, payment_method)
        return updated

    def purchase_package(self, customer_id: str, package_id: str,
                         payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH,
                         now: Optional[datetime] = None) -> Dict[str, Any]:
        """购买储值套餐。

        钱包增加套餐面值，顾客成为会员，会员与套餐到期时间均为
        当前时间 + 套餐有效月数。
        """
        payment_method = PaymentMethod(payment_method)
        if payment_method == PaymentMethod.WALLET:
            raise BusinessRuleError("Packages cannot be paid from the wallet")
        customer = self._require(customer_id)
        package = self.db.packages.get_by_id(package_id)
        if package is None:
            raise BusinessRuleError(f"Package not found: {package_id}")
        now = now or datetime.now(timezone.utc)

        expiry = add_months(now, int(package.get("validityMonths") or 0)).isoformat()
        updated = self.db.customers.update(
            customer_id,
            walletBalance=(customer.get("walletBalance") or 0) + package.get("creditValue", 0),
            isMember=True,
            membershipExpiry=expiry,
            packageId=package_id,
            packageExpiry=expiry,
        )
        logger.info(f"套餐购买: {customer.get('name')} -> {package.get('name')}")
        self._record_purchase(customer_id, package.get("name", "Package"),
                              package.get("cost", 0), SaleItemType.PACKAGE,
                              payment_method)
        return updated

    def assign_coupon(self, customer_id: str, template_id: str,
                      now: Optional[datetime] = None) -> Dict[str, Any]:
        """给顾客发放优惠券（模板快照）"""
        customer = self._require(customer_id)
        template = self.db.coupon_templates.get_by_id(template_id)
        if template is None:
            raise BusinessRuleError(f"Coupon template not found: {template_id}")
        if template.get("active") is False:
            raise BusinessRuleError("Coupon template is inactive")
        coupon = issue_coupon(template, now)
        self.db.customers.update(
            customer_id, coupons=list(customer.get("coupons") or []) + [coupon]
        )
        return coupon

    def redeem_coupon(self, customer_id: str, coupon_id: str) -> Dict[str, Any]:
        """核销优惠券"""
        customer = self._require(customer_id)
        coupons = list(customer.get("coupons") or [])
        for index, coupon in enumerate(coupons):
            if coupon.get("id") == coupon_id:
                if coupon.get("used"):
                    raise BusinessRuleError("Coupon already used")
                coupons[index] = {**coupon, "used": True}
                self.db.customers.update(customer_id, coupons=coupons)
                return coupons[index]
        raise BusinessRuleError(f"Coupon not found: {coupon_id}")

    def history(self, customer_id: str) -> List[Dict[str, Any]]:
        """消费记录：已完成预约 + 销售，按时间倒序"""
        entries = [
            {
                "date": a.get("date"),
                "type": "Service",
                "details": a.get("serviceName"),
                "amount": a.get("price") or 0,
            }
            for a in self.db.appointments.get_all()
            if a.get("customerId") == customer_id
            and a.get("status") == AppointmentStatus.COMPLETED.value
        ]
        entries += [
            {
                "date": s.get("date"),
                "type": "Purchase",
                "details": ", ".join(
                    f"{i.get('quantity')}x {i.get('name')}" for i in s.get("items", [])
                ),
                "amount": s.get("total") or 0,
            }
            for s in self.db.sales.get_all()
            if s.get("customerId") == customer_id
        ]
        return sorted(entries, key=lambda e: e.get("date") or "", reverse=True)

    def upcoming_celebrations(self, today: Optional[date] = None,
                              days: int = 7) -> List[Dict[str, Any]]:
        """未来 days 天内（含今天）过生日或纪念日的顾客"""
        today = today or date.fromisoformat(today_local())
        window = {
            ((today + timedelta(days=offset)).month, (today + timedelta(days=offset)).day)
            for offset in range(days + 1)
        }

        def in_window(value: Optional[str]) -> bool:
            if not value:
                return False
            try:
                d = date.fromisoformat(value[:10])
            except ValueError:
                return False
            return (d.month, d.day) in window

        return [
            c for c in self.db.customers.get_all()
            if in_window(c.get("birthday")) or in_window(c.get("anniversary"))
        ]

    def search(self, term: str) -> List[Dict[str, Any]]:
        """按姓名、电话、邮箱模糊搜索"""
        term = term.strip().lower()
        return [
            c for c in self.db.customers.get_all()
            if term in (c.get("name") or "").lower()
            or term in (c.get("phone") or "")
            or term in (c.get("email") or "").lower()
        ]
