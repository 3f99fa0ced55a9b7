"""收银（POS）—— 购物车结算、钱包扣款与库存扣减。

一次结算会依次写三张表：顾客（钱包扣款）→ 销售记录 → 库存。
三次写入互相独立，没有回滚。
"""
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from database import SalonDatabase
from database.schemas import PaymentMethod, SaleItemType, generate_id, utc_now_iso
from .errors import BusinessRuleError
from .rules import cart_total


class PointOfSale:
    """收银台

    Example::

        pos = PointOfSale(db)
        cart = pos.add_to_cart([], product_id, quantity=2)
        sale = pos.checkout(cart, PaymentMethod.WALLET, customer_id=customer_id)
    """

    def __init__(self, db: SalonDatabase) -> None:
        self.db = db

    def add_to_cart(self, cart: List[Dict[str, Any]], product_id: str,
                    quantity: int = 1) -> List[Dict[str, Any]]:
        """把库存商品加入购物车（返回新购物车）"""
        product = self.db.inventory.get_by_id(product_id)
        if product is None:
            raise BusinessRuleError(f"Product not found: {product_id}")
        if quantity < 1:
            raise BusinessRuleError("Quantity must be at least 1")
        return cart + [{
            "productId": product["id"],
            "name": product.get("name"),
            "price": product.get("price") or 0,
            "quantity": quantity,
            "type": SaleItemType.PRODUCT.value,
        }]

    def checkout(self, cart: List[Dict[str, Any]],
                 payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH,
                 customer_id: Optional[str] = None,
                 staff_id: Optional[str] = None) -> Dict[str, Any]:
        """结算。

        所有校验在写入前完成：购物车为空、钱包支付未选顾客、余额不足、
        库存不足时直接拒绝，不修改任何数据。

        Returns:
            新建的销售记录。

        Raises:
            BusinessRuleError: 校验失败。
        """
        payment_method = PaymentMethod(payment_method)
        if not cart:
            raise BusinessRuleError("Cart is empty")
        for item in cart:
            if (item.get("quantity") or 0) < 1 or (item.get("price") or 0) < 0:
                raise BusinessRuleError(f"Invalid cart line: {item.get('name')}")

        total = cart_total(cart)

        customer = None
        if customer_id:
            customer = self.db.customers.get_by_id(customer_id)
            if customer is None:
                raise BusinessRuleError(f"Customer not found: {customer_id}")

        if payment_method == PaymentMethod.WALLET:
            if customer is None:
                raise BusinessRuleError("Please select a customer to pay with Wallet.")
            balance = customer.get("walletBalance") or 0
            if balance < total:
                raise BusinessRuleError(
                    f"Insufficient wallet balance ({balance}). "
                    "Please use another method or top up."
                )

        products = self.db.inventory.get_all()
        quantities = self._product_quantities(cart)
        stock = {p.get("id"): (p.get("quantity") or 0) for p in products}
        for product_id, quantity in quantities.items():
            if product_id not in stock:
                raise BusinessRuleError(f"Product not found: {product_id}")
            if stock[product_id] < quantity:
                raise BusinessRuleError(f"Insufficient stock for product {product_id}")

        # 1. 钱包扣款
        if payment_method == PaymentMethod.WALLET:
            self.db.customers.update(
                customer["id"], walletBalance=(customer.get("walletBalance") or 0) - total
            )

        # 2. 销售记录
        sale = {
            "id": generate_id(),
            "date": utc_now_iso(),
            "customerId": customer_id or None,
            "staffId": staff_id or None,
            "items": [
                {
                    "name": item.get("name"),
                    "price": item.get("price") or 0,
                    "quantity": item.get("quantity", 1),
                    "type": SaleItemType(item.get("type", SaleItemType.PRODUCT)).value,
                }
                for item in cart
            ],
            "total": total,
            "paymentMethod": payment_method.value,
        }
        self.db.sales.add(sale)

        # 3. 库存扣减
        if quantities:
            self.db.inventory.save([
                {**p, "quantity": (p.get("quantity") or 0) - quantities[p["id"]]}
                if p.get("id") in quantities else p
                for p in products
            ])

        logger.info(f"结算完成: {total} ({payment_method.value})")
        return sale

    @staticmethod
    def _product_quantities(cart: List[Dict[str, Any]]) -> Dict[str, int]:
        quantities: Dict[str, int] = {}
        for item in cart:
            product_id = item.get("productId")
            if product_id:
                quantities[product_id] = quantities.get(product_id, 0) + item.get("quantity", 1)
        return quantities

    def filter(self, start: Optional[str] = None, end: Optional[str] = None,
               product_name: Optional[str] = None) -> List[Dict[str, Any]]:
        """按日期区间和商品名筛选销售记录，按时间倒序"""
        matched = []
        for sale in self.db.sales.get_all():
            sale_date = (sale.get("date") or "")[:10]
            if start and sale_date < start:
                continue
            if end and sale_date > end:
                continue
            if product_name and not any(
                    i.get("name") == product_name for i in sale.get("items", [])):
                continue
            matched.append(sale)
        return sorted(matched, key=lambda s: s.get("date") or "", reverse=True)
