"""通知中心 —— 系统巡检（库存预警、会员到期提醒）与已读管理。"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from loguru import logger

from config.settings import settings
from database import SalonDatabase
from database.schemas import NotificationType, parse_timestamp
from .errors import BusinessRuleError


class NotificationCenter:
    """通知中心

    ``run_system_checks`` 由调度器定期调用，生成的通知按
    （类型, 关联ID）去重：同一对象存在未读通知时不再重复提醒。
    """

    def __init__(self, db: SalonDatabase) -> None:
        self.db = db

    def run_system_checks(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """执行一次系统巡检。

        - 库存数量 ≤ 最低阈值 → ``alert``
        - 会员将在 ``membership_alert_days`` 天内到期 → ``reminder``

        Returns:
            本次新建的通知。
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        created = []

        for product in self.db.inventory.get_all():
            quantity = product.get("quantity") or 0
            threshold = product.get("minThreshold") or 0
            if quantity <= threshold:
                record = self.db.create_notification(
                    NotificationType.ALERT,
                    "Low Stock Alert",
                    f"{product.get('name')} is running low ({quantity} left).",
                    related_id=product.get("id"),
                    dedupe=True,
                )
                if record:
                    created.append(record)

        horizon = now + timedelta(days=settings.membership_alert_days)
        for customer in self.db.customers.get_all():
            expiry_text = customer.get("membershipExpiry")
            if not customer.get("isMember") or not expiry_text:
                continue
            try:
                expiry = parse_timestamp(expiry_text)
            except ValueError:
                logger.debug(f"会员到期时间无法解析: {expiry_text}")
                continue
            if now < expiry <= horizon:
                days_left = (expiry - now).days
                record = self.db.create_notification(
                    NotificationType.REMINDER,
                    "Membership Expiring",
                    f"{customer.get('name')}'s membership expires in {days_left} days.",
                    related_id=customer.get("id"),
                    dedupe=True,
                )
                if record:
                    created.append(record)

        if created:
            logger.info(f"系统巡检生成 {len(created)} 条通知")
        return created

    def mark_read(self, notification_id: str) -> Dict[str, Any]:
        updated = self.db.notifications.update(notification_id, read=True)
        if updated is None:
            raise BusinessRuleError(f"Notification not found: {notification_id}")
        return updated

    def mark_all_read(self) -> int:
        """全部标记已读，返回被标记的数量"""
        records = self.db.notifications.get_all()
        unread = sum(1 for n in records if not n.get("read"))
        if unread:
            self.db.notifications.save([{**n, "read": True} for n in records])
        return unread

    def delete(self, notification_id: str) -> bool:
        return self.db.notifications.remove(notification_id)

    def unread_count(self) -> int:
        return self.db.unread_notification_count()
