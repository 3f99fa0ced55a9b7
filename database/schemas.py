"""表结构定义 —— 业务表清单与封闭枚举。

每张业务表在本地存储中对应一个带版本号的键，在远端表格中对应一个
同名工作表（tab）。记录本身是扁平字典，字段名沿用远端表格的列名
（驼峰命名），便于与表格镜像双向同步。
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from config.settings import settings


class Role(str, Enum):
    """员工角色"""
    ADMIN = "Admin"
    MANAGER = "Manager"
    HAIR_STYLIST = "Hair Stylist"
    BEAUTICIAN = "Beautician"
    HOUSE_KEEPING = "House Keeping"


class AppointmentStatus(str, Enum):
    """预约状态（任意状态之间均可切换）"""
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PaymentMethod(str, Enum):
    """支付方式"""
    CASH = "Cash"
    CARD = "Card"
    UPI = "UPI"
    WALLET = "Wallet"


class SaleItemType(str, Enum):
    """销售明细类型"""
    SERVICE = "Service"
    PRODUCT = "Product"
    MEMBERSHIP = "Membership"
    PACKAGE = "Package"
    COMBO = "Combo"


class LeadStatus(str, Enum):
    """销售线索状态"""
    NEW = "New"
    CONTACTED = "Contacted"
    INTERESTED = "Interested"
    CONVERTED = "Converted"
    LOST = "Lost"


class NotificationType(str, Enum):
    """通知类型"""
    REMINDER = "reminder"
    ALERT = "alert"
    INFO = "info"
    STAFF = "staff"


class CatalogKind(str, Enum):
    """预约时选择的目录项类型"""
    SERVICE = "service"
    COMBO = "combo"


@dataclass(frozen=True)
class TableSpec:
    """业务表定义。

    Attributes:
        attr: ``SalonDatabase`` 上的属性名（如 ``coupon_templates``）。
        name: 存储键中的表名片段（如 ``coupon_templates``）。
        tab: 远端表格中的工作表名（如 ``CouponTemplates``）。
    """
    attr: str
    name: str
    tab: str

    def storage_key(self, version: Optional[str] = None) -> str:
        """本地存储键，如 ``salon_staff_v6``"""
        return f"salon_{self.name}_{version or settings.storage_key_version}"


TABLE_SPECS: List[TableSpec] = [
    TableSpec("staff", "staff", "Staff"),
    TableSpec("categories", "categories", "Categories"),
    TableSpec("services", "services", "Services"),
    TableSpec("combos", "combos", "Combos"),
    TableSpec("inventory", "inventory", "Inventory"),
    TableSpec("packages", "packages", "Packages"),
    TableSpec("customers", "customers", "Customers"),
    TableSpec("leads", "leads", "Leads"),
    TableSpec("appointments", "appointments", "Appointments"),
    TableSpec("sales", "sales", "Sales"),
    TableSpec("notifications", "notifications", "Notifications"),
    TableSpec("coupon_templates", "coupon_templates", "CouponTemplates"),
    TableSpec("attendance", "attendance", "Attendance"),
]

SPECS_BY_TAB: Dict[str, TableSpec] = {spec.tab: spec for spec in TABLE_SPECS}

# 镜像地址等设置项的存储键（不带版本号）
MIRROR_URL_KEY = "salon_google_sheet_url"
MIRROR_VIEW_URL_KEY = "salon_google_sheet_view_url"


def generate_id() -> str:
    """生成记录ID（随机 UUID 字符串）"""
    return str(uuid.uuid4())


def local_tz() -> ZoneInfo:
    """业务时区（默认 Asia/Kolkata）"""
    return ZoneInfo(settings.timezone)


def now_local() -> datetime:
    """业务时区的当前时间（带时区）"""
    return datetime.now(local_tz())


def today_local() -> str:
    """业务时区的今天，格式 YYYY-MM-DD"""
    return now_local().date().isoformat()


def utc_now_iso() -> str:
    """当前 UTC 时间的 ISO 字符串（毫秒精度，``Z`` 结尾）"""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    """解析 ISO 时间戳，兼容 ``Z`` 结尾；无时区信息时按 UTC 处理。

    Raises:
        ValueError: 不是合法的 ISO 时间戳。
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
