"""业务层 —— 门店业务规则与工作流"""
from .appointments import AppointmentBook, Invoice
from .assistant import SalonAssistant, build_context
from .attendance import AttendanceLog
from .customers import CustomerBook
from .errors import BusinessRuleError
from .export import export_csv, to_csv
from .leads import LeadPipeline
from .notifications import NotificationCenter
from .sales import PointOfSale

__all__ = [
    "AppointmentBook",
    "AttendanceLog",
    "BusinessRuleError",
    "CustomerBook",
    "Invoice",
    "LeadPipeline",
    "NotificationCenter",
    "PointOfSale",
    "SalonAssistant",
    "build_context",
    "export_csv",
    "to_csv",
]
