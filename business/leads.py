"""销售线索 —— 登记、跟进评论、状态流转与转化为顾客。"""
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from database import SalonDatabase
from database.schemas import LeadStatus, generate_id, utc_now_iso
from .customers import CustomerBook
from .errors import BusinessRuleError


class LeadPipeline:
    """线索管道"""

    def __init__(self, db: SalonDatabase) -> None:
        self.db = db

    def _require(self, lead_id: str) -> Dict[str, Any]:
        lead = self.db.leads.get_by_id(lead_id)
        if lead is None:
            raise BusinessRuleError(f"Lead not found: {lead_id}")
        return lead

    def create(self, name: str, phone: str, email: str = "",
               source: str = "", notes: str = "") -> Dict[str, Any]:
        """登记新线索（状态 New）"""
        if not name or not name.strip():
            raise BusinessRuleError("Lead name is required")
        if not phone or not phone.strip():
            raise BusinessRuleError("Lead phone is required")
        lead = {
            "id": generate_id(),
            "name": name.strip(),
            "phone": phone.strip(),
            "email": email,
            "source": source,
            "status": LeadStatus.NEW.value,
            "notes": notes,
            "createdAt": utc_now_iso(),
            "comments": [],
        }
        self.db.leads.add(lead)
        return lead

    def set_status(self, lead_id: str,
                   status: Union[LeadStatus, str]) -> Dict[str, Any]:
        self._require(lead_id)
        return self.db.leads.update(lead_id, status=LeadStatus(status).value)

    def add_comment(self, lead_id: str, text: str,
                    author: str = "Admin") -> Dict[str, Any]:
        """追加跟进评论，空白内容拒绝"""
        if not text or not text.strip():
            raise BusinessRuleError("Comment cannot be empty")
        lead = self._require(lead_id)
        comment = {
            "id": generate_id(),
            "text": text.strip(),
            "author": author,
            "date": utc_now_iso(),
        }
        self.db.leads.update(
            lead_id, comments=list(lead.get("comments") or []) + [comment]
        )
        return comment

    def convert(self, lead_id: str) -> Dict[str, Any]:
        """把线索转化为顾客。

        先建顾客档案，再把线索标记为 Converted；两次写入之间没有事务。

        Returns:
            新建的顾客记录。
        """
        lead = self._require(lead_id)
        if lead.get("status") == LeadStatus.CONVERTED.value:
            raise BusinessRuleError("Lead already converted")
        customer = CustomerBook(self.db).register(
            lead.get("name", ""),
            phone=lead.get("phone", ""),
            email=lead.get("email") or "",
            notes=lead.get("notes") or "",
        )
        self.db.leads.update(lead_id, status=LeadStatus.CONVERTED.value)
        logger.info(f"线索已转化为顾客: {customer['name']}")
        return customer

    def by_status(self, status: Optional[Union[LeadStatus, str]] = None
                  ) -> List[Dict[str, Any]]:
        """按状态筛选，按创建时间倒序"""
        leads = self.db.leads.get_all()
        if status:
            leads = [lead for lead in leads
                     if lead.get("status") == LeadStatus(status).value]
        return sorted(leads, key=lambda lead: lead.get("createdAt") or "", reverse=True)
