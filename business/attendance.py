"""员工考勤 —— 签到/签退、设备绑定与月度汇总。

员工首次扫码签到时绑定设备，之后只能在同一设备上签到，
管理员可以重置绑定。
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from loguru import logger

from database import SalonDatabase
from database.schemas import generate_id, local_tz
from .errors import BusinessRuleError
from .rules import hours_worked, overtime_hours


def _stamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class AttendanceLog:
    """考勤记录

    Example::

        log = AttendanceLog(db)
        log.punch_in(staff_id, device_id="phone-1")
        ...
        log.punch_out(staff_id)
        summary = log.monthly_summary("2024-03")
    """

    def __init__(self, db: SalonDatabase) -> None:
        self.db = db

    def _now(self, now: Optional[datetime]) -> datetime:
        if now is None:
            return datetime.now(timezone.utc)
        return now if now.tzinfo else now.replace(tzinfo=timezone.utc)

    def _open_session(self, staff_id: str, day: str) -> Optional[Dict[str, Any]]:
        for record in self.db.attendance.get_all():
            if (record.get("userId") == staff_id and record.get("date") == day
                    and not record.get("logoutTime")):
                return record
        return None

    def punch_in(self, staff_id: str, device_id: Optional[str] = None,
                 now: Optional[datetime] = None) -> Dict[str, Any]:
        """签到。

        Raises:
            BusinessRuleError: 员工不存在或已停用、今天已有未签退的记录、
                设备与绑定设备不一致。
        """
        member = self.db.staff.get_by_id(staff_id)
        if member is None:
            raise BusinessRuleError(f"Staff not found: {staff_id}")
        if member.get("active") is False:
            raise BusinessRuleError("Staff member is inactive")

        now = self._now(now)
        day = now.astimezone(local_tz()).date().isoformat()
        if self._open_session(staff_id, day) is not None:
            raise BusinessRuleError("Already punched in today")

        if device_id:
            bound = member.get("registeredDeviceId")
            if not bound:
                self.db.staff.update(staff_id, registeredDeviceId=device_id)
                logger.info(f"设备已绑定: {member.get('name')} -> {device_id}")
            elif bound != device_id:
                raise BusinessRuleError("This device is not registered for this staff member")

        record = {
            "id": generate_id(),
            "userId": staff_id,
            "userName": member.get("name"),
            "date": day,
            "loginTime": _stamp(now),
            "logoutTime": None,
            "deviceId": device_id,
        }
        self.db.attendance.add(record)
        return record

    def punch_out(self, staff_id: str,
                  now: Optional[datetime] = None) -> Dict[str, Any]:
        """签退（需要今天有未签退的记录）"""
        now = self._now(now)
        day = now.astimezone(local_tz()).date().isoformat()
        session = self._open_session(staff_id, day)
        if session is None:
            raise BusinessRuleError("No open attendance session for today")
        return self.db.attendance.update(session["id"], logoutTime=_stamp(now))

    def reset_device(self, staff_id: str) -> Dict[str, Any]:
        """解除设备绑定"""
        updated = self.db.staff.update(staff_id, registeredDeviceId=None)
        if updated is None:
            raise BusinessRuleError(f"Staff not found: {staff_id}")
        return updated

    def monthly_summary(self, month: str) -> List[Dict[str, Any]]:
        """月度考勤汇总。

        Args:
            month: ``YYYY-MM``。

        Returns:
            每位员工一行：出勤天数、总工时、加班时长，按总工时降序。
        """
        rows: Dict[str, Dict[str, Any]] = {}
        for record in self.db.attendance.get_all():
            if not (record.get("date") or "").startswith(month):
                continue
            row = rows.setdefault(record.get("userId"), {
                "staffId": record.get("userId"),
                "name": record.get("userName"),
                "days": set(),
                "totalHours": 0.0,
                "overtimeHours": 0.0,
            })
            hours = hours_worked(record.get("loginTime"), record.get("logoutTime"))
            row["days"].add(record.get("date"))
            row["totalHours"] += hours
            row["overtimeHours"] += overtime_hours(hours)

        summary = [
            {**row, "days": len(row["days"]),
             "totalHours": round(row["totalHours"], 2),
             "overtimeHours": round(row["overtimeHours"], 2)}
            for row in rows.values()
        ]
        return sorted(summary, key=lambda r: r["totalHours"], reverse=True)
