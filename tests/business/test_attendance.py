"""AttendanceLog tests."""
from datetime import datetime, timezone

import pytest

from business import AttendanceLog, BusinessRuleError

# 09:00 and 19:30 in Asia/Kolkata
LOGIN = datetime(2024, 3, 5, 3, 30, tzinfo=timezone.utc)
LOGOUT = datetime(2024, 3, 5, 14, 0, tzinfo=timezone.utc)


@pytest.fixture
def log(memory_db):
    return AttendanceLog(memory_db)


class TestPunch:

    def test_full_day(self, log, memory_db, stylist):
        record = log.punch_in(stylist["id"], now=LOGIN)
        assert record["date"] == "2024-03-05"
        assert record["userName"] == "Priya"
        assert record["loginTime"] == "2024-03-05T03:30:00Z"

        closed = log.punch_out(stylist["id"], now=LOGOUT)
        assert closed["logoutTime"] == "2024-03-05T14:00:00Z"

        summary = log.monthly_summary("2024-03")
        assert summary == [{
            "staffId": stylist["id"],
            "name": "Priya",
            "days": 1,
            "totalHours": 10.5,
            "overtimeHours": 1.5,
        }]

    def test_double_punch_in_rejected(self, log, stylist):
        log.punch_in(stylist["id"], now=LOGIN)
        with pytest.raises(BusinessRuleError):
            log.punch_in(stylist["id"], now=LOGIN)

    def test_punch_out_without_session(self, log, stylist):
        with pytest.raises(BusinessRuleError):
            log.punch_out(stylist["id"], now=LOGOUT)

    def test_inactive_staff(self, log, memory_db, stylist):
        memory_db.staff.update(stylist["id"], active=False)
        with pytest.raises(BusinessRuleError):
            log.punch_in(stylist["id"], now=LOGIN)


class TestDeviceBinding:

    def test_first_scan_binds_device(self, log, memory_db, stylist):
        log.punch_in(stylist["id"], device_id="phone-1", now=LOGIN)
        assert memory_db.staff.get_by_id(stylist["id"])["registeredDeviceId"] == "phone-1"

    def test_other_device_rejected(self, log, memory_db, stylist):
        memory_db.staff.update(stylist["id"], registeredDeviceId="phone-1")
        with pytest.raises(BusinessRuleError):
            log.punch_in(stylist["id"], device_id="phone-2", now=LOGIN)
        assert memory_db.attendance.count() == 0

    def test_reset_device(self, log, memory_db, stylist):
        memory_db.staff.update(stylist["id"], registeredDeviceId="phone-1")
        log.reset_device(stylist["id"])
        log.punch_in(stylist["id"], device_id="phone-2", now=LOGIN)
        assert memory_db.staff.get_by_id(stylist["id"])["registeredDeviceId"] == "phone-2"


class TestMonthlySummary:

    def test_sorted_by_total_hours(self, memory_db, log):
        memory_db.attendance.save([
            {"id": "1", "userId": "a", "userName": "A", "date": "2024-03-01",
             "loginTime": "2024-03-01T03:30:00Z", "logoutTime": "2024-03-01T08:30:00Z"},
            {"id": "2", "userId": "b", "userName": "B", "date": "2024-03-01",
             "loginTime": "2024-03-01T03:30:00Z", "logoutTime": "2024-03-01T13:30:00Z"},
            {"id": "3", "userId": "a", "userName": "A", "date": "2024-03-02",
             "loginTime": "2024-03-02T03:30:00Z", "logoutTime": None},
            {"id": "4", "userId": "a", "userName": "A", "date": "2024-02-28",
             "loginTime": "2024-02-28T03:30:00Z", "logoutTime": "2024-02-28T15:30:00Z"},
        ])
        summary = log.monthly_summary("2024-03")
        assert [(r["name"], r["days"], r["totalHours"], r["overtimeHours"]) for r in summary] == [
            ("B", 1, 10.0, 1.0),
            ("A", 2, 5.0, 0.0),
        ]
