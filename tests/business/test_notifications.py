"""NotificationCenter tests."""
from datetime import timedelta

import pytest

from business import NotificationCenter


@pytest.fixture
def center(memory_db):
    return NotificationCenter(memory_db)


class TestSystemChecks:

    def test_low_stock_alert(self, center, memory_db, shampoo, fixed_now):
        memory_db.inventory.update(shampoo["id"], quantity=3)
        created = center.run_system_checks(now=fixed_now)
        assert len(created) == 1
        assert created[0]["type"] == "alert"
        assert created[0]["relatedId"] == shampoo["id"]

    def test_well_stocked_is_quiet(self, center, shampoo, member, fixed_now):
        assert center.run_system_checks(now=fixed_now) == []

    def test_membership_expiring_soon(self, center, memory_db, member, fixed_now):
        memory_db.customers.update(
            member["id"], membershipExpiry=(fixed_now + timedelta(days=3)).isoformat())
        created = center.run_system_checks(now=fixed_now)
        assert [(n["type"], n["relatedId"]) for n in created] == [("reminder", member["id"])]

    def test_expired_membership_not_reminded(self, center, memory_db, member, fixed_now):
        memory_db.customers.update(
            member["id"], membershipExpiry=(fixed_now - timedelta(days=1)).isoformat())
        assert center.run_system_checks(now=fixed_now) == []

    def test_repeated_checks_are_deduplicated(self, center, memory_db, shampoo, fixed_now):
        memory_db.inventory.update(shampoo["id"], quantity=0)
        center.run_system_checks(now=fixed_now)
        assert center.run_system_checks(now=fixed_now) == []
        assert memory_db.notifications.count() == 1

    def test_alert_repeats_once_read(self, center, memory_db, shampoo, fixed_now):
        memory_db.inventory.update(shampoo["id"], quantity=0)
        first = center.run_system_checks(now=fixed_now)[0]
        center.mark_read(first["id"])
        assert len(center.run_system_checks(now=fixed_now)) == 1


class TestReadState:

    def test_mark_all_read_and_delete(self, center, memory_db):
        a = memory_db.create_notification("info", "Hello", "one")
        memory_db.create_notification("info", "Hello", "two")
        assert center.unread_count() == 2
        assert center.mark_all_read() == 2
        assert center.unread_count() == 0
        assert center.mark_all_read() == 0
        assert center.delete(a["id"]) is True
        assert memory_db.notifications.count() == 1
