"""Report aggregation tests."""
import pytest

from business import reports


@pytest.fixture
def history(memory_db):
    memory_db.sales.save([
        {"id": "s1", "date": "2024-03-01T06:00:00.000Z", "total": 300,
         "items": [{"name": "Gel", "quantity": 2, "price": 150, "type": "Product"}]},
        {"id": "s2", "date": "2024-03-02T06:00:00.000Z", "total": 2000,
         "items": [{"name": "Annual Membership", "quantity": 1, "price": 2000, "type": "Membership"}]},
        {"id": "s3", "date": "2024-03-02T07:00:00.000Z", "total": 450,
         "items": [{"name": "Wax", "quantity": 3, "price": 150, "type": "Product"}]},
    ])
    memory_db.appointments.save([
        {"id": "a1", "customerId": "c1", "staffId": "st1", "serviceName": "Cut",
         "date": "2024-03-01", "price": 500, "status": "Completed"},
        {"id": "a2", "customerId": "c1", "staffId": "st1", "serviceName": "Cut",
         "date": "2024-03-02", "price": 500, "status": "Scheduled"},
        {"id": "a3", "customerId": "c2", "staffId": "st2", "serviceName": "Spa",
         "date": "2024-03-02", "price": 1500, "status": "Completed"},
    ])
    memory_db.customers.save([
        {"id": "c1", "name": "A", "walletBalance": 100},
        {"id": "c2", "name": "B", "walletBalance": 0},
    ])
    memory_db.inventory.save([
        {"id": "p1", "name": "Gel", "quantity": 2, "price": 150, "category": "Hair", "minThreshold": 5},
        {"id": "p2", "name": "Wax", "quantity": 10, "price": 100, "category": "Skin", "minThreshold": 2},
        {"id": "p3", "name": "Serum", "quantity": 1, "price": 400, "category": "Hair", "minThreshold": 1},
    ])
    memory_db.staff.save([{"id": "st1", "name": "Priya", "target": 2000}])
    return memory_db


class TestReports:

    def test_revenue_by_day(self, history):
        rows = reports.revenue_by_day(history, "2024-03-01", "2024-03-03")
        assert rows == [
            {"date": "2024-03-01", "retail": 300, "service": 500, "total": 800},
            {"date": "2024-03-02", "retail": 450, "service": 1500, "total": 1950},
            {"date": "2024-03-03", "retail": 0, "service": 0, "total": 0},
        ]

    def test_revenue_window_is_capped(self, history):
        rows = reports.revenue_by_day(history, "2024-01-01", "2024-03-31")
        assert len(rows) == 31
        assert rows[-1]["date"] == "2024-03-31"

    def test_top_products_and_services(self, history):
        assert reports.top_products(history) == [
            {"name": "Wax", "value": 3}, {"name": "Gel", "value": 2}]
        assert reports.popular_services(history, start="2024-03-01", end="2024-03-02") == [
            {"name": "Cut", "value": 2}, {"name": "Spa", "value": 1}]

    def test_customer_reports(self, history):
        assert reports.wallet_distribution(history) == {"withCredit": 1, "noCredit": 1}
        retention = reports.retention(history)
        assert (retention["new"], retention["returning"]) == (1, 1)
        assert retention["averageLifetimeValue"] == (2750 + 2000) / 2

    def test_inventory_reports(self, history):
        assert [p["id"] for p in reports.low_stock(history)] == ["p1", "p3"]
        assert reports.stock_value_by_category(history) == {"Hair": 700, "Skin": 1000}

    def test_staff_revenue(self, history):
        result = reports.staff_revenue(history, "st1", "2024-03")
        assert result["revenue"] == 500
        assert result["appointments"] == 1
        assert result["progress"] == 25.0
