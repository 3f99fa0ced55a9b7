"""SyncOrchestrator tests: pull, pull-once, push-all."""
import requests


class TestPull:

    def test_not_configured(self, memory_db):
        result = memory_db.sync.pull()
        assert result.success is False
        assert result.message == "Cloud integration (Sheets) not configured."

    def test_pull_overrides_local_without_echo_push(self, mirrored_db, fake_session, response_factory):
        mirrored_db.customers.override_local([{"id": "local-only"}])
        fake_session.get.return_value = response_factory({
            "status": "success",
            "data": {
                "Customers": [{"id": "c1", "walletBalance": "500", "isMember": "TRUE"}],
                "Appointments": [{
                    "id": "a1",
                    "date": "2024-03-04T18:30:00.000Z",
                    "time": "1899-12-30T14:30:00.000Z",
                }],
                "UnknownTab": [{"id": "z"}],
            },
        })
        calls = []
        mirrored_db.notifier.subscribe(lambda: calls.append(1))

        result = mirrored_db.sync.pull()

        assert result.success is True
        assert result.message == "Data synchronized from Google Sheets."
        assert sorted(result.tables) == ["Appointments", "Customers"]
        assert mirrored_db.customers.get_all() == [
            {"id": "c1", "walletBalance": 500, "isMember": True}
        ]
        appt = mirrored_db.appointments.get_all()[0]
        assert (appt["date"], appt["time"]) == ("2024-03-05", "14:30")
        assert calls == [1]
        fake_session.post.assert_not_called()

    def test_tabs_missing_remotely_are_left_alone(self, mirrored_db, fake_session, response_factory):
        mirrored_db.staff.override_local([{"id": "s1"}])
        fake_session.get.return_value = response_factory({"status": "success", "data": {}})
        assert mirrored_db.sync.pull().success
        assert mirrored_db.staff.get_all() == [{"id": "s1"}]

    def test_failed_pull_keeps_local_data(self, mirrored_db, fake_session):
        mirrored_db.staff.override_local([{"id": "s1"}])
        fake_session.get.side_effect = requests.ConnectionError("offline")
        result = mirrored_db.sync.pull()
        assert result.success is False
        assert result.message == "Failed to fetch from Google Sheets"
        assert mirrored_db.staff.get_all() == [{"id": "s1"}]


class TestPullOnce:

    def test_only_first_call_hits_the_mirror(self, mirrored_db, fake_session):
        assert mirrored_db.sync.has_pulled is False
        first = mirrored_db.sync.pull_once()
        second = mirrored_db.sync.pull_once()
        assert first is second
        assert mirrored_db.sync.has_pulled is True
        assert fake_session.get.call_count == 1


class TestPushAll:

    def test_pushes_every_table(self, mirrored_db, fake_session):
        result = mirrored_db.sync.push_all()
        assert result.success is True
        assert len(result.tables) == 13
        assert fake_session.post.call_count == 13

    def test_reports_failed_tabs(self, mirrored_db, fake_session, response_factory):
        fake_session.post.return_value = response_factory({"status": "error", "message": "quota"})
        result = mirrored_db.sync.push_all()
        assert result.success is False
        assert len(result.failed) == 13
        assert result.message.startswith("Failed to push: Staff")

    def test_not_configured(self, memory_db):
        assert memory_db.sync.push_all().success is False


class TestPagedPull:

    @staticmethod
    def _customers(start, stop):
        return [{"id": f"c{i}", "name": f"Customer {i}"} for i in range(start, stop)]

    def _serve(self, fake_session, response_factory, truncated, pages):
        def get(url, params=None, timeout=None):
            if params["action"] == "readAll":
                return response_factory({"status": "success", "data": {"Customers": truncated}})
            page = pages.get((params["table"], params["page"]))
            if page is None:
                return response_factory({"status": "error", "message": "timeout"})
            return response_factory({"status": "success", "data": page, "total": 45})
        fake_session.get.side_effect = get

    def test_truncated_tab_is_completed_page_by_page(self, mirrored_db, fake_session, response_factory):
        pages = {
            ("Customers", 1): self._customers(0, 20),
            ("Customers", 2): self._customers(20, 40),
            ("Customers", 3): self._customers(40, 45),
        }
        self._serve(fake_session, response_factory, self._customers(0, 20), pages)

        result = mirrored_db.sync.pull()

        assert result.success is True
        assert result.tables == ["Customers"]
        assert mirrored_db.customers.count() == 45
        assert mirrored_db.customers.get_all()[-1]["id"] == "c44"
        read_pages = [c.kwargs["params"].get("page") for c in fake_session.get.call_args_list[1:]]
        assert read_pages == [1, 2, 3]

    def test_failed_page_keeps_local_rows(self, mirrored_db, fake_session, response_factory):
        local = self._customers(0, 30)
        mirrored_db.customers.override_local(local)
        self._serve(fake_session, response_factory, self._customers(0, 20),
                    {("Customers", 1): self._customers(0, 20)})

        result = mirrored_db.sync.pull()

        assert result.success is True
        assert "Customers" not in result.tables
        assert mirrored_db.customers.get_all() == local

    def test_short_tab_skips_paging(self, mirrored_db, fake_session, response_factory):
        self._serve(fake_session, response_factory, self._customers(0, 5), {})
        assert mirrored_db.sync.pull().success
        assert mirrored_db.customers.count() == 5
        assert fake_session.get.call_count == 1


class TestBlankNumericCells:

    def test_blank_cells_do_not_break_checks_or_reports(self, mirrored_db, fake_session, response_factory):
        from business import NotificationCenter
        from business import reports

        fake_session.get.return_value = response_factory({
            "status": "success",
            "data": {
                "Inventory": [
                    {"id": "p1", "name": "Gel", "quantity": "2", "price": "350", "minThreshold": "5"},
                    {"id": "p2", "name": "Wax", "quantity": "8", "price": "", "minThreshold": ""},
                ],
                "Customers": [
                    {"id": "c1", "name": "Asha", "walletBalance": "", "isMember": ""},
                    {"id": "c2", "name": "Ravi", "walletBalance": "300", "isMember": "FALSE"},
                ],
                "Sales": [{"id": "s1", "date": "2024-03-05", "total": "", "items": ""}],
            },
        })
        assert mirrored_db.sync.pull().success

        wax = mirrored_db.inventory.get_by_id("p2")
        assert (wax["price"], wax["minThreshold"]) == (0, 0)
        assert mirrored_db.customers.get_by_id("c1")["walletBalance"] == 0

        created = NotificationCenter(mirrored_db).run_system_checks()
        assert [n["relatedId"] for n in created] == ["p1"]
        assert [p["id"] for p in reports.low_stock(mirrored_db)] == ["p1"]
        assert reports.wallet_distribution(mirrored_db) == {"withCredit": 1, "noCredit": 1}
        assert reports.stock_value_by_category(mirrored_db) == {"Uncategorized": 700}
