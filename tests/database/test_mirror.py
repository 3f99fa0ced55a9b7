"""RemoteMirrorClient tests against a mocked requests session."""
import json

import pytest
import requests

from database import MemoryStorageAdapter, RemoteMirrorClient
from database.schemas import MIRROR_URL_KEY

URL = "https://script.google.com/macros/s/abc/exec"


@pytest.fixture
def client(fake_session):
    return RemoteMirrorClient(URL, session=fake_session, timeout=10)


class TestConfiguration:

    def test_not_configured_without_url(self, fake_session):
        client = RemoteMirrorClient(session=fake_session)
        assert client.is_configured() is False
        result = client.read_all()
        assert result.ok is False
        assert result.message == "Script URL not configured"
        fake_session.get.assert_not_called()

    def test_write_without_url_does_not_post(self, fake_session):
        client = RemoteMirrorClient(session=fake_session)
        assert client.write("Staff", []).message == "Script URL not configured"
        fake_session.post.assert_not_called()

    def test_url_is_persisted_in_storage(self, fake_session):
        storage = MemoryStorageAdapter()
        RemoteMirrorClient(storage=storage, session=fake_session).set_script_url(URL)
        assert storage.get(MIRROR_URL_KEY) == URL
        assert RemoteMirrorClient(storage=storage, session=fake_session).get_script_url() == URL

    def test_view_url(self, fake_session):
        storage = MemoryStorageAdapter()
        client = RemoteMirrorClient(storage=storage, session=fake_session)
        client.set_view_url("https://docs.google.com/spreadsheets/d/xyz")
        assert client.get_view_url() == "https://docs.google.com/spreadsheets/d/xyz"


class TestReadAll:

    def test_success_decodes_json_cells(self, client, fake_session, response_factory):
        fake_session.get.return_value = response_factory({
            "status": "success",
            "data": {
                "Staff": [{"id": "s1", "specialties": '["Cut"]'}],
                "Sales": "not-a-list",
            },
        })
        result = client.read_all()
        assert result.ok
        assert result.data == {"Staff": [{"id": "s1", "specialties": ["Cut"]}], "Sales": []}
        fake_session.get.assert_called_once_with(URL, params={"action": "readAll"}, timeout=10)

    def test_remote_error_status(self, client, fake_session, response_factory):
        fake_session.get.return_value = response_factory(
            {"status": "error", "message": "Sheet missing"})
        result = client.read_all()
        assert result.ok is False
        assert result.message == "Sheet missing"

    def test_network_failure(self, client, fake_session):
        fake_session.get.side_effect = requests.ConnectionError("offline")
        result = client.read_all()
        assert result.ok is False
        assert result.message == "Failed to fetch from Google Sheets"

    def test_http_error(self, client, fake_session, response_factory):
        fake_session.get.return_value = response_factory(None, status_code=500)
        assert client.read_all().message == "HTTP 500"

    def test_invalid_json(self, client, fake_session, response_factory):
        fake_session.get.return_value = response_factory(json_error=True)
        assert client.read_all().ok is False


class TestReadPage:

    def test_page_params_and_total(self, client, fake_session, response_factory):
        fake_session.get.return_value = response_factory({
            "status": "success",
            "data": [{"id": "c1"}, {"id": "c2"}],
            "total": 42,
        })
        result = client.read_page("Customers", page=2, page_size=2)
        assert result.ok
        assert result.total == 42
        assert [r["id"] for r in result.data] == ["c1", "c2"]
        fake_session.get.assert_called_once_with(
            URL,
            params={"action": "readPage", "table": "Customers", "page": 2, "pageSize": 2},
            timeout=10,
        )

    def test_network_failure(self, client, fake_session):
        fake_session.get.side_effect = requests.Timeout("slow")
        assert client.read_page("Customers").message == "Failed to fetch page from Google Sheets"


class TestWrite:

    def test_posts_text_plain_json_body(self, client, fake_session):
        result = client.write("Sales", [{"id": "x1", "items": [{"name": "Gel"}], "total": 300}])
        assert result.ok
        args, kwargs = fake_session.post.call_args
        assert args == (URL,)
        assert kwargs["headers"] == {"Content-Type": "text/plain;charset=utf-8"}
        body = json.loads(kwargs["data"].decode("utf-8"))
        assert body == {
            "action": "write",
            "tab": "Sales",
            "data": [{"id": "x1", "items": '[{"name": "Gel"}]', "total": 300}],
        }

    def test_network_failure(self, client, fake_session):
        fake_session.post.side_effect = requests.ConnectionError("offline")
        result = client.write("Sales", [])
        assert result.ok is False
        assert result.message == "Failed to write to Google Sheets"
