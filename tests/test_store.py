"""
Tests for the store clients.
"""
import json
import pytest
import requests
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from junket_os.data.store import (
    ApiStore,
    LocalStore,
    StoreConnectionError,
    extract_records,
    get_store,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, raise_json=False):
        self.status_code = status_code
        self._payload = payload
        self._raise_json = raise_json

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._raise_json:
            raise ValueError("not json")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Returns queued responses (or raises queued exceptions) and records calls."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self):
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        return self._next()

    def post(self, url, **kwargs):
        self.calls.append(("POST", url, kwargs))
        return self._next()


class TestExtractRecords:
    """Payload-shape tolerance."""

    def test_bare_list(self):
        assert extract_records([{"id": 1}, {"id": 2}]) == [{"id": 1}, {"id": 2}]

    def test_data_envelope(self):
        assert extract_records({"data": [{"id": 1}]}) == [{"id": 1}]
        assert extract_records({"success": True, "data": [{"id": 1}]}) == [{"id": 1}]

    def test_failure_and_junk(self):
        assert extract_records({"success": False, "data": [{"id": 1}]}) == []
        assert extract_records({"data": None}) == []
        assert extract_records(None) == []
        assert extract_records("oops") == []

    def test_non_dict_entries_dropped(self):
        assert extract_records([{"id": 1}, None, 5]) == [{"id": 1}]


class TestLocalStore:
    """JSON-file collections."""

    def test_missing_collection_is_empty(self, tmp_path):
        store = LocalStore(tmp_path)

        assert store.get("customers") == []

    def test_reads_both_shapes(self, tmp_path):
        (tmp_path / "agents.json").write_text(json.dumps([{"id": "A"}]))
        (tmp_path / "customers.json").write_text(json.dumps({"data": [{"id": "c1"}]}))
        store = LocalStore(tmp_path)

        assert store.get("agents") == [{"id": "A"}]
        assert store.get("customers") == [{"id": "c1"}]

    def test_invalid_json_raises(self, tmp_path):
        (tmp_path / "trips.json").write_text("{not json")

        with pytest.raises(StoreConnectionError):
            LocalStore(tmp_path).get("trips")

    def test_save_appends_and_replaces(self, tmp_path):
        store = LocalStore(tmp_path / "store")

        saved = store.save("rolling_records", {"customer_id": "c1", "rolling_amount": 100})
        store.save("rolling_records", {"id": "r2", "rolling_amount": 5})
        store.save("rolling_records", {"id": "r2", "rolling_amount": 6})

        records = store.get("rolling_records")
        assert saved["id"]
        assert len(records) == 2
        assert records[-1] == {"id": "r2", "rolling_amount": 6}

    def test_health_check(self, tmp_path):
        assert LocalStore(tmp_path).health_check()[0] is True
        assert LocalStore(tmp_path / "missing").health_check()[0] is False


class TestApiStore:
    """REST client with a fake session."""

    def test_get_uses_endpoint_and_token(self):
        session = FakeSession(FakeResponse(payload={"success": True, "data": [{"id": "r1"}]}))
        store = ApiStore(base_url="http://api.test/api", token="tok", timeout=2, session=session)

        records = store.get("rolling_records")

        method, url, kwargs = session.calls[0]
        assert records == [{"id": "r1"}]
        assert url == "http://api.test/api/rolling-records"
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["timeout"] == 2

    def test_no_token_no_auth_header(self):
        store = ApiStore(base_url="http://api.test/api", token="", session=FakeSession())

        assert "Authorization" not in store.headers

    def test_404_is_empty(self):
        session = FakeSession(FakeResponse(status_code=404))
        store = ApiStore(base_url="http://api.test/api", session=session)

        assert store.get("transactions") == []

    def test_server_error_raises(self):
        session = FakeSession(FakeResponse(status_code=500))
        store = ApiStore(base_url="http://api.test/api", session=session)

        with pytest.raises(StoreConnectionError):
            store.get("trips")

    def test_timeout_raises(self):
        session = FakeSession(requests.Timeout("slow"))
        store = ApiStore(base_url="http://api.test/api", session=session)

        with pytest.raises(StoreConnectionError, match="timeout"):
            store.get("customers")

    def test_invalid_json_raises(self):
        session = FakeSession(FakeResponse(raise_json=True))
        store = ApiStore(base_url="http://api.test/api", session=session)

        with pytest.raises(StoreConnectionError):
            store.get("agents")

    def test_save_posts_record(self):
        session = FakeSession(FakeResponse(payload={"data": {"id": "srv-1", "amount": 10}}))
        store = ApiStore(base_url="http://api.test/api", session=session)

        saved = store.save("buy_in_out_records", {"amount": 10})

        method, url, kwargs = session.calls[0]
        assert method == "POST"
        assert url == "http://api.test/api/buy-in-out-records"
        assert kwargs["json"] == {"amount": 10}
        assert saved["id"] == "srv-1"

    def test_health_check(self):
        ok = ApiStore(base_url="http://api.test/api",
                      session=FakeSession(FakeResponse(payload={"status": "OK"})))
        down = ApiStore(base_url="http://api.test/api",
                        session=FakeSession(requests.ConnectionError("refused")))

        assert ok.health_check() == (True, "Connected successfully")
        assert ok.session.calls[0][1] == "http://api.test/health"
        assert down.health_check()[0] is False


class TestGetStore:

    def test_backend_selection(self):
        assert isinstance(get_store("api"), ApiStore)
        assert isinstance(get_store("local"), LocalStore)
