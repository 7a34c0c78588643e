"""Row mapping and query shape of the REST repositories."""

import json
from datetime import UTC, datetime

import httpx
import pytest

from shared.dal import ResultRecord, StoreError
from shared.store import RestChatRepository, RestLeaderboardRepository, RestPresenceRepository, StoreClient

CREATED = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


class FakeStore:
    """Records requests and replies with canned JSON bodies."""

    def __init__(self, body=None, headers=None) -> None:
        self.body = body if body is not None else []
        self.headers = headers or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(200, json=self.body, headers=self.headers)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
async def client(store):
    store_client = StoreClient("https://store.example", "anon-key", transport=httpx.MockTransport(store))
    yield store_client
    await store_client.aclose()


def _row(**overrides):
    row = {
        "id": 5,
        "nickname": "podo",
        "total_time": 21.5,
        "captcha_time": 3.25,
        "round_times": [0.5, 0.6, 0.7, 0.8, 0.9],
        "created_at": "2026-03-02T12:00:00+00:00",
    }
    row.update(overrides)
    return row


class TestRestLeaderboardRepository:
    async def test_add_result_maps_columns(self, store, client):
        store.body = [_row()]
        record = ResultRecord(
            nickname="podo",
            total_time=21.5,
            verification_time=3.25,
            round_times=(0.5, 0.6, 0.7, 0.8, 0.9),
            created_at=CREATED,
        )

        saved = await RestLeaderboardRepository(client).add_result(record)

        sent = json.loads(store.last.content)
        assert sent["captcha_time"] == 3.25
        assert sent["round_times"] == [0.5, 0.6, 0.7, 0.8, 0.9]
        assert "id" not in sent
        assert saved.id == "5"
        assert saved.verification_time == 3.25

    async def test_list_totals_with_window(self, store, client):
        store.body = [{"id": 1, "total_time": 10}, {"id": 2, "total_time": 12.5}]

        totals = await RestLeaderboardRepository(client).list_totals(since=CREATED)

        assert totals == [("1", 10.0), ("2", 12.5)]
        params = store.last.url.params
        assert params["order"] == "total_time.asc"
        assert params["created_at"] == f"gte.{CREATED.isoformat()}"

    async def test_list_results_without_window(self, store, client):
        store.body = [_row(captcha_time=None, round_times=None)]

        [record] = await RestLeaderboardRepository(client).list_results(limit=10)

        assert record.verification_time == 0.0
        assert record.round_times == ()
        assert store.last.url.params["limit"] == "10"
        assert "created_at" not in store.last.url.params

    async def test_malformed_row(self, store, client):
        store.body = [{"id": 1}]
        with pytest.raises(StoreError, match="malformed"):
            await RestLeaderboardRepository(client).list_results()


class TestRestChatRepository:
    async def test_recent_messages_oldest_first(self, store, client):
        store.body = [
            {"id": 2, "nickname": "b", "message": "second", "created_at": "2026-03-02T12:00:02+00:00"},
            {"id": 1, "nickname": "a", "message": "first", "created_at": "2026-03-02T12:00:01+00:00"},
        ]

        messages = await RestChatRepository(client).recent_messages(limit=50)

        assert [m.message for m in messages] == ["first", "second"]
        assert store.last.url.params["order"] == "created_at.desc"

    async def test_messages_since_is_inclusive(self, store, client):
        await RestChatRepository(client).messages_since(CREATED)
        assert store.last.url.params["created_at"] == f"gte.{CREATED.isoformat()}"

    async def test_add_message(self, store, client):
        store.body = [{"id": 3, "nickname": "podo", "message": "hi", "created_at": "2026-03-02T12:00:00+00:00"}]

        record = await RestChatRepository(client).add_message("podo", "hi")

        assert record.id == "3"
        assert json.loads(store.last.content) == {"nickname": "podo", "message": "hi"}


class TestRestPresenceRepository:
    async def test_touch_upserts_by_nickname(self, store, client):
        await RestPresenceRepository(client).touch("podo", CREATED)

        assert store.last.url.params["on_conflict"] == "nickname"
        assert json.loads(store.last.content) == {"nickname": "podo", "last_seen": CREATED.isoformat()}

    async def test_count_since(self, store, client):
        store.headers = {"Content-Range": "0-0/4"}

        assert await RestPresenceRepository(client).count_since(CREATED) == 4
        assert store.last.url.params["last_seen"] == f"gte.{CREATED.isoformat()}"
