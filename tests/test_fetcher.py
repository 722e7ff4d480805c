"""Tests for the API fetcher and envelope handling."""

import logging

import pytest
import requests

from relgraph.fetcher import (
    RELATIONSHIPS_PATH,
    THINGS_PATH,
    FetchError,
    GraphFetcher,
    parse_relationships,
    parse_things,
    unwrap_envelope,
)

THINGS_BODY = {
    "success": True,
    "data": [
        {"id": 1, "name": "Alice", "type": "person", "behaviorId": "b1"},
        {"id": 2, "name": "Sensor-1", "type": "machine", "description": None},
    ],
    "count": 2,
}

RELATIONSHIPS_BODY = {
    "success": True,
    "data": {
        "data": [
            {"id": "r1", "sourceId": 1, "targetId": 2, "type": "owns", "name": "Owns"},
        ],
        "count": 1,
    },
}


class FakeResponse:
    def __init__(self, payload=None, status_code=200, invalid_json=False):
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeSession:
    """Session answering GETs from a path -> response (or exception) table."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        self.requests.append((url, headers, timeout))
        for path, answer in self.routes.items():
            if url.endswith(path):
                if isinstance(answer, Exception):
                    raise answer
                return answer
        raise requests.ConnectionError(f"no route to {url}")

    def close(self):
        self.closed = True


def make_fetcher(things=None, relationships=None):
    session = FakeSession({
        THINGS_PATH: things if things is not None else FakeResponse(THINGS_BODY),
        RELATIONSHIPS_PATH: relationships if relationships is not None else FakeResponse(RELATIONSHIPS_BODY),
    })
    return GraphFetcher("http://api.test/", timeout=5, session=session), session


def test_unwrap_plain_list():
    """Test the flat envelope."""
    assert unwrap_envelope(THINGS_BODY) == THINGS_BODY["data"]


def test_unwrap_page_envelope():
    """Test the nested page envelope."""
    assert unwrap_envelope(RELATIONSHIPS_BODY) == RELATIONSHIPS_BODY["data"]["data"]


def test_unwrap_missing_data():
    """Test that a successful response without data is empty."""
    assert unwrap_envelope({"success": True}) == []
    assert unwrap_envelope({"success": True, "data": {"data": None, "count": 0}}) == []


def test_unwrap_failure_envelope():
    """Test that success=false raises with the server's message."""
    with pytest.raises(FetchError, match="database unavailable"):
        unwrap_envelope({"success": False, "error": "database unavailable"}, "things")


@pytest.mark.parametrize("payload", [[1, 2], "ok", {"success": True, "data": "nope"}])
def test_unwrap_bad_shapes(payload):
    """Test that unexpected bodies raise FetchError."""
    with pytest.raises(FetchError):
        unwrap_envelope(payload, "things")


def test_parse_things_keeps_extra_fields():
    """Test record conversion and pass-through of unknown fields."""
    entities = parse_things(THINGS_BODY["data"])

    assert [entity.id for entity in entities] == [1, 2]
    assert entities[0].extra == {"behaviorId": "b1"}
    assert entities[1].description == ""


def test_malformed_records_are_skipped(caplog):
    """Test that records without required fields are skipped with a warning."""
    records = [
        {"id": "r1", "sourceId": 1, "targetId": 2, "type": "owns"},
        {"id": "r2", "sourceId": 1},
        {"name": "no id"},
    ]

    with caplog.at_level(logging.WARNING, logger="relgraph.fetcher"):
        relationships = parse_relationships(records)

    assert [relationship.id for relationship in relationships] == ["r1"]
    assert relationships[0].source_id == 1
    assert "Skipping malformed relationship record" in caplog.text


@pytest.mark.asyncio
async def test_fetch_both_collections():
    """Test concurrent fetching of things and relationships."""
    fetcher, session = make_fetcher()

    entities, relationships = await fetcher.fetch()

    assert [entity.name for entity in entities] == ["Alice", "Sensor-1"]
    assert [relationship.id for relationship in relationships] == ["r1"]

    urls = sorted(url for url, _, _ in session.requests)
    assert urls == ["http://api.test/api/v1/relationships", "http://api.test/api/v1/things"]
    for _, headers, timeout in session.requests:
        assert headers == {"Accept": "application/json"}
        assert timeout == 5


@pytest.mark.asyncio
async def test_fetch_fails_if_either_request_fails():
    """Test that one failed collection fails the whole fetch."""
    fetcher, _ = make_fetcher(relationships=FakeResponse({"success": False, "error": "boom"}))

    with pytest.raises(FetchError) as exc_info:
        await fetcher.fetch()

    assert exc_info.value.endpoint == RELATIONSHIPS_PATH
    assert "boom" in str(exc_info.value)


def test_timeout_maps_to_fetch_error():
    """Test that a request timeout is reported as a FetchError."""
    fetcher, _ = make_fetcher(things=requests.Timeout("read timed out"))

    with pytest.raises(FetchError, match="timed out"):
        fetcher.fetch_things()


def test_http_error_maps_to_fetch_error():
    """Test that HTTP error statuses are reported as FetchError."""
    fetcher, _ = make_fetcher(things=FakeResponse(status_code=503))

    with pytest.raises(FetchError, match="503"):
        fetcher.fetch_things()


def test_invalid_json_maps_to_fetch_error():
    """Test that an unparsable body is reported as FetchError."""
    fetcher, _ = make_fetcher(things=FakeResponse(invalid_json=True))

    with pytest.raises(FetchError, match="invalid JSON"):
        fetcher.fetch_things()


def test_close_closes_session():
    """Test releasing the HTTP session."""
    fetcher, session = make_fetcher()
    fetcher.close()
    assert session.closed
