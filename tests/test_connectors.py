"""Tests for store connectors."""

import json
import sys
from pathlib import Path
from unittest import mock

import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from tagvault.connectors.memory import MemoryConnector
from tagvault.connectors.webserver import HTTP_TIMEOUT, WebserverConnector
from tagvault.errors import (
    InvalidArgumentError,
    SerializationError,
    StoreError,
    TransportError,
    TransportTimeout,
)


def http_response(status, body):
    resp = mock.Mock()
    resp.status_code = status
    resp.text = body
    resp.json.side_effect = lambda: json.loads(body)
    return resp


def make_webserver(*responses, **kwargs):
    session = mock.Mock()
    session.request.side_effect = list(responses)
    return WebserverConnector("http://store.test/", session=session, **kwargs), session


def test_webserver_urls():
    """Trailing slashes are stripped; rows and tags hang off the base."""
    conn = WebserverConnector("http://store.test/v1///")
    assert conn.base_url == "http://store.test/v1"
    assert conn.rows_url == "http://store.test/v1/rows"
    assert conn.tags_url == "http://store.test/v1/tags"
    assert conn.timeout == HTTP_TIMEOUT
    assert conn.get_info()["store"] == "webserver"

    for bad in ["", "/", None]:
        try:
            WebserverConnector(bad)
            assert False, f"{bad!r} should be rejected"
        except InvalidArgumentError:
            pass
    print("  [PASS] Webserver URLs")


def test_webserver_post_row():
    conn, session = make_webserver(http_response(200, '{"data": "AA==", "id": "7"}'))
    stored = conn.post_row({"data": "AA==", "nonce": "AA==", "tags": ["r1"]})
    assert stored == {"data": "AA==", "id": "7"}

    args, kwargs = session.request.call_args
    assert args == ("POST", "http://store.test/rows")
    assert json.loads(kwargs["data"])["tags"] == ["r1"]
    assert kwargs["headers"]["Content-Type"] == "application/json"
    assert kwargs["timeout"] == HTTP_TIMEOUT


def test_webserver_post_tag_pair_ignores_body():
    conn, session = make_webserver(http_response(200, "not json at all"))
    assert conn.post_tag_pair({"random": "r1", "plain_encrypted": "AA==", "nonce": "AA=="}) is None
    assert session.request.call_args[0] == ("POST", "http://store.test/tags")


def test_webserver_error_status():
    """Non-200 is StoreError carrying status and body, on POST and GET."""
    conn, _ = make_webserver(
        http_response(500, "boom"),
        http_response(403, "forbidden"),
        http_response(404, "no such thing"),
    )
    for call, status, body in [
        (lambda: conn.post_row({}), 500, "boom"),
        (lambda: conn.post_tag_pair({}), 403, "forbidden"),
        (lambda: conn.fetch_rows(["r1"]), 404, "no such thing"),
    ]:
        try:
            call()
            assert False, f"HTTP {status} should raise"
        except StoreError as e:
            assert e.status == status
            assert e.body == body
            assert str(status) in str(e) and body in str(e)
    print("  [PASS] Error status surfaces as StoreError")


def test_webserver_fetch_filters():
    """Filtered fetches send tags as one comma-separated parameter."""
    conn, session = make_webserver(
        http_response(200, '[{"data": "AA=="}]'),
        http_response(200, "[]"),
        http_response(200, "null"),
    )
    assert conn.fetch_rows(["r1", "r2"]) == [{"data": "AA=="}]
    args, kwargs = session.request.call_args
    assert args == ("GET", "http://store.test/rows")
    assert kwargs["params"] == {"tags": "r1,r2"}

    assert conn.fetch_tag_pairs(["r3"]) == []
    assert session.request.call_args[1]["params"] == {"tags": "r3"}

    # Unfiltered; a JSON null reads as no pairs
    assert conn.fetch_tag_pairs() == []
    args, kwargs = session.request.call_args
    assert args == ("GET", "http://store.test/tags")
    assert kwargs["params"] is None


def test_webserver_bad_json():
    conn, _ = make_webserver(
        http_response(200, "<html>oops</html>"),
        http_response(200, '{"not": "a list"}'),
        http_response(200, "[1, 2"),
    )
    for call in [lambda: conn.fetch_rows(["r1"]), lambda: conn.fetch_tag_pairs(), lambda: conn.post_row({})]:
        try:
            call()
            assert False, "malformed body should raise"
        except SerializationError:
            pass


def test_webserver_timeout_and_network_errors():
    """requests failures become TransportTimeout / TransportError."""
    conn, session = make_webserver(
        requests.Timeout("slow"),
        requests.ConnectionError("refused"),
        timeout=2.5,
    )
    try:
        conn.fetch_rows(["r1"])
        assert False, "timeout should raise"
    except TransportTimeout as e:
        assert "2.5" in str(e)
    assert session.request.call_args[1]["timeout"] == 2.5

    try:
        conn.fetch_tag_pairs()
        assert False, "connection error should raise"
    except TransportTimeout:
        assert False, "a refused connection is not a timeout"
    except TransportError:
        pass
    print("  [PASS] Transport errors")


def test_webserver_unserializable_payload():
    conn, session = make_webserver()
    try:
        conn.post_row({"data": b"raw bytes"})
        assert False, "bytes can't go in JSON"
    except SerializationError:
        pass
    session.request.assert_not_called()


def test_webserver_close():
    """close() closes a session the connector made, never a borrowed one."""
    conn, session = make_webserver()
    conn.close()
    session.close.assert_not_called()

    conn = WebserverConnector("http://store.test")
    with mock.patch.object(conn.session, "close") as close:
        conn.close()
    close.assert_called_once_with()



def test_memory_store_filters_by_all_tags():
    store = MemoryConnector()
    a = store.post_row({"data": "", "nonce": "", "tags": ["r1", "r2"]})
    store.post_row({"data": "", "nonce": "", "tags": ["r1"]})

    assert a["id"]
    assert len(store.fetch_rows(["r1"])) == 2
    assert [r["id"] for r in store.fetch_rows(["r1", "r2"])] == [a["id"]]
    assert store.fetch_rows(["r3"]) == []
    assert store.fetch_rows([]) == []


def test_memory_store_returns_copies():
    store = MemoryConnector()
    store.post_row({"data": "x", "nonce": "", "tags": ["r1"]})
    store.fetch_rows(["r1"])[0]["data"] = "changed"
    assert store.rows[0]["data"] == "x"


def test_memory_store_tag_pairs():
    store = MemoryConnector()
    store.post_tag_pair({"random": "r1", "plain_encrypted": "", "nonce": ""})
    store.post_tag_pair({"random": "r2", "plain_encrypted": "", "nonce": ""})

    try:
        store.post_tag_pair({"random": "r1", "plain_encrypted": "", "nonce": ""})
        assert False, "duplicate random tag should be rejected"
    except StoreError as e:
        assert e.status == 409

    assert len(store.fetch_tag_pairs()) == 2
    assert [p["random"] for p in store.fetch_tag_pairs(["r2", "r9"])] == ["r2"]
    assert store.calls_to("post_tag_pair") == 3
    assert store.get_info() == {"store": "memory", "rows": 0, "tag_pairs": 2}


if __name__ == "__main__":
    print("Testing store connectors...\n")
    test_webserver_urls()
    test_webserver_post_row()
    test_webserver_post_tag_pair_ignores_body()
    test_webserver_error_status()
    test_webserver_fetch_filters()
    test_webserver_bad_json()
    test_webserver_timeout_and_network_errors()
    test_webserver_unserializable_payload()
    test_webserver_close()
    test_memory_store_filters_by_all_tags()
    test_memory_store_returns_copies()
    test_memory_store_tag_pairs()
    print(f"\n{'='*50}")
    print("All connector tests passed!")
