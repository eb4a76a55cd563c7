# tests/test_telegram_relay.py
import pytest
import requests
from unittest.mock import MagicMock

from telecloud.core.exceptions import RangeNotSatisfiable, RelayError
from telecloud.storage_adapters.telegram_relay import TelegramRelay, resolve_range


def api_response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


def file_response(chunks, status_code=200, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.iter_content.return_value = iter(chunks)
    return response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def relay(session):
    return TelegramRelay(bot_token="123:ABC", chat_id="-100", api_base="https://tg.test/", session=session)


def test_requires_credentials(monkeypatch):
    monkeypatch.setattr("telecloud.storage_adapters.telegram_relay.TELEGRAM_BOT_TOKEN", None)
    with pytest.raises(ValueError):
        TelegramRelay(bot_token=None, chat_id="-100", session=MagicMock())


def test_store_sends_document(relay, session):
    session.post.return_value = api_response({
        "ok": True,
        "result": {"message_id": 77, "document": {"file_id": "BQACAgI", "file_size": 5}},
    })

    stored = relay.store(b"hello", "not.txt", "text/plain")

    assert (stored.handle, stored.message_id, stored.size) == ("BQACAgI", 77, 5)
    args, kwargs = session.post.call_args
    assert args[0] == "https://tg.test/bot123:ABC/sendDocument"
    assert kwargs["data"] == {"chat_id": "-100", "caption": "📁 not.txt"}
    assert kwargs["files"] == {"document": ("not.txt", b"hello", "text/plain")}


def test_store_api_error_carries_upstream_status(relay, session):
    session.post.return_value = api_response(
        {"ok": False, "error_code": 413, "description": "Request Entity Too Large"}, status_code=413
    )
    with pytest.raises(RelayError) as exc_info:
        relay.store(b"x", "a.bin", "application/octet-stream")
    assert exc_info.value.upstream_status == 413
    assert "Request Entity Too Large" in exc_info.value.message
    assert exc_info.value.status_code == 503


def test_store_network_error(relay, session):
    session.post.side_effect = requests.ConnectionError("bağlantı reddedildi")
    with pytest.raises(RelayError):
        relay.store(b"x", "a.txt", "text/plain")


def test_store_invalid_json(relay, session):
    response = MagicMock(status_code=502)
    response.json.side_effect = ValueError("not json")
    session.post.return_value = response
    with pytest.raises(RelayError) as exc_info:
        relay.store(b"x", "a.txt", "text/plain")
    assert exc_info.value.upstream_status == 502


def test_fetch_stream_full(relay, session):
    session.post.return_value = api_response({"ok": True, "result": {"file_path": "documents/file_1.txt", "file_size": 10}})
    response = file_response([b"01234", b"56789"])
    session.get.return_value = response

    stream = relay.fetch_stream("BQACAgI")

    assert stream.total_size == 10
    assert not stream.is_partial
    assert b"".join(stream) == b"0123456789"
    response.close.assert_called_once()
    args, kwargs = session.get.call_args
    assert args[0] == "https://tg.test/file/bot123:ABC/documents/file_1.txt"
    assert kwargs["headers"] == {}
    assert kwargs["stream"] is True


def test_fetch_stream_partial_content(relay, session):
    session.post.return_value = api_response({"ok": True, "result": {"file_path": "f", "file_size": 10}})
    session.get.return_value = file_response([b"2345"], status_code=206)

    stream = relay.fetch_stream("h", byte_range=(2, 5))

    assert session.get.call_args.kwargs["headers"] == {"Range": "bytes=2-5"}
    assert (stream.start, stream.end, stream.total_size) == (2, 5, 10)
    assert b"".join(stream) == b"2345"


def test_fetch_stream_slices_when_server_ignores_range(relay, session):
    session.post.return_value = api_response({"ok": True, "result": {"file_path": "f", "file_size": 10}})
    session.get.return_value = file_response([b"012", b"3456", b"789"], status_code=200)

    stream = relay.fetch_stream("h", byte_range=(2, None))

    assert stream.content_length == 8
    assert b"".join(stream) == b"23456789"


def test_fetch_stream_unsatisfiable_range(relay, session):
    session.post.return_value = api_response({"ok": True, "result": {"file_path": "f", "file_size": 10}})
    with pytest.raises(RangeNotSatisfiable):
        relay.fetch_stream("h", byte_range=(10, None))
    session.get.assert_not_called()


def test_fetch_stream_download_error(relay, session):
    session.post.return_value = api_response({"ok": True, "result": {"file_path": "f", "file_size": 10}})
    response = file_response([], status_code=404)
    session.get.return_value = response
    with pytest.raises(RelayError) as exc_info:
        relay.fetch_stream("h")
    assert exc_info.value.upstream_status == 404
    response.close.assert_called_once()


def test_release_is_best_effort(relay, session):
    session.post.return_value = api_response({"ok": True, "result": True})
    assert relay.release(77) is True

    session.post.return_value = api_response({"ok": False, "error_code": 400, "description": "message to delete not found"})
    assert relay.release(77) is False


def test_health(relay, session):
    session.post.side_effect = [
        api_response({"ok": True, "result": {"id": 1}}),
        api_response({"ok": False, "error_code": 400, "description": "chat not found"}),
    ]
    assert relay.health() == {"bot_token_valid": True, "chat_accessible": False}


@pytest.mark.parametrize("byte_range, expected", [
    (None, None),
    ((0, 9), (0, 9)),
    ((5, None), (5, 9)),
    ((5, 500), (5, 9)),
])
def test_resolve_range(byte_range, expected):
    assert resolve_range(byte_range, 10) == expected


@pytest.mark.parametrize("byte_range", [(10, None), (5, 2)])
def test_resolve_range_unsatisfiable(byte_range):
    with pytest.raises(RangeNotSatisfiable):
        resolve_range(byte_range, 10)
