"""Tests for bifrost.websocket: the four-callback handoff."""

from typing import Any

import pytest

from bifrost.app import Bifrost
from bifrost.exceptions import RegistrationClosedError
from bifrost.websocket import WebSocket, WebSocketHandlers

from tests.conftest import WebSocketCapture, make_ws_scope

CONNECT = {"type": "websocket.connect"}


def _text(data: str) -> dict[str, Any]:
    return {"type": "websocket.receive", "text": data}


class TestWebSocket:
    async def test_accept(self) -> None:
        cap = WebSocketCapture()
        ws = WebSocket(make_ws_scope(), cap.send)
        await ws.accept()
        assert cap.sent[0]["type"] == "websocket.accept"

    async def test_send_variants(self) -> None:
        cap = WebSocketCapture()
        ws = WebSocket(make_ws_scope(), cap.send)
        await ws.send("hi")
        await ws.send(b"\x00")
        await ws.send_json({"k": 1})
        assert cap.sent == [
            {"type": "websocket.send", "text": "hi"},
            {"type": "websocket.send", "bytes": b"\x00"},
            {"type": "websocket.send", "text": '{"k":1}'},
        ]
        assert ws.sent_count == 3

    async def test_close(self) -> None:
        cap = WebSocketCapture()
        ws = WebSocket(make_ws_scope(), cap.send)
        await ws.close(code=4000, reason="done")
        assert cap.sent == [{"type": "websocket.close", "code": 4000, "reason": "done"}]

    def test_properties(self) -> None:
        cap = WebSocketCapture()
        ws = WebSocket(
            make_ws_scope(path="/chat", headers={"X-Custom": "val"}),
            cap.send,
        )
        assert ws.path == "/chat"
        assert ws.headers["x-custom"] == "val"
        assert ws.client == ("127.0.0.1", 9999)


class TestHandoff:
    async def test_callbacks_in_order(self) -> None:
        events: list[Any] = []

        async def on_message(ws, data):
            events.append(("message", data))
            await ws.send(f"echo: {data}")

        handlers = WebSocketHandlers(
            open=lambda ws: events.append("open"),
            message=on_message,
            close=lambda ws, code, reason: events.append(("close", code, reason)),
            drain=lambda ws: events.append("drain"),
        )
        app = Bifrost()
        app.websocket(handlers)

        cap = WebSocketCapture([
            CONNECT,
            _text("ping"),
            {"type": "websocket.disconnect", "code": 1001, "reason": "bye"},
        ])
        await app(make_ws_scope(path="/any/path"), cap.receive, cap.send)

        assert events == ["open", ("message", "ping"), "drain", ("close", 1001, "bye")]
        assert cap.sent[0]["type"] == "websocket.accept"
        assert cap.sent[1] == {"type": "websocket.send", "text": "echo: ping"}

    async def test_binary_message(self) -> None:
        received: list[Any] = []
        app = Bifrost()
        app.websocket(WebSocketHandlers(message=lambda ws, data: received.append(data)))

        cap = WebSocketCapture([CONNECT, {"type": "websocket.receive", "bytes": b"\x01\x02"}])
        await app(make_ws_scope(), cap.receive, cap.send)
        assert received == [b"\x01\x02"]

    async def test_drain_skipped_when_nothing_sent(self) -> None:
        drained: list[str] = []
        app = Bifrost()
        app.websocket(WebSocketHandlers(
            message=lambda ws, data: None,
            drain=lambda ws: drained.append("drain"),
        ))
        cap = WebSocketCapture([CONNECT, _text("quiet")])
        await app(make_ws_scope(), cap.receive, cap.send)
        assert drained == []

    async def test_last_registration_wins(self) -> None:
        calls: list[str] = []
        app = Bifrost()
        app.websocket(WebSocketHandlers(open=lambda ws: calls.append("first")))
        app.websocket(WebSocketHandlers(open=lambda ws: calls.append("second")))
        cap = WebSocketCapture([CONNECT])
        await app(make_ws_scope(), cap.receive, cap.send)
        assert calls == ["second"]

    async def test_failing_callback_closes_1011(self) -> None:
        def explode(ws, data):
            raise ValueError("bad frame")

        app = Bifrost()
        app.websocket(WebSocketHandlers(message=explode))
        cap = WebSocketCapture([CONNECT, _text("x"), _text("never")])
        await app(make_ws_scope(), cap.receive, cap.send)
        assert cap.sent[-1]["type"] == "websocket.close"
        assert cap.sent[-1]["code"] == 1011

    async def test_upgrade_skips_middleware(self) -> None:
        touched: list[str] = []
        app = Bifrost()
        app.use(lambda request, response: touched.append("mw"))
        app.websocket(WebSocketHandlers())
        cap = WebSocketCapture([CONNECT])
        await app(make_ws_scope(), cap.receive, cap.send)
        assert touched == []

    async def test_no_handlers_rejected(self) -> None:
        app = Bifrost()
        cap = WebSocketCapture([CONNECT])
        await app(make_ws_scope(), cap.receive, cap.send)
        assert cap.sent == [{"type": "websocket.close", "code": 1008}]

    async def test_livereload_accepts_without_handlers(self) -> None:
        app = Bifrost(livereload=True)
        cap = WebSocketCapture([CONNECT])
        await app(make_ws_scope(), cap.receive, cap.send)
        assert cap.sent[0]["type"] == "websocket.accept"
        # disconnect removed the tab again
        assert len(app.live_reload) == 0

    async def test_registration_closed_after_connection(self) -> None:
        app = Bifrost()
        app.websocket(WebSocketHandlers())
        cap = WebSocketCapture([CONNECT])
        await app(make_ws_scope(), cap.receive, cap.send)
        with pytest.raises(RegistrationClosedError):
            app.websocket(WebSocketHandlers())
