"""
Live reload for development.

Served HTML gets a small script that keeps a WebSocket open to the same
host. Any message from the server reloads the page. When the socket
closes (typically because the dev server restarted) the script retries
every two seconds and reloads once the new server accepts it.
"""

import asyncio
import logging

from bifrost.websocket import WebSocket

logger = logging.getLogger("bifrost.livereload")

RELOAD_MESSAGE: str = "reload"

RECONNECT_DELAY_MS: int = 2000

LIVE_RELOAD_SCRIPT: str = (
    "<script>(() => {"
    "const key = 'bifrost:reloaded';"
    "const url = (location.protocol === 'https:' ? 'wss://' : 'ws://') + location.host;"
    "const connect = () => {"
    "const socket = new WebSocket(url);"
    "socket.onopen = () => {"
    "if (!sessionStorage.getItem(key)) { sessionStorage.setItem(key, '1'); location.reload(); }"
    "};"
    "socket.onmessage = () => location.reload();"
    "socket.onclose = () => setTimeout(() => { sessionStorage.removeItem(key); connect(); }, "
    f"{RECONNECT_DELAY_MS});"
    "socket.onerror = (err) => console.error('live reload socket error', err);"
    "};"
    "connect();"
    "})()</script>\n"
)

HEAD_CLOSE: str = "</head>"


def inject_reload_script(html: str) -> str:
    """Insert the reload script right before the first ``</head>``."""
    return html.replace(HEAD_CLOSE, LIVE_RELOAD_SCRIPT + HEAD_CLOSE, 1)


def inject_reload_bytes(body: bytes, charset: str = "utf-8") -> bytes:
    return inject_reload_script(body.decode(charset, errors="replace")).encode(charset)


class LiveReloadHub:
    """
    Tracks browser tabs connected for live reload.

    Used as the socket endpoint when live reload is on and the application
    registered no WebSocket handlers of its own.
    """

    def __init__(self) -> None:
        self._sockets: set[WebSocket] = set()

    def __len__(self) -> int:
        return len(self._sockets)

    def open(self, ws: WebSocket) -> None:
        self._sockets.add(ws)
        logger.debug("live reload client connected (%d open)", len(self._sockets))

    def close(self, ws: WebSocket, code: int, reason: str) -> None:
        self._sockets.discard(ws)

    async def broadcast(self) -> int:
        """Tell every connected tab to reload. Returns the number notified."""
        sockets = list(self._sockets)
        results = await asyncio.gather(
            *(ws.send_text(RELOAD_MESSAGE) for ws in sockets),
            return_exceptions=True,
        )
        notified = 0
        for ws, result in zip(sockets, results):
            if isinstance(result, Exception):
                logger.warning("dropping live reload client: %s", result)
                self._sockets.discard(ws)
            else:
                notified += 1
        return notified
