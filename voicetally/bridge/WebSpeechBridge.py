"""WebSocket speech engine: relays Web Speech API events from a browser.

Runs a websockets.serve() loop on a daemon asyncio event loop thread.
A browser page connects, receives start/stop control frames, and sends its
SpeechRecognition result/end/error events back. To the RecognitionSession
this object is an ordinary SpeechEngine.

Plain HTTP GET requests on the same port are answered with the browser
client page (speech_client.html), so opening http://host:port/ in a
browser with the Web Speech API is all the setup a user needs.
"""

import asyncio
import logging
import threading
from pathlib import Path
from typing import Any, Optional, Set

from websockets.datastructures import Headers
from websockets.exceptions import ConnectionClosed
from websockets.http11 import Request, Response

from voicetally.bridge.codec import decode_client_message, encode_control
from voicetally.bridge.types import WsControl, WsSpeechEnd, WsSpeechError, WsSpeechResult
from voicetally.errors import SpeechEngineError
from voicetally.protocols import SpeechListener

logger = logging.getLogger(__name__)

CLIENT_PAGE = Path(__file__).parent / "speech_client.html"
_CLIENT_PATHS = ("/", "/index.html")


class WebSpeechBridge:
    """SpeechEngine backed by browser clients connected over WebSocket.

    The server binds on the first call to serve() and the bound port is
    available via the ``port`` property once the server is ready.

    Args:
        host: Hostname or IP to bind to (default ``"127.0.0.1"``).
        port: Port to listen on; 0 means OS assigns an available port.
        lang: Recognition language sent with start frames.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0, lang: str = "en-US") -> None:
        self._host = host
        self._port = port
        self._lang = lang
        self._listener: Optional[SpeechListener] = None
        self._clients: Set[Any] = set()
        self._clients_lock = threading.Lock()
        self._recognizing = False
        # a stop frame was sent and the browser has not answered with end yet
        self._stop_pending = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._ready = threading.Event()
        self._bind_error: OSError | None = None

    @property
    def port(self) -> int:
        """Return the bound port.

        Returns:
            The port number after serve() completes; 0 if not started.
        """
        return self._port

    @property
    def client_count(self) -> int:
        with self._clients_lock:
            return len(self._clients)

    # ------------------------------------------------------------------
    # SpeechEngine
    # ------------------------------------------------------------------

    def set_listener(self, listener: SpeechListener) -> None:
        self._listener = listener

    def start(self) -> None:
        """Ask connected browsers to start recognition.

        Raises:
            SpeechEngineError: If the server is not running or no browser is connected.
        """
        if self._loop is None:
            raise SpeechEngineError("Speech bridge is not serving")
        if self.client_count == 0:
            raise SpeechEngineError("No speech client connected")

        self._recognizing = True
        self._send(WsControl(action="start", lang=self._lang))

    def stop(self) -> None:
        """Ask connected browsers to stop recognition.

        Browsers answer with an end frame. If the last client disconnects
        before answering, the end is reported on its behalf.
        """
        if self._recognizing:
            self._stop_pending = True
        self._recognizing = False
        if self._loop is not None:
            self._send(WsControl(action="stop", lang=self._lang))

    # ------------------------------------------------------------------
    # Server lifecycle
    # ------------------------------------------------------------------

    def serve(self) -> None:
        """Start the asyncio event loop thread and begin accepting connections.

        Blocks until the server is bound and ready to accept connections.
        """
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run_loop, daemon=True, name="WebSpeechBridge"
        )
        self._thread.start()
        self._ready.wait()

        if self._bind_error is not None:
            self._loop = None
            raise SpeechEngineError(f"Cannot listen on {self._host}:{self._port}: {self._bind_error}")

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop accepting connections and wait for the event loop thread to exit."""
        if self._loop is None:
            return
        loop, self._loop = self._loop, None
        self._recognizing = False
        loop.call_soon_threadsafe(loop.stop)
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def _run_loop(self) -> None:
        loop = self._loop
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._serve())
        except RuntimeError:
            # loop.stop() interrupts run_until_complete
            pass
        except OSError as exc:
            self._bind_error = exc
            self._ready.set()
        finally:
            loop.close()

    async def _serve(self) -> None:
        import websockets

        async with websockets.serve(self._handle_connection, self._host, self._port,
                                    process_request=self.process_request) as server:
            self._port = server.sockets[0].getsockname()[1]
            logger.info("WebSpeechBridge: listening on %s:%s", self._host, self._port)
            self._ready.set()
            await asyncio.get_running_loop().create_future()

    @property
    def client_url(self) -> str:
        """Address of the browser client page."""
        return f"http://{self._host}:{self._port}/"

    def process_request(self, connection: Any, request: Request) -> Optional[Response]:
        """Answer plain HTTP GETs with the client page; let upgrades through.

        Returns:
            Response for non-WebSocket requests, None to continue the handshake.
        """
        if request.headers.get("Upgrade", "").lower() == "websocket":
            return None

        if request.path.split("?", 1)[0] not in _CLIENT_PATHS:
            return Response(404, "Not Found", Headers([("Content-Type", "text/plain")]), b"Not Found\n")

        body = CLIENT_PAGE.read_bytes()
        headers = Headers([
            ("Content-Type", "text/html; charset=utf-8"),
            ("Content-Length", str(len(body))),
            ("Cache-Control", "no-store"),
        ])
        return Response(200, "OK", headers, body)

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    async def _handle_connection(self, websocket: Any, path: str = "/") -> None:
        """Handle a single browser connection for its full lifetime.

        Algorithm:
            1. Register the client; if recognition is already requested,
               send it a start frame.
            2. Dispatch each text frame to the listener.
            3. On disconnect, unregister; losing the last client while
               recognizing is reported as a network error plus end.
        """
        with self._clients_lock:
            self._clients.add(websocket)
        logger.info("WebSpeechBridge: client connected (%d total)", self.client_count)

        try:
            if self._recognizing:
                await websocket.send(encode_control(WsControl(action="start", lang=self._lang)))

            async for message in websocket:
                if isinstance(message, bytes):
                    logger.warning("WebSpeechBridge: binary frame ignored")
                    continue
                self.handle_message(message)
        except ConnectionClosed:
            logger.info("WebSpeechBridge: connection closed unexpectedly")
        finally:
            with self._clients_lock:
                self._clients.discard(websocket)
                remaining = len(self._clients)
            logger.info("WebSpeechBridge: client disconnected (%d total)", remaining)

            if remaining == 0 and self._recognizing:
                self._recognizing = False
                self._dispatch_error("network")
                self._dispatch_end()
            elif remaining == 0 and self._stop_pending:
                self._dispatch_end()

    def handle_message(self, text: str) -> None:
        """Decode one browser frame and forward it to the listener.

        Invalid frames are logged and dropped.
        """
        try:
            msg = decode_client_message(text)
        except ValueError as exc:
            logger.warning("WebSpeechBridge: invalid client message: %s", exc)
            return

        if isinstance(msg, WsSpeechResult):
            if self._listener is not None:
                self._listener.on_result(msg.event)
        elif isinstance(msg, WsSpeechError):
            self._dispatch_error(msg.code)
        elif isinstance(msg, WsSpeechEnd):
            self._dispatch_end()

    def _dispatch_error(self, code: str) -> None:
        if self._listener is not None:
            self._listener.on_error(code)

    def _dispatch_end(self) -> None:
        self._stop_pending = False
        if self._listener is not None:
            self._listener.on_end()

    def _send(self, msg: WsControl) -> None:
        """Broadcast a control frame from any thread."""
        payload = encode_control(msg)
        asyncio.run_coroutine_threadsafe(self._broadcast(payload), self._loop)

    async def _broadcast(self, payload: str) -> None:
        with self._clients_lock:
            clients = list(self._clients)

        if not clients:
            return

        await asyncio.gather(
            *[client.send(payload) for client in clients],
            return_exceptions=True,
        )
