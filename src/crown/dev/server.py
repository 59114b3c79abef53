"""Preview server pushing live-reload events to connected browsers."""

from __future__ import annotations

import json
import logging
import queue
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from crown.config import ResolvedConfig

LOGGER = logging.getLogger(__name__)

KEEPALIVE_SECONDS = 15.0
CLIENT_QUEUE_SIZE = 64

PREVIEW_HTML = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>crown preview</title>
<style>
  html, body { margin: 0; height: 100%; font-family: sans-serif; }
  #status { padding: 6px 12px; background: #222; color: #eee; font-size: 13px; }
  #status.error { background: #8b1d1d; white-space: pre-wrap; }
  iframe { border: 0; width: 100%; height: calc(100% - 30px); }
</style>
</head>
<body>
<div id="status">Waiting for build...</div>
<iframe id="pdf" src="/book.pdf"></iframe>
<script>
  const status = document.getElementById("status");
  const frame = document.getElementById("pdf");
  const source = new EventSource("/events");
  source.addEventListener("crown:building", () => {
    status.className = "";
    status.textContent = "Building...";
  });
  source.addEventListener("crown:success", (event) => {
    const payload = JSON.parse(event.data);
    status.className = "";
    status.textContent = "Built in " + Math.round(payload.duration) + "ms";
    frame.src = "/book.pdf?t=" + Date.now();
  });
  source.addEventListener("crown:error", (event) => {
    const payload = JSON.parse(event.data);
    status.className = "error";
    status.textContent = payload.message || "Build failed";
  });
</script>
</body>
</html>
"""


def format_sse(event: str, payload: dict[str, Any]) -> bytes:
    """Encode one server-sent event frame."""

    data = json.dumps(payload, sort_keys=True)
    return f"event: {event}\ndata: {data}\n\n".encode("utf-8")


class LiveReloadHub:
    """Fan out named events to every connected client queue.

    Full client queues drop the event; having no clients is not an error.
    """

    def __init__(self, queue_size: int = CLIENT_QUEUE_SIZE, logger: logging.Logger | None = None) -> None:
        self.queue_size = queue_size
        self.logger = logger or LOGGER
        self._clients: set[queue.Queue[bytes]] = set()
        self._lock = threading.Lock()

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def connect(self) -> queue.Queue[bytes]:
        client: queue.Queue[bytes] = queue.Queue(maxsize=self.queue_size)
        with self._lock:
            self._clients.add(client)
        return client

    def disconnect(self, client: queue.Queue[bytes]) -> None:
        with self._lock:
            self._clients.discard(client)

    def broadcast(self, event: str, payload: dict[str, Any]) -> int:
        """Queue the event for every client; returns how many received it."""

        frame = format_sse(event, payload)
        with self._lock:
            clients = list(self._clients)
        delivered = 0
        for client in clients:
            try:
                client.put_nowait(frame)
                delivered += 1
            except queue.Full:
                self.logger.debug("livereload.client_queue_full event=%s", event)
        return delivered


def _make_handler(config: ResolvedConfig, hub: LiveReloadHub, stop_event: threading.Event) -> type[BaseHTTPRequestHandler]:
    class PreviewHandler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:  # noqa: N802
            route = self.path.split("?", 1)[0]
            if route in ("/", "/index.html"):
                self._send_body(HTTPStatus.OK, PREVIEW_HTML.encode("utf-8"), "text/html; charset=utf-8")
            elif route == "/book.pdf":
                self._send_pdf()
            elif route == "/events":
                self._stream_events()
            else:
                self._send_body(HTTPStatus.NOT_FOUND, b"Not found", "text/plain; charset=utf-8")

        def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
            LOGGER.debug("dev_server.request %s", format % args)

        def _send_body(self, status: HTTPStatus, body: bytes, content_type: str) -> None:
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.send_header("Cache-Control", "no-cache")
            self.end_headers()
            self.wfile.write(body)

        def _send_pdf(self) -> None:
            try:
                body = config.pdf_output.read_bytes()
            except OSError:
                self._send_body(HTTPStatus.NOT_FOUND, b"PDF not found. Building...", "text/plain; charset=utf-8")
                return
            self._send_body(HTTPStatus.OK, body, "application/pdf")

        def _stream_events(self) -> None:
            self.send_response(HTTPStatus.OK)
            self.send_header("Content-Type", "text/event-stream")
            self.send_header("Cache-Control", "no-cache")
            self.send_header("Connection", "keep-alive")
            self.end_headers()
            client = hub.connect()
            try:
                while not stop_event.is_set():
                    try:
                        frame = client.get(timeout=KEEPALIVE_SECONDS)
                    except queue.Empty:
                        frame = b": keepalive\n\n"
                    self.wfile.write(frame)
                    self.wfile.flush()
            except (BrokenPipeError, ConnectionResetError):
                LOGGER.debug("dev_server.client_disconnected")
            finally:
                hub.disconnect(client)

    return PreviewHandler


class DevServer:
    """Threaded HTTP server for the preview page, the PDF, and the event stream."""

    def __init__(self, config: ResolvedConfig, hub: LiveReloadHub, logger: logging.Logger | None = None) -> None:
        self.config = config
        self.hub = hub
        self.logger = logger or LOGGER
        self._stop_event = threading.Event()
        self._httpd: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def url(self) -> str:
        port = self._httpd.server_address[1] if self._httpd is not None else self.config.dev_server.port
        return f"http://{self.config.dev_server.host}:{port}"

    def start(self) -> None:
        handler = _make_handler(self.config, self.hub, self._stop_event)
        httpd = ThreadingHTTPServer((self.config.dev_server.host, self.config.dev_server.port), handler)
        httpd.daemon_threads = True
        self._httpd = httpd
        self._thread = threading.Thread(target=httpd.serve_forever, name="crown-dev-server", daemon=True)
        self._thread.start()
        self.logger.info("dev_server.started url=%s", self.url)

    def stop(self) -> None:
        self._stop_event.set()
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
        self.logger.info("dev_server.stopped")
