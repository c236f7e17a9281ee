"""Development server for Inkwell.

Serves the build directory with live reload:
- Injects a reload script into HTML responses.
- Rejects directory listings and missing paths with a 404 (serving 404.html
  when present).
- Logs every request with method, path, status and duration.
- Watches the source folders and re-runs only the task a change affects
  (js, less, pages, static), then tells connected browsers to reload.
- Serves a small JSON status document on the UI port describing the last
  build.

Key classes:
- DevServer: Runs the HTTP, status and websocket servers plus the watcher.
- _ReloadHandler: HTTP handler that injects the reload script.
- _ChangeHandler: watchdog handler that maps changes to tasks.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import threading
import time
from datetime import datetime, timezone
from http.server import (
    BaseHTTPRequestHandler,
    SimpleHTTPRequestHandler,
    ThreadingHTTPServer,
)
from pathlib import Path
from typing import Any

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .assets import AssetPipeline
from .build import BuildResult, build_pages, build_site
from .config import CONFIG_FILENAME, Settings, load_config
from .errors import InkwellError

logger = logging.getLogger(__name__)


class _ReloadHandler(SimpleHTTPRequestHandler):
    """Serves the build directory and adds the live-reload client to HTML.

    Directory requests resolve to their ``index.html``; anything else that
    does not exist, listings included, gets the site's ``404.html``.
    """

    reload_script_template = """
    <script>
    (function connect() {{
      var ws = new WebSocket('ws://' + location.hostname + ':{ws_port}');
      ws.onmessage = function (event) {{
        var data = JSON.parse(event.data || '{{}}');
        if (data.type === 'reload') location.reload();
      }};
      ws.onclose = function () {{ setTimeout(connect, 1000); }};
    }})();
    </script>
    """
    reload_script = reload_script_template.format(ws_port=35729)

    def setup(self):
        self._started_at = time.perf_counter()
        super().setup()

    def end_headers(self):
        self.send_header("Cache-Control", "no-store")
        super().end_headers()

    def log_request(self, code="-", size="-"):
        elapsed = (time.perf_counter() - self._started_at) * 1000
        status = getattr(code, "value", code)
        logger.info("%s %s %s %.3f ms - %s", self.command, self.path, status, elapsed, size)

    def log_message(self, format, *args):
        logger.debug(format, *args)

    def list_directory(self, path):  # pragma: no cover - send_head never lists
        return self._not_found()

    def _with_reload(self, page: Path) -> bytes:
        html = page.read_text(encoding="utf-8")
        head, marker, tail = html.rpartition("</body>")
        if marker:
            html = head + self.reload_script + marker + tail
        else:
            html += self.reload_script
        return html.encode("utf-8")

    def _write_html(self, status: int, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _not_found(self):
        custom = Path(self.directory) / "404.html"
        if custom.is_file():
            self._write_html(404, self._with_reload(custom))
        else:
            self.send_error(404, "File not found")
        return None

    def _resolve(self) -> Path | None:
        target = Path(self.translate_path(self.path))
        if target.is_dir():
            target = target / "index.html"
        return target if target.is_file() else None

    def send_head(self):
        target = self._resolve()
        if target is None:
            return self._not_found()
        if target.suffix == ".html":
            self._write_html(200, self._with_reload(target))
            return None
        return super().send_head()


class _StatusHandler(BaseHTTPRequestHandler):
    """Answers every GET on the UI port with the server's status as JSON."""

    status_source: Any = None

    def do_GET(self):
        payload = json.dumps(self.status_source.status(), indent=2).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        logger.debug(format, *args)


class DevServer:
    """Development server with live reload functionality.

    Attributes:
        settings: Build settings for the project.
        http_port: Port serving the build directory.
        ws_port: Port for live-reload WebSocket connections.
        ui_port: Port serving the status document.
    """

    def __init__(
        self,
        settings: Settings,
        http_port: int | None = None,
        ws_port: int | None = None,
        ui_port: int | None = None,
    ):
        if http_port is not None:
            settings.port = http_port
        self.settings = settings
        self.http_port = settings.port
        self.ws_port = ws_port if ws_port is not None else settings.livereload_port
        self.ui_port = ui_port if ui_port is not None else settings.ui_port
        self.output_dir = settings.build_root
        self._reload_script = _ReloadHandler.reload_script_template.format(
            ws_port=self.ws_port
        )
        self._observer: Observer | None = None
        self._ws_clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._lock = threading.Lock()
        self._last_rebuild_at: dict[str, float] = {}
        self._debounce_seconds = 0.05
        self._last_status: dict[str, Any] = {"state": "starting"}

    def start(self) -> None:  # pragma: no cover - integration path
        """Build once, start the servers and watcher, block until Ctrl+C."""
        self.run_task("build")
        for server, label in (
            (self._http_server(), "Serving %s at http://localhost:%d"),
            (self._ui_server(), "Build status for %s at http://localhost:%d"),
        ):
            logger.info(label, self.output_dir, server.server_address[1])
            threading.Thread(target=server.serve_forever, daemon=True).start()
        threading.Thread(target=self._run_ws_loop, daemon=True).start()
        self._start_watcher()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
        self._loop.call_soon_threadsafe(self._loop.stop)

    def status(self) -> dict[str, Any]:
        return dict(self._last_status)

    def _http_server(self) -> ThreadingHTTPServer:  # pragma: no cover
        handler_cls = type(
            "_SiteHandler", (_ReloadHandler,), {"reload_script": self._reload_script}
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        return ThreadingHTTPServer(("", self.http_port), handler)

    def _ui_server(self) -> ThreadingHTTPServer:  # pragma: no cover
        handler_cls = type(
            "_ServerStatusHandler", (_StatusHandler,), {"status_source": self}
        )
        return ThreadingHTTPServer(("", self.ui_port), handler_cls)

    def _run_ws_loop(self) -> None:  # pragma: no cover - integration path
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._serve_ws())
        except OSError as exc:
            logger.error("Live reload unavailable on port %d: %s", self.ws_port, exc)

    async def _serve_ws(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._ws_handler, "0.0.0.0", self.ws_port):
            await asyncio.Future()

    async def _ws_handler(self, websocket):
        self._ws_clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._ws_clients.discard(websocket)

    def _broadcast_reload(self):
        payload = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._async_broadcast(payload), self._loop)

    async def _async_broadcast(self, message: str):
        clients = list(self._ws_clients)
        results = await asyncio.gather(
            *(client.send(message) for client in clients), return_exceptions=True
        )
        for client, outcome in zip(clients, results):
            if isinstance(outcome, Exception):
                # closed or broken socket
                self._ws_clients.discard(client)

    def _start_watcher(self) -> None:
        handler = _ChangeHandler(self)
        observer = Observer()
        root = self.settings.project_root
        folders = sorted(
            {
                *self.settings.content_roots,
                self.settings.templates_dir,
                self.settings.static_dir,
                "assets",
            }
        )
        for folder in folders:
            if (root / folder).exists():
                observer.schedule(handler, str(root / folder), recursive=True)
        # inkwell.yaml lives at the root
        observer.schedule(handler, str(root), recursive=False)
        observer.start()
        self._observer = observer

    def task_for_path(self, path: Path) -> str | None:
        """Return the build task affected by a change to ``path``."""
        try:
            rel = path.resolve().relative_to(self.settings.project_root.resolve())
        except ValueError:
            return None
        if not rel.parts:
            return None
        if rel.as_posix() == CONFIG_FILENAME:
            return "build"
        top = rel.parts[0]
        if top == self.settings.dest or "node_modules" in rel.parts:
            return None
        if top == "assets" and len(rel.parts) > 1:
            if rel.parts[1] == "js":
                return "js"
            if rel.parts[1] == "css":
                return "less"
            return None
        if top in self.settings.content_roots or top == self.settings.templates_dir:
            return "pages"
        if top == self.settings.static_dir:
            return "static"
        return None

    def rebuild(self, task: str) -> None:
        """Run ``task`` after a change and reload browsers when it succeeds."""
        now = time.time()
        if now - self._last_rebuild_at.get(task, 0.0) < self._debounce_seconds:
            return
        if not self._lock.acquire(blocking=False):
            return
        try:
            logger.info("Change detected; running %s", task)
            if self.run_task(task):
                self._broadcast_reload()
        finally:
            self._last_rebuild_at[task] = time.time()
            self._lock.release()

    def run_task(self, task: str) -> bool:
        """Run one task, logging failures instead of raising."""
        started = time.perf_counter()
        try:
            result = self._dispatch(task)
        except InkwellError as exc:
            logger.error("%s failed: %s", task, exc)
            self._record_status(task, started, errors=[str(exc)])
            return False
        errors = [str(e) for e in result.errors] if result is not None else []
        self._record_status(task, started, errors=errors)
        return True

    def _dispatch(self, task: str) -> BuildResult | None:
        if task == "build":
            self.settings = load_config(
                self.settings.project_root, production=self.settings.production
            )
            self.settings.port = self.http_port
            return build_site(self.settings)
        if task == "pages":
            return build_pages(self.settings)
        pipeline = AssetPipeline(self.settings)
        if task == "js":
            pipeline.build_js()
        elif task == "less":
            pipeline.build_less()
        elif task == "static":
            pipeline.copy_static()
        else:
            raise ValueError(f"Unknown task: {task}")
        return None

    def _record_status(self, task: str, started: float, errors: list[str]) -> None:
        self._last_status = {
            "state": "failed" if errors else "ok",
            "task": task,
            "finished_at": datetime.now(timezone.utc).isoformat(),
            "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            "errors": errors,
        }


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer):
        super().__init__()
        self.server = server

    def on_any_event(self, event):
        if event.is_directory:
            return
        task = self.server.task_for_path(Path(event.src_path))
        if task is None:
            return
        self.server.rebuild(task)
