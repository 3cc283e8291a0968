import asyncio
import logging
import os
import re
from pathlib import Path

from aiohttp import web

from caffeine.broadcaster import Broadcaster
from caffeine.config import ServerConfig
from caffeine.errors import BindError, ClientPathError, NotFoundError
from caffeine.watcher import Watcher

logger = logging.getLogger(__name__)

RELOAD_PATH = "/__hot-reload"

RELOAD_MARKER = b"__CAFFEINE_HOT_RELOAD__"

RELOAD_JS = b"""
<script>
(function() {
  if (window.__CAFFEINE_HOT_RELOAD__) return;
  window.__CAFFEINE_HOT_RELOAD__ = true;
  const es = new EventSource("/__hot-reload");
  es.onmessage = () => {
    console.log("Reloading...");
    location.reload();
  };
  es.onerror = () => {
    es.close();
    setTimeout(() => window.location.reload(), 1000);
  };
})();
</script>"""

CONTENT_TYPES = {
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
}

_BODY_CLOSE = re.compile(rb"</body\s*>", re.IGNORECASE)


def content_type_for(path) -> str:
    return CONTENT_TYPES.get(os.path.splitext(str(path))[1].lower(), "text/plain")


# -------- Path resolution --------
def resolve_path(root, url_path: str) -> Path:
    """Map a request path onto a file below ``root``.

    Both sides are normalized before comparing, and the comparison requires
    a separator right after the root so ``/srv/site-secret`` is not taken
    for a child of ``/srv/site``.
    """
    root = os.path.normpath(str(root))
    relative = "index.html" if url_path == "/" else url_path.lstrip("/")
    file_path = os.path.normpath(os.path.join(root, relative))

    boundary = root if root.endswith(os.sep) else root + os.sep
    if file_path != root and not file_path.startswith(boundary):
        raise ClientPathError(url_path)

    if os.path.isdir(file_path):
        file_path = os.path.join(file_path, "index.html")
    return Path(file_path)


def read_file(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except (OSError, ValueError) as exc:
        raise NotFoundError(path) from exc


def inject_reload_script(body: bytes) -> bytes:
    if RELOAD_MARKER in body:
        return body
    matches = list(_BODY_CLOSE.finditer(body))
    if not matches:
        return body
    at = matches[-1].start()
    return body[:at] + RELOAD_JS + body[at:]


# -------- HTTP handler --------
def make_file_handler(root):
    async def file_handler(request):
        try:
            file_path = resolve_path(root, request.path)
        except ClientPathError:
            logger.debug("Refused %s: outside %s", request.path, root)
            return web.Response(status=403, text="Forbidden")

        try:
            body = read_file(file_path)
        except NotFoundError:
            logger.debug("Not found: %s", request.path)
            return web.Response(status=404, text="Not Found")

        content_type = content_type_for(file_path)
        if content_type == "text/html":
            body = inject_reload_script(body)
        return web.Response(body=body, content_type=content_type)

    return file_handler


def create_app(config: ServerConfig, broadcaster: Broadcaster) -> web.Application:
    app = web.Application()
    app.router.add_get(RELOAD_PATH, broadcaster.subscribe)
    app.router.add_get("/{path:.*}", make_file_handler(config.root))

    async def close_subscribers(app):
        broadcaster.close_all()

    app.on_shutdown.append(close_subscribers)
    return app


# -------- Server lifecycle --------
class DevServer:
    """Static server, reload stream and file watcher for one frontend root."""

    def __init__(self, config: ServerConfig, watch=True):
        self.config = config
        self.broadcaster = Broadcaster(heartbeat=config.heartbeat)
        self.app = create_app(config, self.broadcaster)
        self.watch = watch
        self._runner = None
        self._watcher = None

    @property
    def port(self) -> int:
        # differs from the configured port when that was 0
        if self._runner is not None and self._runner.addresses:
            return self._runner.addresses[0][1]
        return self.config.port

    @property
    def url(self) -> str:
        return f"http://{self.config.host}:{self.port}"

    async def start(self):
        self._runner = web.AppRunner(self.app, access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.config.host, self.config.port)
        try:
            await site.start()
        except OSError as exc:
            await self._runner.cleanup()
            self._runner = None
            raise BindError(self.config.host, self.config.port, exc.strerror or exc) from exc

        logger.info("Serving %s at %s", self.config.root, self.url)
        if self.watch:
            self._watcher = Watcher(
                self.config.root, self.broadcaster.broadcast, asyncio.get_running_loop()
            )
            self._watcher.start()

    async def stop(self):
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        if self._runner is not None:
            # closes the listening socket, then on_shutdown ends the streams
            await self._runner.cleanup()
            self._runner = None
        logger.info("Dev server stopped")

    async def broadcast(self) -> int:
        return await self.broadcaster.broadcast()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, *exc_info):
        await self.stop()
