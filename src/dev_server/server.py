"""Development HTTP server: a FastAPI app served by uvicorn."""

import logging
import threading
from contextlib import asynccontextmanager
from typing import Any, Iterable, Optional, Protocol

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from .config import DevServerConfig

logger = logging.getLogger(__name__)


class ServerPlugin(Protocol):
    """Hook applied to the running server at startup."""

    def apply(self, host: Any) -> Any:
        ...


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    cfg: DevServerConfig,
    plugins: Iterable[ServerPlugin] = (),
    host: Optional[Any] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Plugins are applied from the startup hook, and only in dev mode.

    Args:
        cfg: Server configuration
        plugins: Startup plugins
        host: Object handed to each plugin (normally the DevServer)
    """
    plugins = list(plugins)
    if plugins and host is None:
        raise ValueError("plugins need a host to apply to")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if cfg.dev_mode:
            for plugin in plugins:
                logger.info(f"Applying plugin: {type(plugin).__name__}")
                plugin.apply(host)
        elif plugins:
            logger.debug("Dev mode off, startup plugins not applied")
        yield

    app = FastAPI(title="Dev Server", docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.cfg = cfg

    @app.get("/", response_class=PlainTextResponse)
    def index():
        return "Hello world!"

    @app.get("/health")
    def health():
        return {"status": "ok", "dev_mode": cfg.dev_mode}

    return app


# ---------------------------------------------------------------------------
# Server wrapper
# ---------------------------------------------------------------------------

class DevServer:
    """Wrapper to run the FastAPI app via uvicorn, in the foreground or a thread."""

    def __init__(self, cfg: DevServerConfig, plugins: Iterable[ServerPlugin] = ()):
        self.cfg = cfg
        self.plugins = list(plugins)
        self.app = create_app(cfg, self.plugins, host=self)
        self._thread: Optional[threading.Thread] = None
        self._server: Optional[uvicorn.Server] = None
        self._serving_thread: Optional[threading.Thread] = None
        self._stopped = threading.Event()
        self._stopped.set()

    def _build_server(self) -> uvicorn.Server:
        config = uvicorn.Config(
            self.app,
            host=self.cfg.host,
            port=self.cfg.port,
            log_level=self.cfg.log_level,
            access_log=False,
        )
        return uvicorn.Server(config)

    def serve(self) -> None:
        """Run the server in the current thread until stopped."""
        self._server = self._build_server()
        self._stopped.clear()
        self._run(self._server)

    def start(self) -> None:
        """Run the server in a background thread."""
        # Built before the thread starts so an early stop() can reach it.
        self._server = self._build_server()
        self._stopped.clear()
        self._thread = threading.Thread(
            target=self._run, args=(self._server,), name="dev-server", daemon=True
        )
        self._thread.start()

    def _run(self, server: uvicorn.Server) -> None:
        self._serving_thread = threading.current_thread()
        logger.info(f"Dev server listening on http://{self.cfg.host}:{self.cfg.port}")
        try:
            server.run()
        finally:
            self._server = None
            self._stopped.set()

    def stop(self, timeout: float = 5.0) -> None:
        """
        Ask uvicorn to exit and wait for it to finish.

        Args:
            timeout: Maximum number of seconds to wait for the server to exit
        """
        server = self._server
        if server is None:
            return

        logger.info("Stopping dev server...")
        server.should_exit = True
        if threading.current_thread() is not self._serving_thread:
            if not self._stopped.wait(timeout):
                logger.warning(f"Dev server did not stop within {timeout}s")
