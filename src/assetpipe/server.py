# server.py
from __future__ import annotations

import asyncio
import threading
import time
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.staticfiles import StaticFiles

from .channel import Broadcaster
from .errors import ServiceStartError
from .ui.console import Console, get_console


def create_app(
    broadcaster: Broadcaster,
    *,
    static_dir: str | Path | None = None,
    public_path: str = "/dashboard",
    console: Optional[Console] = None,
) -> FastAPI:
    """
    Live-reload application.

    WebSocket "/" is the notification channel endpoint; the socket becomes the
    broadcaster's current subscriber for as long as it stays open. When
    `static_dir` is given the built output is also served under `public_path`.
    """
    console = console or get_console()
    app = FastAPI(title="assetpipe live reload")

    @app.websocket("/")
    async def livereload(websocket: WebSocket) -> None:
        loop = asyncio.get_running_loop()

        def send(tag: str) -> None:
            # publish() is called from watcher threads; hop onto the server loop
            fut = asyncio.run_coroutine_threadsafe(websocket.send_text(tag), loop)
            fut.add_done_callback(_report_send_failure)

        def _report_send_failure(fut) -> None:
            if not fut.cancelled() and fut.exception() is not None:
                console.print_debug(f"live reload send failed: {fut.exception()}")

        # register before accepting so a client that saw the handshake is already tracked
        token = broadcaster.connect(send)
        console.print_debug("live reload client connected")
        try:
            await websocket.accept()
            while True:
                # client never sends anything meaningful; this just parks until close
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            broadcaster.disconnect(token)
            console.print_debug("live reload client disconnected")

    if static_dir is not None:
        app.mount(public_path, StaticFiles(directory=str(static_dir), html=True, check_dir=False), name="dist")

    return app


class LiveReloadServer:
    """
    Runs the live-reload app with uvicorn on a background thread.

    start() returns once the socket is bound and serving, or raises
    ServiceStartError if uvicorn gave up (port in use, bad host).
    """

    def __init__(self, app: FastAPI, host: str, port: int, *, startup_timeout: float = 10.0):
        self.host = host
        self.port = port
        self.startup_timeout = startup_timeout
        self._server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level="warning"))
        self._thread: Optional[threading.Thread] = None
        self._exit: Optional[BaseException] = None

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive() and self._server.started)

    def _serve(self) -> None:
        try:
            self._server.run()
        except (SystemExit, Exception) as e:
            # uvicorn reports bind failures with sys.exit()
            self._exit = e

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._exit = None
        self._thread = threading.Thread(target=self._serve, name="livereload", daemon=True)
        self._thread.start()

        deadline = time.monotonic() + self.startup_timeout
        while not self._server.started:
            if not self._thread.is_alive():
                detail = f" ({self._exit!r})" if self._exit is not None else ""
                raise ServiceStartError(
                    service="live reload server",
                    message=f"could not listen on {self.host}:{self.port}{detail}; "
                    "is the port already in use? Use --no-livereload or another live_reload_port.",
                )
            if time.monotonic() > deadline:
                self.stop()
                raise ServiceStartError(
                    service="live reload server",
                    message=f"not listening on {self.host}:{self.port} after {self.startup_timeout:g}s",
                )
            time.sleep(0.05)

    def stop(self) -> None:
        self._server.should_exit = True
        if self._thread:
            self._thread.join(timeout=5)
