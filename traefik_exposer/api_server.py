"""
FastAPI HTTP Server

Exposes the synthesized Traefik dynamic configuration (for Traefik's HTTP
provider to poll), a liveness endpoint and a couple of debug endpoints.
"""

import logging
import threading
import time
from datetime import datetime
from typing import Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from .cache import DiscoveryCache
from .errors import RuntimeQueryError
from .synthesizer import ConfigSynthesizer


class ContainerInfo(BaseModel):
    name: str
    address: str
    labels: Dict[str, str]


class ContainersResponse(BaseModel):
    containers: List[ContainerInfo]
    count: int
    cache_state: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    uptime_seconds: float
    cache_state: str
    cache_refreshes: int
    watcher_alive: Optional[bool] = None
    version: str


class APIServer:
    """Serves the Traefik configuration built from the discovery cache"""

    def __init__(self, cache: DiscoveryCache, synthesizer: ConfigSynthesizer, logger: logging.Logger, config: Dict, watcher=None):
        from . import __version__

        self.cache = cache
        self.synthesizer = synthesizer
        self.logger = logger
        self.config = config
        self.watcher = watcher
        self.version = __version__
        self.start_time = datetime.now()
        self.server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None
        self.app = self._setup_fastapi_app()

    def _get_snapshot(self):
        try:
            return self.cache.get_snapshot()
        except RuntimeQueryError as e:
            self.logger.error(f"Unable to query containers: {e}")
            raise HTTPException(status_code=503, detail=f"Container runtime unavailable: {e}")

    def _setup_fastapi_app(self) -> FastAPI:
        """Setup FastAPI application with all endpoints"""
        app = FastAPI(
            title="Traefik Exposer",
            description="Traefik dynamic configuration generated from container labels",
            version=self.version,
        )

        # Handlers are plain functions: FastAPI runs them in its threadpool,
        # so a blocking cache refresh never stalls the event loop.

        @app.get("/", response_class=PlainTextResponse)
        def liveness():
            """Liveness probe"""
            return "OK"

        @app.get("/traefik")
        def get_traefik_config():
            """Traefik dynamic configuration for the HTTP provider"""
            containers = self._get_snapshot()
            result = self.synthesizer.synthesize(containers)
            return JSONResponse(content=result.config.to_document())

        @app.get("/containers", response_model=ContainersResponse)
        def get_containers():
            """Containers currently known to the cache"""
            containers = self._get_snapshot()
            return ContainersResponse(
                containers=[ContainerInfo(**container.to_dict()) for container in containers],
                count=len(containers),
                cache_state=self.cache.state,
            )

        @app.get("/healthz", response_model=HealthResponse, responses={503: {"model": HealthResponse}})
        def health_check():
            """Health check: unhealthy once the event watcher has died"""
            watcher_alive = self.watcher.is_alive() if self.watcher is not None else None
            response = HealthResponse(
                status='unhealthy' if watcher_alive is False else 'healthy',
                timestamp=datetime.now().isoformat(),
                uptime_seconds=(datetime.now() - self.start_time).total_seconds(),
                cache_state=self.cache.state,
                cache_refreshes=self.cache.refresh_count,
                watcher_alive=watcher_alive,
                version=self.version,
            )
            if watcher_alive is False:
                return JSONResponse(content=response.model_dump(), status_code=503)
            return response

        return app

    def start(self, host: str, port: int) -> threading.Thread:
        """Start uvicorn in a background thread"""
        self.logger.info(f"Starting FastAPI server on {host}:{port}")

        self.server = uvicorn.Server(uvicorn.Config(
            self.app,
            host=host,
            port=port,
            log_level='warning',  # Reduce uvicorn logging
            access_log=False,  # Disable access logs for cleaner output
        ))
        self._thread = threading.Thread(target=self.server.run, daemon=True, name="APIServer")
        self._thread.start()
        return self._thread

    def wait_started(self, timeout: float = 10.0) -> bool:
        """Block until uvicorn is serving; False if it died first (e.g. the port is taken)"""
        if self.server is None or self._thread is None:
            return False
        deadline = time.monotonic() + timeout
        while not self.server.started:
            if not self._thread.is_alive() or time.monotonic() >= deadline:
                return False
            time.sleep(0.05)
        return True

    def stop(self, timeout: Optional[float] = None):
        """Stop accepting connections and let in-flight requests finish"""
        if self.server is None:
            return
        self.server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout)
        self.logger.info("FastAPI server stopped")
