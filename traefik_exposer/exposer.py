"""
Exposer Orchestrator

Owns the shared discovery cache and wires the Docker runtime, the event
watcher and the API server together for the lifetime of the process.
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

from .api_server import APIServer
from .cache import DiscoveryCache
from .config import parse_listen_addr
from .docker_client import DockerRuntime
from .errors import RuntimeConnectError
from .synthesizer import ConfigSynthesizer
from .watcher import EventWatcher

EXIT_OK = 0
EXIT_FAILURE = 1


class Exposer:
    """Main orchestrator - one cache shared by the watcher thread and request handlers"""

    def __init__(self, config: Dict, runtime=None):
        self.config = config
        self.logger = self._setup_logging()
        self._stop_requested = threading.Event()

        self.runtime = runtime or DockerRuntime(config['label_prefix'], self.logger)
        self.cache = DiscoveryCache(self.runtime, self.logger)
        self.synthesizer = ConfigSynthesizer(config['label_prefix'], self.logger)
        self.watcher = EventWatcher(self.runtime, self.cache, self.logger, kinds=config['watch_events'])
        self.api_server = APIServer(self.cache, self.synthesizer, self.logger, config, watcher=self.watcher)

    def _setup_logging(self) -> logging.Logger:
        """Setup logging with both console and file handlers"""
        logger = logging.getLogger('traefik_exposer')
        level = getattr(logging, self.config['log_level'].upper())
        logger.setLevel(level)
        logger.handlers.clear()
        logger.propagate = False

        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

        # Console handler
        if self.config.get('console_logging', True):
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        # File handler
        if self.config.get('file_logging'):
            log_dir = Path(self.config.get('log_directory', './logs'))
            log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = RotatingFileHandler(
                log_dir / 'traefik_exposer.log',
                maxBytes=self.config.get('log_max_size', 10485760),
                backupCount=self.config.get('log_max_count', 5)
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        if not logger.handlers:
            logger.addHandler(logging.NullHandler())

        logger.debug("Logger initialized successfully")
        return logger

    def start(self) -> int:
        """Connect, serve and block until stopped. Returns the process exit code."""
        self.logger.info("Starting Traefik Exposer...")
        host, port = parse_listen_addr(self.config['listen_addr'])

        try:
            self.runtime.connect()
        except RuntimeConnectError as e:
            self.logger.error(f"{e}. Exiting.")
            return EXIT_FAILURE

        # Subscribe before serving so no event between startup and first request is missed
        self.watcher.start()
        self.api_server.start(host, port)
        if not self.api_server.wait_started():
            self.logger.error(f"HTTP server failed to start on {host}:{port}. Exiting.")
            self.stop()
            return EXIT_FAILURE

        self.logger.info(f"Traefik configuration available at http://{host}:{port}/traefik")

        try:
            self.watcher.join()
        except KeyboardInterrupt:
            self.logger.info("Received interrupt signal")
            self._stop_requested.set()

        stream_lost = not (self._stop_requested.is_set() or self.watcher.stopped_by_request)
        self.stop()

        if not stream_lost:
            return EXIT_OK

        # The runtime closed the event stream: the cache can no longer be kept
        # consistent, so exit and let the supervisor restart us.
        self.logger.error("Lost the container event stream. Exiting so the process can be restarted")
        return EXIT_FAILURE

    def stop(self):
        """Stop the watcher and the API server; safe to call more than once"""
        self._stop_requested.set()
        self.logger.info("Stopping Traefik Exposer...")
        self.watcher.stop()
        self.api_server.stop()
        self.cache.invalidate()
        self.runtime.close()
        self.logger.info("Traefik Exposer stopped")

    def request_stop(self):
        """Signal-handler friendly stop: wakes the main thread blocked on the watcher"""
        self._stop_requested.set()
        self.watcher.stop()
