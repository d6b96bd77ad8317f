"""
Docker Runtime Adapter

Thin wrapper over the Docker Python library: connect to the local daemon,
list running containers as ``ContainerSnapshot`` records and stream raw
lifecycle event payloads.
"""

import logging
import threading
from typing import Iterator, List, Optional

import docker
import requests
from docker.errors import DockerException

from .errors import RuntimeConnectError, RuntimeQueryError
from .models import ContainerSnapshot


def primary_address(attrs: dict) -> str:
    """IP address of the first network the container is attached to"""
    networks = (attrs.get('NetworkSettings') or {}).get('Networks') or {}
    for network_data in networks.values():
        return (network_data or {}).get('IPAddress') or ''
    return ''


def split_payloads(chunks: Iterator[bytes]) -> Iterator[bytes]:
    """Re-frame a chunked byte stream into newline-delimited JSON payloads"""
    buffer = b''
    for chunk in chunks:
        buffer += chunk
        while b'\n' in buffer:
            line, buffer = buffer.split(b'\n', 1)
            if line.strip():
                yield line
    if buffer.strip():
        yield buffer


class DockerRuntime:
    """Local Docker daemon accessed through the Docker Python library"""

    def __init__(self, label_prefix: str, logger: logging.Logger, client: Optional[docker.DockerClient] = None):
        self.label_prefix = label_prefix
        self.logger = logger
        self.client = client
        self._stream = None
        self._events_closed = False
        self._stream_lock = threading.Lock()

    def connect(self):
        """Connect to the Docker daemon, raising RuntimeConnectError if it is unreachable"""
        try:
            if self.client is None:
                self.logger.debug("Connecting to local Docker daemon")
                self.client = docker.from_env()
            self.client.ping()
        except (DockerException, requests.exceptions.RequestException) as e:
            self.client = None
            raise RuntimeConnectError(f"Cannot reach Docker daemon: {e}") from e

        self.logger.info("Connected to local Docker daemon")

    def list_containers(self) -> List[ContainerSnapshot]:
        """List running containers, keeping only labels under the configured prefix"""
        if self.client is None:
            raise RuntimeQueryError("Docker client is not connected")

        try:
            containers = self.client.containers.list(all=False, ignore_removed=True)
        except (DockerException, requests.exceptions.RequestException) as e:
            raise RuntimeQueryError(f"Error listing containers: {e}") from e

        snapshots = []
        for container in containers:
            attrs = container.attrs or {}
            snapshots.append(ContainerSnapshot.from_labels(
                name=container.name or '',
                address=primary_address(attrs),
                labels=container.labels or {},
                label_prefix=self.label_prefix,
            ))

        self.logger.debug(f"Found {len(snapshots)} running containers")
        return snapshots

    def events(self) -> Iterator[bytes]:
        """Stream raw container event payloads until the stream is closed.

        Payloads are left undecoded so that one malformed event does not end
        the stream; decoding is the caller's job. Once ``close_events()`` has
        been called, no new stream is opened.
        """
        if self.client is None:
            raise RuntimeQueryError("Docker client is not connected")
        with self._stream_lock:
            if self._events_closed:
                return

        stream = self.client.events(decode=False, filters={'type': 'container'})
        with self._stream_lock:
            closed_while_opening = self._events_closed
            if not closed_while_opening:
                self._stream = stream
        if closed_while_opening:
            self._close_stream(stream)
            return

        try:
            yield from split_payloads(stream)
        except (DockerException, requests.exceptions.RequestException, OSError) as e:
            # Raised when the stream is torn down from another thread
            self.logger.debug(f"Event stream ended: {e}")
        finally:
            with self._stream_lock:
                self._stream = None

    def close_events(self):
        """Close the event stream, unblocking a reader waiting for the next event"""
        with self._stream_lock:
            self._events_closed = True
            stream = self._stream
            self._stream = None
        if stream is not None:
            self._close_stream(stream)

    def _close_stream(self, stream):
        try:
            stream.close()
        except (DockerException, requests.exceptions.RequestException, OSError) as e:
            self.logger.debug(f"Error closing event stream: {e}")

    def close(self):
        """Close the event stream and the Docker client"""
        self.close_events()
        if self.client:
            try:
                self.client.close()
                self.logger.info("Closed connection to Docker daemon")
            except (DockerException, requests.exceptions.RequestException, OSError) as e:
                self.logger.error(f"Error closing Docker connection: {e}")
            finally:
                self.client = None
