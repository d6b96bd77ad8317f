import json
import logging
import queue

import pytest

from traefik_exposer.models import ContainerSnapshot
from traefik_exposer.synthesizer import DEFAULT_LABEL_PREFIX

PREFIX = DEFAULT_LABEL_PREFIX


def labels(**suffixes):
    """Build prefixed labels: labels(enabled='true') -> {'kasama.traefik-exposer.enabled': 'true'}"""
    return {f"{PREFIX}{key}": value for key, value in suffixes.items()}


def snapshot(name, address='10.0.0.5', **suffixes):
    return ContainerSnapshot(name=name, address=address, labels=labels(**suffixes))


def event_payload(action, name='web', container_id='abc123def456', event_type='container'):
    return json.dumps({
        'Type': event_type,
        'Action': action,
        'Actor': {'ID': container_id, 'Attributes': {'name': name}},
    }).encode()


class FakeRuntime:
    """In-memory stand-in for DockerRuntime"""

    def __init__(self, containers=None, payloads=None):
        self.containers = list(containers or [])
        self.payloads = list(payloads or [])
        self.list_calls = 0
        self.fail_with = None
        self.connected = False
        self.closed = False
        self.close_events_calls = 0

    def connect(self):
        self.connected = True

    def list_containers(self):
        self.list_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.containers)

    def events(self):
        yield from self.payloads

    def close_events(self):
        self.close_events_calls += 1

    def close(self):
        self.closed = True


class StreamingRuntime(FakeRuntime):
    """Runtime whose event stream blocks until payloads are pushed or it is closed"""

    def __init__(self, containers=None):
        super().__init__(containers)
        self.queue = queue.Queue()

    def push(self, payload):
        self.queue.put(payload)

    def events(self):
        while True:
            payload = self.queue.get()
            if payload is None:
                return
            yield payload

    def close_events(self):
        super().close_events()
        self.queue.put(None)


@pytest.fixture
def logger():
    return logging.getLogger('traefik_exposer.tests')


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def base_config():
    return {
        'listen_addr': '127.0.0.1:3716',
        'label_prefix': PREFIX,
        'watch_events': ['create', 'start', 'update', 'die', 'destroy'],
        'log_level': 'INFO',
        'console_logging': False,
        'file_logging': False,
        'log_directory': './logs',
        'log_max_size': 10485760,
        'log_max_count': 5,
    }
