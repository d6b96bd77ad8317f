import socket
import threading

import pytest

from traefik_exposer import main as main_module
from traefik_exposer.errors import RuntimeConnectError
from traefik_exposer.exposer import EXIT_FAILURE, EXIT_OK, Exposer

from .conftest import FakeRuntime, StreamingRuntime, event_payload


@pytest.fixture
def no_http(monkeypatch):
    """Keep the API server from binding a real socket"""
    calls = []
    monkeypatch.setattr('traefik_exposer.api_server.APIServer.start', lambda self, host, port: calls.append((host, port)))
    monkeypatch.setattr('traefik_exposer.api_server.APIServer.stop', lambda self, timeout=None: calls.append('stop'))
    monkeypatch.setattr('traefik_exposer.api_server.APIServer.wait_started', lambda self, timeout=None: True)
    return calls


class UnreachableRuntime(FakeRuntime):
    def connect(self):
        raise RuntimeConnectError("Cannot reach Docker daemon")


def test_components_share_one_cache(base_config):
    exposer = Exposer(base_config, runtime=FakeRuntime())

    assert exposer.watcher.cache is exposer.cache
    assert exposer.api_server.cache is exposer.cache
    assert exposer.watcher.kinds == frozenset(base_config['watch_events'])


def test_unreachable_runtime_fails_before_serving(base_config, no_http):
    exposer = Exposer(base_config, runtime=UnreachableRuntime())

    assert exposer.start() == EXIT_FAILURE
    assert no_http == []


def test_lost_event_stream_exits_with_failure(base_config, no_http):
    runtime = FakeRuntime(payloads=[event_payload('start')])
    exposer = Exposer(base_config, runtime=runtime)

    assert exposer.start() == EXIT_FAILURE
    assert no_http == [('127.0.0.1', 3716), 'stop']
    assert runtime.closed


def test_requested_stop_exits_cleanly(base_config, no_http):
    runtime = StreamingRuntime()
    exposer = Exposer(base_config, runtime=runtime)
    result = []

    thread = threading.Thread(target=lambda: result.append(exposer.start()))
    thread.start()

    exposer.request_stop()
    thread.join(5)

    assert not thread.is_alive()
    assert result == [EXIT_OK]
    assert exposer.cache.state == 'empty'


def test_port_in_use_fails_startup(base_config):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as held:
        held.bind(('127.0.0.1', 0))
        held.listen()
        base_config['listen_addr'] = f"127.0.0.1:{held.getsockname()[1]}"
        runtime = StreamingRuntime()
        exposer = Exposer(base_config, runtime=runtime)
        result = []

        thread = threading.Thread(target=lambda: result.append(exposer.start()))
        thread.start()
        thread.join(15)

    assert not thread.is_alive()
    assert result == [EXIT_FAILURE]
    exposer.watcher.join(5)
    assert not exposer.watcher.is_alive()
    assert runtime.closed


def test_main_config_check(monkeypatch, capsys):
    monkeypatch.setenv('EXPOSER_ADDR', '0.0.0.0:3716')

    assert main_module.main(['--config-check']) == EXIT_OK
    assert 'Configuration is valid' in capsys.readouterr().out


def test_main_rejects_invalid_address(monkeypatch, capsys):
    assert main_module.main(['--addr', 'not-an-address']) == EXIT_FAILURE
    assert 'Invalid listen address' in capsys.readouterr().err
