import pytest
from fastapi.testclient import TestClient

from traefik_exposer.api_server import APIServer
from traefik_exposer.cache import DiscoveryCache
from traefik_exposer.errors import RuntimeQueryError
from traefik_exposer.synthesizer import ConfigSynthesizer

from .conftest import PREFIX, FakeRuntime, snapshot


class FakeWatcher:
    def __init__(self, alive):
        self.alive = alive

    def is_alive(self):
        return self.alive


def make_server(runtime, logger, base_config, watcher=None):
    cache = DiscoveryCache(runtime, logger)
    return APIServer(cache, ConfigSynthesizer(PREFIX, logger), logger, base_config, watcher=watcher)


@pytest.fixture
def web_runtime():
    return FakeRuntime([
        snapshot('web', address='10.0.0.5', enabled='true', rule='Host(`a.com`)'),
        snapshot('db', address='10.0.0.6', enabled='false'),
    ])


def test_liveness(runtime, logger, base_config):
    with TestClient(make_server(runtime, logger, base_config).app) as client:
        response = client.get('/')

    assert response.status_code == 200
    assert response.text == 'OK'
    assert runtime.list_calls == 0


def test_traefik_config_endpoint(web_runtime, logger, base_config):
    with TestClient(make_server(web_runtime, logger, base_config).app) as client:
        response = client.get('/traefik')

    assert response.status_code == 200
    assert response.headers['content-type'].startswith('application/json')
    assert response.json() == {
        'http': {
            'routers': {
                'web-router': {'entryPoints': ['http'], 'service': 'web-service', 'rule': 'Host(`a.com`)'},
            },
            'services': {
                'web-service': {
                    'loadBalancer': {'servers': [{'url': 'http://10.0.0.5:80', 'weight': 1, 'preservePath': True}]},
                },
            },
            'middlewares': {},
        },
    }


def test_unusual_port_label_does_not_break_document(logger, base_config):
    runtime = FakeRuntime([
        snapshot('web', address='10.0.0.5', enabled='true', rule='Host(`a.com`)'),
        snapshot('odd', address='10.0.0.6', enabled='true', rule='Host(`b.com`)', port='²'),
    ])

    with TestClient(make_server(runtime, logger, base_config).app) as client:
        response = client.get('/traefik')

    assert response.status_code == 200
    assert set(response.json()['http']['routers']) == {'web-router', 'odd-router'}


def test_traefik_config_is_served_from_cache(web_runtime, logger, base_config):
    server = make_server(web_runtime, logger, base_config)

    with TestClient(server.app) as client:
        first = client.get('/traefik')
        second = client.get('/traefik')
        server.cache.mark_stale()
        third = client.get('/traefik')

    assert first.content == second.content == third.content
    assert web_runtime.list_calls == 2


def test_runtime_outage_returns_server_error(web_runtime, logger, base_config):
    server = make_server(web_runtime, logger, base_config)

    with TestClient(server.app) as client:
        assert client.get('/traefik').status_code == 200

        server.cache.mark_stale()
        web_runtime.fail_with = RuntimeQueryError("daemon unreachable")
        response = client.get('/traefik')

    assert response.status_code == 503
    assert 'daemon unreachable' in response.json()['detail']
    assert server.cache.state == 'empty'


def test_containers_endpoint(web_runtime, logger, base_config):
    with TestClient(make_server(web_runtime, logger, base_config).app) as client:
        body = client.get('/containers').json()

    assert body['count'] == 2
    assert body['cache_state'] == 'fresh'
    assert body['containers'][0] == {
        'name': 'web',
        'address': '10.0.0.5',
        'labels': {f'{PREFIX}enabled': 'true', f'{PREFIX}rule': 'Host(`a.com`)'},
    }


def test_healthz_reports_watcher_state(runtime, logger, base_config):
    with TestClient(make_server(runtime, logger, base_config, watcher=FakeWatcher(True)).app) as client:
        healthy = client.get('/healthz')
    with TestClient(make_server(runtime, logger, base_config, watcher=FakeWatcher(False)).app) as client:
        unhealthy = client.get('/healthz')

    assert healthy.status_code == 200
    assert healthy.json()['status'] == 'healthy'
    assert healthy.json()['cache_state'] == 'empty'
    assert unhealthy.status_code == 503
    assert unhealthy.json()['watcher_alive'] is False
