"""
Label to Routing Config Translation

Turns a list of container snapshots into a Traefik dynamic configuration.
Pure transformation: no I/O and no shared state, so the same snapshots always
produce the same document.

Recognized labels (``<prefix>`` defaults to ``kasama.traefik-exposer.``):

    <prefix>enabled      must be exactly "true" for the container to be exposed
    <prefix>rule         router match rule, e.g. Host(`example.com`) (required)
    <prefix>port         backend port (default 80)
    <prefix>entrypoints  comma-separated entry points (default "http")
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .models import ContainerSnapshot
from .schemas import (
    HttpConfig,
    LoadBalancerConfig,
    RouterConfig,
    ServerConfig,
    ServiceConfig,
    TraefikConfig,
)

DEFAULT_LABEL_PREFIX = 'kasama.traefik-exposer.'
DEFAULT_PORT = '80'
DEFAULT_ENTRYPOINTS = ('http',)

LABEL_ENABLED = 'enabled'
LABEL_RULE = 'rule'
LABEL_PORT = 'port'
LABEL_ENTRYPOINTS = 'entrypoints'

SKIP_MISSING_ENABLED = 'missing_enabled_label'
SKIP_NOT_ENABLED = 'not_enabled'
SKIP_MISSING_RULE = 'missing_rule'


def service_name_for(container_name: str) -> str:
    return f"{container_name}-service"


def router_name_for(container_name: str) -> str:
    return f"{container_name}-router"


def parse_entrypoints(raw: Optional[str]) -> List[str]:
    """Split a comma-separated entry point label, falling back to the default"""
    if raw is None:
        return list(DEFAULT_ENTRYPOINTS)
    entrypoints = [item.strip() for item in raw.split(',') if item.strip()]
    return entrypoints or list(DEFAULT_ENTRYPOINTS)


def is_valid_port(value: str) -> bool:
    # str.isdigit() also accepts non-ASCII digits that int() rejects
    return value.isascii() and value.isdigit() and 1 <= int(value) <= 65535


@dataclass(frozen=True)
class ConfigSynthesisSkip:
    """A container left out of the routing config, with the reason why"""

    container_name: str
    reason: str
    detail: str = ''


@dataclass
class SynthesisResult:
    config: TraefikConfig
    skipped: List[ConfigSynthesisSkip] = field(default_factory=list)


class ConfigSynthesizer:
    """Builds a TraefikConfig from container labels"""

    def __init__(self, label_prefix: str = DEFAULT_LABEL_PREFIX, logger: Optional[logging.Logger] = None):
        self.label_prefix = label_prefix
        self.logger = logger or logging.getLogger(__name__)

    def label_key(self, suffix: str) -> str:
        return f"{self.label_prefix}{suffix}"

    def synthesize(self, containers: Iterable[ContainerSnapshot]) -> SynthesisResult:
        """Translate containers, in order, into routers and services.

        Containers that are not enabled or have no rule are skipped and
        reported in ``SynthesisResult.skipped``; they never make the whole
        synthesis fail. The port label is used as given.
        """
        routers = {}
        services = {}
        skipped = []

        for container in containers:
            self.logger.debug(f"Processing container '{container.name}'")
            skip = self._check_exposable(container)
            if skip is not None:
                skipped.append(skip)
                self.logger.info(f"Container '{container.name}' skipped: {skip.detail}")
                continue

            router_name, router, service_name, service = self._build_entries(container)
            routers[router_name] = router
            services[service_name] = service

        config = TraefikConfig(http=HttpConfig(routers=routers, services=services, middlewares={}))
        return SynthesisResult(config=config, skipped=skipped)

    def _check_exposable(self, container: ContainerSnapshot) -> Optional[ConfigSynthesisSkip]:
        enabled = container.labels.get(self.label_key(LABEL_ENABLED))
        if enabled is None:
            return ConfigSynthesisSkip(
                container.name, SKIP_MISSING_ENABLED,
                f"missing the label '{self.label_key(LABEL_ENABLED)} = true'",
            )
        if enabled != 'true':
            return ConfigSynthesisSkip(
                container.name, SKIP_NOT_ENABLED,
                f"not enabled '{self.label_key(LABEL_ENABLED)} = {enabled}'",
            )

        if not container.labels.get(self.label_key(LABEL_RULE)):
            return ConfigSynthesisSkip(
                container.name, SKIP_MISSING_RULE,
                f"rule is empty, specify one with the label '{self.label_key(LABEL_RULE)}'",
            )

        return None

    def _build_entries(self, container: ContainerSnapshot):
        labels = container.labels
        port = labels.get(self.label_key(LABEL_PORT), DEFAULT_PORT)

        if not container.address:
            self.logger.warning(f"Container '{container.name}' has no network address")
        if not is_valid_port(port):
            self.logger.warning(f"Container '{container.name}' has an unusual port '{port}' in label '{self.label_key(LABEL_PORT)}'")

        service_name = service_name_for(container.name)
        service = ServiceConfig(load_balancer=LoadBalancerConfig(
            servers=[ServerConfig(url=f"http://{container.address}:{port}", weight=1, preserve_path=True)],
        ))

        router = RouterConfig(
            entry_points=parse_entrypoints(labels.get(self.label_key(LABEL_ENTRYPOINTS))),
            middlewares=[],
            service=service_name,
            rule=labels[self.label_key(LABEL_RULE)],
        )

        return router_name_for(container.name), router, service_name, service


def synthesize(containers: Iterable[ContainerSnapshot], label_prefix: str = DEFAULT_LABEL_PREFIX) -> TraefikConfig:
    """Convenience wrapper returning only the config document"""
    return ConfigSynthesizer(label_prefix).synthesize(containers).config
