"""
Traefik Exposer Package

Discovers running containers on the local Docker host, reads routing intent
from their labels and serves a Traefik dynamic configuration document over
HTTP. Container metadata is cached in memory and invalidated by Docker
lifecycle events.
"""

__version__ = "0.1.0"
__author__ = "Traefik Exposer Team"
__description__ = "Traefik dynamic configuration generated from Docker container labels"

from .errors import (
    ConfigurationError,
    EventStreamError,
    ExposerError,
    RuntimeConnectError,
    RuntimeQueryError,
)
from .models import ContainerEvent, ContainerSnapshot
from .schemas import TraefikConfig
from .synthesizer import ConfigSynthesisSkip, ConfigSynthesizer, SynthesisResult, synthesize
from .cache import DiscoveryCache
from .watcher import EventWatcher
from .docker_client import DockerRuntime
from .config import load_config, validate_config, print_config_summary, override_config_from_args
from .api_server import APIServer
from .exposer import Exposer

# Public API
__all__ = [
    '__version__',
    '__author__',
    '__description__',

    # Main components
    'Exposer',
    'DiscoveryCache',
    'EventWatcher',
    'ConfigSynthesizer',
    'DockerRuntime',
    'APIServer',

    # Data model
    'ContainerSnapshot',
    'ContainerEvent',
    'TraefikConfig',
    'SynthesisResult',
    'ConfigSynthesisSkip',
    'synthesize',

    # Configuration
    'load_config',
    'validate_config',
    'print_config_summary',
    'override_config_from_args',

    # Errors
    'ExposerError',
    'ConfigurationError',
    'RuntimeConnectError',
    'RuntimeQueryError',
    'EventStreamError',
]
