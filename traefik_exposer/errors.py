"""
Error Taxonomy

Exceptions raised by the runtime adapter, the discovery cache and the event
watcher. Per-container label problems are not errors; see
``synthesizer.ConfigSynthesisSkip``.
"""


class ExposerError(Exception):
    """Base class for all traefik-exposer errors"""


class ConfigurationError(ExposerError):
    """Invalid process configuration (listen address, log level, ...)"""


class RuntimeConnectError(ExposerError):
    """The container runtime cannot be reached at startup"""


class RuntimeQueryError(ExposerError):
    """Listing containers failed during a cache refresh"""


class EventStreamError(ExposerError):
    """A single event received from the runtime could not be decoded"""

    def __init__(self, message: str, payload: bytes = b''):
        super().__init__(message)
        self.payload = payload
