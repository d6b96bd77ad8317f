"""
Configuration Loading and Utilities

This module provides configuration loading from environment variables (and an
optional ``.env`` file) with defaults, along with validation, command line
overrides and a printable summary.
"""

import os
from typing import Dict, Tuple

from dotenv import load_dotenv

from .errors import ConfigurationError
from .synthesizer import DEFAULT_LABEL_PREFIX
from .watcher import DEFAULT_EVENT_KINDS

DEFAULT_LISTEN_ADDR = '0.0.0.0:3716'
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == 'true'


def _split_list(raw: str):
    return [item.strip() for item in raw.split(',') if item.strip()]


def load_config(dotenv: bool = True) -> Dict:
    """Load configuration from environment variables and defaults"""
    if dotenv:
        load_dotenv(override=False)

    config = {
        # Listen address for the HTTP endpoint
        'listen_addr': os.getenv('EXPOSER_ADDR', DEFAULT_LISTEN_ADDR),

        # Container labels
        'label_prefix': os.getenv('EXPOSER_LABEL_PREFIX', DEFAULT_LABEL_PREFIX),
        'watch_events': _split_list(os.getenv('EXPOSER_WATCH_EVENTS', ','.join(DEFAULT_EVENT_KINDS))),

        # Logging configuration
        'log_level': os.getenv('LOG_LEVEL', 'INFO'),
        'console_logging': _env_bool('CONSOLE_LOGGING', 'true'),
        'file_logging': _env_bool('FILE_LOGGING', 'false'),
        'log_directory': os.getenv('LOG_DIRECTORY', './logs'),
        'log_max_size': int(os.getenv('LOG_MAX_SIZE', '10485760')),
        'log_max_count': int(os.getenv('LOG_MAX_COUNT', '5')),
    }

    return config


def parse_listen_addr(addr: str) -> Tuple[str, int]:
    """Split ``host:port`` (or ``[ipv6]:port``) into its parts"""
    host, sep, port = addr.strip().rpartition(':')
    if not sep or not host or not port:
        raise ConfigurationError(f"Invalid listen address '{addr}'. Expected host:port")

    if host.startswith('[') and host.endswith(']'):
        host = host[1:-1]

    if not port.isdigit() or not (1 <= int(port) <= 65535):
        raise ConfigurationError(f"Invalid port in listen address '{addr}'. Must be between 1 and 65535")

    return host, int(port)


def validate_config(config: Dict) -> Dict:
    """Validate configuration and return any warnings or errors"""
    warnings = []
    errors = []

    if config['log_level'].upper() not in VALID_LOG_LEVELS:
        errors.append(f"Invalid log level '{config['log_level']}'. Must be one of: {VALID_LOG_LEVELS}")

    try:
        parse_listen_addr(config['listen_addr'])
    except ConfigurationError as e:
        errors.append(str(e))

    if not config['label_prefix']:
        errors.append("Label prefix must not be empty")
    elif not config['label_prefix'].endswith('.'):
        warnings.append(f"Label prefix '{config['label_prefix']}' does not end with '.'")

    if not config['watch_events']:
        errors.append("No container events to watch. The cache would never be refreshed after the first request")
    else:
        unusual = sorted(set(config['watch_events']) - set(DEFAULT_EVENT_KINDS))
        if unusual:
            warnings.append(f"Watching non-default container events: {unusual}")

    if config['log_max_count'] < 1:
        errors.append(f"Invalid log max count {config['log_max_count']}. Must be at least 1")

    if not config['console_logging'] and not config['file_logging']:
        warnings.append("Both console and file logging are disabled")

    return {
        'valid': len(errors) == 0,
        'warnings': warnings,
        'errors': errors
    }


def get_config_summary(config: Dict) -> Dict:
    """Get a summary of the current configuration"""
    from . import __version__

    return {
        'version': __version__,
        'listen_addr': config['listen_addr'],
        'labels': {
            'prefix': config['label_prefix'],
            'watch_events': list(config['watch_events']),
        },
        'logging': {
            'level': config['log_level'],
            'console': config['console_logging'],
            'file': config['file_logging'],
            'directory': config['log_directory']
        },
    }


def print_config_summary(config: Dict, logger=None):
    """Print a formatted configuration summary"""
    summary = get_config_summary(config)
    validation = validate_config(config)

    def log_or_print(message, level='info'):
        if logger:
            getattr(logger, level)(message)
        else:
            print(message)

    log_or_print("=" * 60)
    log_or_print(f"Traefik Exposer v{summary['version']}")
    log_or_print("=" * 60)

    log_or_print("HTTP Endpoint:")
    log_or_print(f"   Listen address: {summary['listen_addr']}")
    log_or_print("   Traefik config: /traefik")

    log_or_print("Labels:")
    log_or_print(f"   Prefix: {summary['labels']['prefix']}")
    log_or_print(f"   Watched events: {', '.join(summary['labels']['watch_events'])}")

    log_or_print("Logging:")
    log_or_print(f"   Level: {summary['logging']['level']}")
    log_or_print(f"   Console: {'enabled' if summary['logging']['console'] else 'disabled'}")
    log_or_print(f"   File: {'enabled' if summary['logging']['file'] else 'disabled'}")
    if summary['logging']['file']:
        log_or_print(f"   Directory: {summary['logging']['directory']}")

    if validation['warnings']:
        log_or_print("Warnings:", 'warning')
        for warning in validation['warnings']:
            log_or_print(f"   - {warning}", 'warning')

    if validation['errors']:
        log_or_print("Errors:", 'error')
        for error in validation['errors']:
            log_or_print(f"   - {error}", 'error')

    if validation['valid'] and not validation['warnings']:
        log_or_print("Configuration is valid")

    log_or_print("=" * 60)


def override_config_from_args(config: Dict, args) -> Dict:
    """Override configuration with command line arguments"""
    if getattr(args, 'addr', None):
        config['listen_addr'] = args.addr
    if getattr(args, 'log_level', None):
        config['log_level'] = args.log_level
    if getattr(args, 'label_prefix', None):
        config['label_prefix'] = args.label_prefix
    if getattr(args, 'no_console_logging', False):
        config['console_logging'] = False
    if getattr(args, 'file_logging', False):
        config['file_logging'] = True
    if getattr(args, 'log_directory', None):
        config['log_directory'] = args.log_directory

    return config
