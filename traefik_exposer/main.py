#!/usr/bin/env python3
"""
Traefik Exposer - Application Entry Point

Handles command line arguments and configuration, then starts the exposer.
"""

import argparse
import signal
import sys

from . import __version__
from .config import load_config, override_config_from_args, print_config_summary, validate_config
from .errors import ConfigurationError
from .exposer import EXIT_FAILURE, EXIT_OK, Exposer


def setup_signal_handlers(exposer: Exposer):
    """Setup signal handlers for graceful shutdown"""
    def signal_handler(signum, frame):
        exposer.logger.info(f"Received signal {signum}. Shutting down gracefully...")
        exposer.request_stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


def create_argument_parser():
    """Create and configure the argument parser"""
    parser = argparse.ArgumentParser(
        prog='traefik-exposer',
        description='Serve Traefik dynamic configuration generated from container labels',
        epilog='''
Examples:
  %(prog)s --addr 0.0.0.0:3716
  %(prog)s --log-level DEBUG --label-prefix "myapp.traefik."

Environment Variables:
  EXPOSER_ADDR           Listen address (default: 0.0.0.0:3716)
  EXPOSER_LABEL_PREFIX   Container label prefix (default: kasama.traefik-exposer.)
  EXPOSER_WATCH_EVENTS   Comma-separated container events that invalidate the cache
  LOG_LEVEL              Logging level (DEBUG, INFO, WARNING, ERROR)
        ''',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f"Traefik Exposer v{__version__}"
    )

    parser.add_argument(
        '--addr',
        help='Listen address host:port (overrides EXPOSER_ADDR env var, default: 0.0.0.0:3716)'
    )
    parser.add_argument(
        '--label-prefix',
        help='Container label prefix (overrides EXPOSER_LABEL_PREFIX env var)'
    )

    # Logging options
    logging_group = parser.add_argument_group('Logging Options')
    logging_group.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Set logging level (overrides LOG_LEVEL env var)'
    )
    logging_group.add_argument(
        '--no-console-logging',
        action='store_true',
        help='Disable console logging'
    )
    logging_group.add_argument(
        '--file-logging',
        action='store_true',
        help='Enable rotating file logging'
    )
    logging_group.add_argument(
        '--log-directory',
        help='Log file directory (overrides LOG_DIRECTORY env var)'
    )

    # Utility options
    util_group = parser.add_argument_group('Utility Options')
    util_group.add_argument(
        '--config-check',
        action='store_true',
        help='Check configuration and exit'
    )
    util_group.add_argument(
        '--config-summary',
        action='store_true',
        help='Print configuration summary and exit'
    )

    return parser


def main(argv=None):
    """Main application entry point"""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
        config = override_config_from_args(config, args)
    except ValueError as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return EXIT_FAILURE

    validation = validate_config(config)

    if args.config_check:
        print("Configuration validation:")
        if validation['valid']:
            print("Configuration is valid")
        else:
            print("Configuration has errors:")
            for error in validation['errors']:
                print(f"   - {error}")

        if validation['warnings']:
            print("Warnings:")
            for warning in validation['warnings']:
                print(f"   - {warning}")

        return EXIT_OK if validation['valid'] else EXIT_FAILURE

    if args.config_summary:
        print_config_summary(config)
        return EXIT_OK

    if not validation['valid']:
        print("Configuration errors found:", file=sys.stderr)
        for error in validation['errors']:
            print(f"   - {error}", file=sys.stderr)
        print("\nUse --config-check to validate configuration", file=sys.stderr)
        return EXIT_FAILURE

    try:
        exposer = Exposer(config)
        setup_signal_handlers(exposer)

        if validation['warnings']:
            print_config_summary(config, exposer.logger)

        return exposer.start()

    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == '__main__':
    sys.exit(main())
