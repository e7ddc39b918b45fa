"""
TWINGUARD - Wi-Fi Evil Twin Detection

Flask application and engine wiring.
"""

from __future__ import annotations

import sys

from flask import Flask, Response, jsonify

import config
from utils.database import init_db
from utils.logging import app_logger
from utils.wifi_guard.engine import EXTENSION_KEY, Engine, create_engine


def create_app(engine: Engine | None = None) -> Flask:
    """
    Create the Flask app.

    Args:
        engine: Pre-built engine (tests); otherwise the database is
            initialized and a persistent engine is created
    """
    from routes import register_blueprints

    flask_app = Flask(__name__)
    if engine is None:
        init_db()
        engine = create_engine()
    flask_app.extensions[EXTENSION_KEY] = engine
    register_blueprints(flask_app)

    @flask_app.route('/health')
    def health() -> Response:
        current = flask_app.extensions[EXTENSION_KEY]
        return jsonify({
            'status': 'ok',
            'version': config.VERSION,
            'records': len(current.store),
            'pending_writes': current.store.pending_writes,
            'allowlist_version': current.allowlist.version or None,
        })

    return flask_app


def main() -> None:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description='TWINGUARD - Wi-Fi Evil Twin Detection',
        epilog='Environment variables: TWINGUARD_HOST, TWINGUARD_PORT, TWINGUARD_DEBUG, '
               'TWINGUARD_LOG_LEVEL, TWINGUARD_ALLOWLIST_URL'
    )
    parser.add_argument(
        '-p', '--port',
        type=int,
        default=config.PORT,
        help=f'Port to run server on (default: {config.PORT})'
    )
    parser.add_argument(
        '-H', '--host',
        default=config.HOST,
        help=f'Host to bind to (default: {config.HOST})'
    )
    parser.add_argument(
        '-d', '--debug',
        action='store_true',
        default=config.DEBUG,
        help='Enable debug mode'
    )
    parser.add_argument(
        '--sync-allowlist',
        action='store_true',
        help='Sync the allow-list once and exit'
    )
    args = parser.parse_args()

    config.configure_logging()
    init_db()
    engine = create_engine()

    # Sync only
    if args.sync_allowlist:
        result = engine.syncer.sync()
        print(f"Allow-list sync: {result.status}")
        if result.version:
            print(f"  version: {result.version} ({result.entry_count} entries)")
        if result.error:
            print(f"  error: {result.error}")
        sys.exit(0 if result.status == 'synced' else 1)

    print("=" * 50)
    print("  TWINGUARD // Wi-Fi Evil Twin Detection")
    print("=" * 50)
    print()

    result = engine.syncer.sync()
    app_logger.info(f"Startup allow-list sync: {result.status}")

    flask_app = create_app(engine)

    print(f"API at http://localhost:{args.port}/networks")
    print()
    print("Press Ctrl+C to stop")
    print()

    flask_app.run(host=args.host, port=args.port, debug=args.debug, threaded=config.THREADED)


if __name__ == '__main__':
    main()
