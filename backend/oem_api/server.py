# Overview: Process entry point: serve the app and shut down cleanly on signals.

from __future__ import annotations

import logging
import signal
import sys

from werkzeug.serving import run_simple

from . import create_app
from .config import ConfigError, load_settings


logger = logging.getLogger("oem_api.server")


def _install_signal_handlers() -> None:
    def shutdown(signum, frame):
        logger.info("%s received, shutting down gracefully", signal.Signals(signum).name)
        sys.exit(0)

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)


def main() -> None:
    try:
        settings = load_settings()
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    app = create_app(settings)
    _install_signal_handlers()

    logger.info("Server running on port %s", settings.PORT)
    logger.info("Environment: %s", settings.APP_ENV)
    logger.info("Health check: http://localhost:%s/api/health", settings.PORT)

    try:
        run_simple("0.0.0.0", settings.PORT, app, threaded=True, use_reloader=settings.is_development)
    finally:
        app.extensions["oem_integrations"].close()


if __name__ == "__main__":
    main()
