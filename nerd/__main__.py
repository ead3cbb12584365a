"""
Entry point for running nerd as a module.

Usage:
    python -m nerd        # Start the training service and the API on $PORT (5400)

Configuration comes from environment variables, see nerd/config.py.
"""

import sys

from .config import Config
from .core.errors import NerdError
from .core.jobs import TrainingService
from .logs import setup_logging
from .stores import new_param_store, new_point_store
from .web import create_app


def main() -> int:
    try:
        config = Config.from_env()
        logger = setup_logging(config.logger)
    except NerdError as e:
        print(f"Error encountered while loading configuration: {e}", file=sys.stderr)
        return 1

    logger.info("initializing component, version %s", config.app_version)
    try:
        param_store = new_param_store(config.ml.store_type, config.ml.store_params)
        point_store = new_point_store(config.series.store_type, config.series.store_params)
    except NerdError:
        logger.exception("error encountered while initializing stores")
        return 1

    service = TrainingService(param_store, point_store, config.ml, config.queue_size)
    service.start()
    app = create_app(config, param_store, point_store, service)
    try:
        app.run(host=config.host, port=config.port)
    finally:
        logger.info("shutting down")
        service.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
