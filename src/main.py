"""
Daikin Exporter - Main Entry Point
"""

import asyncio
import sys
import logging

from config_loader import config_path_from_environment, load_config, setup_logging
from services.exporter_server import DaikinExporterServer

logger = logging.getLogger(__name__)

async def main(config) -> int:
    """Run the exporter; only returns after a fatal error"""
    server = DaikinExporterServer(config)
    return await server.run()

def run():
    """Console script entry point"""
    logging.basicConfig(level=logging.INFO)

    # Config file from the first argument or CONFIG_FILE, defaults otherwise
    config_path = config_path_from_environment()

    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        logger.error(f"Unable to load configuration: {e}")
        sys.exit(1)

    setup_logging(config)

    try:
        exit_code = asyncio.run(main(config))
    except KeyboardInterrupt:
        logger.info("Exporter interrupted")
        exit_code = 1

    sys.exit(exit_code)

if __name__ == "__main__":
    run()
