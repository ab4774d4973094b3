#!/usr/bin/env python3
"""CLI entry point for luagate"""
import argparse

import uvicorn

from luagate.core.config import get_env_config, load_config
from luagate.core.logging import setup_logging, get_logger
from luagate.main import create_app


def main():
    """Main entry point"""
    env = get_env_config()

    # Initialize logging early
    setup_logging(log_level="DEBUG" if env.debug else env.log_level, log_file=env.log_file)
    logger = get_logger()

    parser = argparse.ArgumentParser(description="luagate API gateway")
    parser.add_argument(
        "--config",
        type=str,
        default=env.config_path,
        help="Path to configuration file (default: $CONFIG_PATH or config.yaml)",
    )
    args = parser.parse_args()

    config = load_config(args.config)

    host = env.host or config.server.host
    port = env.port or config.server.port

    logger.info(f"Using config file: {args.config}")
    logger.info(f"Listening on {host}:{port}")

    # Configure uvicorn to use loguru
    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_config=None,  # Disable uvicorn's default logging config
        access_log=True,  # Enable access logs (will be intercepted by loguru)
    )


if __name__ == "__main__":
    main()
