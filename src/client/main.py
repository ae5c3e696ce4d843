#!/usr/bin/env python3
"""
Chat Shell Application

Terminal front end of the chat shell. All backend access goes through the
bridge package; which backend is used is decided from the environment
(see bridge.config).
"""

import logging
import sys

from bridge import BridgeConfig

logger = logging.getLogger(__name__)


def configure_logging(config: BridgeConfig) -> None:
    """Log to a file so records do not interfere with the UI."""
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.FileHandler(config.log_file, mode="a")],
    )


def main():
    """Main entry point for the chat shell."""
    config = BridgeConfig.from_env()
    configure_logging(config)
    logger.info(
        "Starting chat shell (%s backend)...",
        "native" if config.has_native_bridge else config.engine_module,
    )

    try:
        from .ui import ShellApp

        app = ShellApp(config=config)
        app.run()
    except ImportError as e:
        print(f"Error: Could not import UI components: {e}")
        print("Make sure textual is installed: pip install textual")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nExiting...")
        sys.exit(0)


if __name__ == "__main__":
    main()
