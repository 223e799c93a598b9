"""Entry point for Stickies.

This module allows running Stickies as a module:
    python -m stickies

Or as an installed command:
    stickies
"""

import sys
from typing import Optional

from stickies.logging_config import setup_logging, get_logger

# Initialize logger for this module
logger = get_logger(__name__)


def main(args: Optional[list[str]] = None) -> int:
    """Main entry point for Stickies.

    Args:
        args: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if args is None:
        args = sys.argv[1:]

    # Initialize logging before any other operations
    setup_logging()

    # Import here to keep startup light
    from stickies.config import Config
    from stickies.ui.app import StickiesApp

    try:
        app = StickiesApp(config=Config())
        app.run()
        logger.info("Stickies application exited normally")
        return 0
    except KeyboardInterrupt:
        logger.info("Stickies closed by user (Ctrl+C)")
        return 0
    except Exception:
        logger.error("Error running Stickies", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
