"""Logger setup for the dashboard backend"""

import logging
import sys

def setup_logging(level: str = "INFO"):
    """Route all loggers to stdout; safe to call more than once"""

    logger = logging.getLogger()
    logger.setLevel(level.upper())

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if not any(getattr(h, "_aura_console", False) for h in logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler._aura_console = True
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # APScheduler logs every job run at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    logger.info("Logging configured")
