"""Service entry point (logging is configured before anything else)"""

import asyncio
import logging
import sys


# Colour per level
LOG_COLORS = {
    logging.DEBUG: "\033[38;5;245m",      # grey
    logging.INFO: "\033[38;5;79m",        # teal
    logging.WARNING: "\033[38;5;221m",    # amber
    logging.ERROR: "\033[38;5;203m",      # soft red
    logging.CRITICAL: "\033[1;38;5;203m", # bold soft red
}

# Fixed-width level names
LOG_LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO ",
    logging.WARNING: "WARN ",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRIT ",
}


from study_locker.config.settings import get_settings
from study_locker.core.timezone import get_timezone

settings = get_settings()
TZ = get_timezone()


class ColorFormatter(logging.Formatter):
    """Coloured, aligned formatter with timestamps in the configured zone"""

    def formatTime(self, record, datefmt=None):
        import time
        from datetime import datetime

        dt = datetime.fromtimestamp(record.created, tz=TZ)
        ct = dt.replace(tzinfo=None).timetuple()

        if datefmt:
            s = time.strftime(datefmt, ct)
        else:
            t = time.strftime(self.default_time_format, ct)
            s = f"{t[:19]}"
        return s

    def format(self, record):
        level_color = LOG_COLORS.get(record.levelno, "")
        record.levelname = LOG_LEVEL_NAMES.get(record.levelno, record.levelname)

        result = super().format(record)

        if level_color and sys.stdout.isatty():
            result = f"{level_color}{result}\033[0m"

        return result


logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

for handler in logging.root.handlers:
    handler.setFormatter(ColorFormatter(
        fmt="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))

# Keep library chatter out of the service log
logging.getLogger("asyncio").setLevel(logging.INFO)
logging.getLogger("asyncpg").setLevel(logging.WARNING)

from study_locker.app import serve


def main():
    """Start the locker service"""
    logger = logging.getLogger(__name__)
    logger.info("Starting locker service...")
    asyncio.run(serve())


if __name__ == "__main__":
    main()
