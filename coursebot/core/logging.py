import logging
from coursebot.core.config import settings

def setup_logging():
    level = logging.DEBUG if settings.ENV != "prod" else logging.INFO
    if settings.LOG_LEVEL:
        level = settings.LOG_LEVEL.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # httpx logs every request at INFO; keep it out of the service log.
    logging.getLogger("httpx").setLevel(logging.WARNING)
