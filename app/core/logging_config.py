import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None):
    logging.basicConfig(level=(level or settings.log_level).upper(), format=LOG_FORMAT)

    logger = logging.getLogger("app.config")
    logger.info("Using database: %s", "SQLite" if settings.is_sqlite else "external")
    logger.info("OPENAI_API_KEY set: %s", bool(settings.openai_api_key))
    logger.info("SMTP configured: %s", settings.smtp_configured)
