import logging
from dataclasses import dataclass
from typing import List, Literal

logger = logging.getLogger(__name__)

Level = Literal["info", "success", "warning", "error"]

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class Notice:
    level: Level
    message: str


class Notifier:
    """User-visible notices for the candidate, in the order they were raised."""

    def __init__(self):
        self.notices: List[Notice] = []

    def notify(self, level: Level, message: str):
        self.notices.append(Notice(level, message))
        logger.log(_LOG_LEVELS[level], "[%s] %s", level, message)

    def info(self, message: str):
        self.notify("info", message)

    def success(self, message: str):
        self.notify("success", message)

    def warning(self, message: str):
        self.notify("warning", message)

    def error(self, message: str):
        self.notify("error", message)

    def of_level(self, level: Level) -> List[str]:
        return [notice.message for notice in self.notices if notice.level == level]

    def clear(self):
        self.notices.clear()
