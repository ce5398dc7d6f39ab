import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class SessionProgress(BaseModel):
    interview_id: str
    current_index: int = 0
    answered: List[str] = Field(default_factory=list)
    remaining: Dict[str, int] = Field(default_factory=dict)


class ProgressStore:
    """Keeps session progress in two files so a lost or corrupt copy can be recovered.

    ``session/`` is read first and ``local/`` is the backup, mirroring the browser's
    session and local storage.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _paths(self, interview_id: str) -> List[Path]:
        name = f"interview-progress-{interview_id}.json"
        return [self.directory / "session" / name, self.directory / "local" / name]

    def save(self, progress: SessionProgress):
        data = progress.model_dump_json()
        for path in self._paths(progress.interview_id):
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(data, encoding="utf-8")
            os.replace(tmp, path)

    def load(self, interview_id: str) -> Optional[SessionProgress]:
        for path in self._paths(interview_id):
            if not path.exists():
                continue
            try:
                progress = SessionProgress.model_validate_json(path.read_text(encoding="utf-8"))
            except (OSError, ValidationError) as exc:
                logger.warning("Ignoring unreadable progress file %s: %s", path, exc)
                continue
            if progress.interview_id == interview_id:
                return progress
        return None

    def discard(self, interview_id: str):
        for path in self._paths(interview_id):
            path.unlink(missing_ok=True)
