import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class ProgressSnapshot(BaseModel):
    """
    In-flight progress of one attempt, kept on the student's machine.

    Attributes:
        answers:          {questionId: selected option index, as text}
        current_question: index of the question on screen (0-based)
        time_remaining:   seconds left when the snapshot was written
        deadline:         absolute unix timestamp the attempt ends at, if known
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    answers: Dict[str, str] = Field(default_factory=dict)
    current_question: int = Field(default=0, ge=0)
    time_remaining: int = 0
    deadline: Optional[float] = Field(default=None, allow_inf_nan=False)


class ProgressCache:
    """One JSON file per exam id under ``directory``. Reads fail soft to None."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, exam_id: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", str(exam_id))
        return self.directory / f"exam-{safe}.json"

    def save(self, exam_id: str, snapshot: ProgressSnapshot) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(exam_id)
        # write to a temp file and swap it in so a crash never leaves half a record
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(snapshot.model_dump_json(by_alias=True))
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def load(self, exam_id: str) -> Optional[ProgressSnapshot]:
        path = self._path(exam_id)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Could not read progress for exam %s: %s", exam_id, e)
            return None
        try:
            return ProgressSnapshot.model_validate_json(raw)
        except (ValidationError, UnicodeDecodeError) as e:
            logger.warning("Ignoring corrupt progress record for exam %s: %s", exam_id, type(e).__name__)
            return None

    def clear(self, exam_id: str) -> None:
        try:
            self._path(exam_id).unlink()
        except FileNotFoundError:
            pass
