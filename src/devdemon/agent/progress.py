"""Progress notes the agent keeps between cycles."""

from __future__ import annotations

import logging
from pathlib import Path

from devdemon.config.constants import PROGRESS_FILE_NAME

logger = logging.getLogger("devdemon.agent.progress")


class ProgressNotes:
    """Read-only view of ``.devdemon/progress.md``."""

    def __init__(self, devdemon_dir: Path) -> None:
        self._path = devdemon_dir / PROGRESS_FILE_NAME

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> str | None:
        """Return the notes, or None when missing, unreadable, or blank."""
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Could not read progress notes %s: %s", self._path, exc)
            return None
        return text if text.strip() else None
