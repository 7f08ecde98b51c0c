"""Progress storage for the game.

Only a handful of fields survive between sessions: level, score, cleared
layers and the board footprint. Stores swallow and log their own failures so
a broken save file can never stop a game from starting.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
import json
import logging
import math
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from .grid import BoardSize


logger = logging.getLogger(__name__)


class ProgressStore(Protocol):
    def load(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    def save(self, key: str, payload: Dict[str, Any]) -> None:
        ...


class MemoryStore:
    def __init__(self) -> None:
        self.data: Dict[str, str] = {}

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self.data.get(key)
        if raw is None:
            return None
        try:
            parsed = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Failed to restore progress: {e}")
            return None
        return parsed if isinstance(parsed, dict) else None

    def save(self, key: str, payload: Dict[str, Any]) -> None:
        self.data[key] = json.dumps(payload)


class JsonFileStore:
    """Key/value JSON document on disk, one entry per storage key."""

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self.path = Path(path)

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object in {self.path}")
        return data

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            entry = self._read_all().get(key)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to restore progress from '{self.path}': {e}")
            return None
        return entry if isinstance(entry, dict) else None

    def save(self, key: str, payload: Dict[str, Any]) -> None:
        try:
            try:
                data = self._read_all()
            except ValueError:
                data = {}
            data[key] = payload
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.warning(f"Failed to persist progress to '{self.path}': {e}")


def _int_or(value: Any, default: int, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return max(minimum, int(value))


@dataclass
class Progress:
    level: int = 1
    score: int = 0
    lines_cleared: int = 0
    board_width: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "Progress":
        """Missing or malformed fields fall back to defaults."""
        if not isinstance(payload, dict):
            return cls()
        width = None
        size = payload.get("boardSize")
        if isinstance(size, dict):
            w = _int_or(size.get("width"), -1)
            width = w if w > 0 else None
        return cls(
            level=_int_or(payload.get("level"), 1, minimum=1),
            score=_int_or(payload.get("score"), 0),
            lines_cleared=_int_or(payload.get("linesCleared"), 0),
            board_width=width,
        )

    @staticmethod
    def to_payload(level: int, score: int, lines_cleared: int, size: BoardSize) -> Dict[str, Any]:
        return {
            "level": level,
            "score": score,
            "linesCleared": lines_cleared,
            "boardSize": asdict(size),
        }
