"""File-system storage for intent steps under ``.intent/``.

Layout::

    .intent/
        intent.toml     project metadata and the recorded session list
        config.toml     user settings (see config.py)
        steps/NNN.md    one markdown document per step
"""

import logging
import tomllib
from pathlib import Path

import tomli_w

from .config import CONFIG_FILENAME, DEFAULT_CONFIG_TOML
from .errors import ConfigError, RepositoryError, StepFormatError, StepNotFoundError
from .models import Step
from .renderer import format_step_number, parse_step, render_step

logger = logging.getLogger(__name__)

DEFAULT_INTENT_DIR = ".intent"
INTENT_FILENAME = "intent.toml"
STEPS_DIRNAME = "steps"


def default_intent_data() -> dict:
    return {
        "project": {
            "name": "",
            "description": "",
            "origin": "",
            "author": "",
            "forked_from": "",
            "forked_at_step": 0,
        },
        "source": {
            "tool": "claude-code",
            "version": "",
            "model": "",
        },
        "collect": {
            "sessions": [],
        },
    }


class FileSystemRepository:
    """Owns the persisted steps, the step counter and the recorded sessions."""

    def __init__(self, root: Path):
        self.root = Path(root)

    @classmethod
    def open(cls, root=DEFAULT_INTENT_DIR) -> "FileSystemRepository":
        """Open an existing store.

        Raises:
            RepositoryError: If the directory has not been initialized.
        """
        root = Path(root)
        if not root.is_dir():
            raise RepositoryError(f"{root}/ not found. Run `intent init` first")
        return cls(root)

    @classmethod
    def init(cls, root=DEFAULT_INTENT_DIR) -> "FileSystemRepository":
        """Create a new store with default metadata and configuration."""
        root = Path(root)
        if root.exists():
            raise RepositoryError(f"{root}/ already exists")

        (root / STEPS_DIRNAME).mkdir(parents=True)
        repo = cls(root)
        repo._write_intent_toml(default_intent_data())
        (root / CONFIG_FILENAME).write_text(DEFAULT_CONFIG_TOML, encoding="utf-8")
        return repo

    @property
    def steps_dir(self) -> Path:
        return self.root / STEPS_DIRNAME

    @property
    def intent_toml_path(self) -> Path:
        return self.root / INTENT_FILENAME

    def _step_path(self, number: int) -> Path:
        return self.steps_dir / f"{format_step_number(number)}.md"

    def _read_intent_toml(self) -> dict:
        path = self.intent_toml_path
        if not path.exists():
            return default_intent_data()
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Cannot parse {path}: {e}")
        data.setdefault("collect", {}).setdefault("sessions", [])
        return data

    def _write_intent_toml(self, data: dict) -> None:
        self.intent_toml_path.write_bytes(tomli_w.dumps(data).encode("utf-8"))

    def recorded_sessions(self) -> list:
        return list(self._read_intent_toml()["collect"]["sessions"])

    def is_session_recorded(self, session_id: str) -> bool:
        return session_id in self.recorded_sessions()

    def record_session(self, session_id: str) -> None:
        """Mark a session as collected. Recording twice is a no-op."""
        data = self._read_intent_toml()
        sessions = data["collect"]["sessions"]
        if session_id not in sessions:
            sessions.append(session_id)
            self._write_intent_toml(data)

    def list_steps(self) -> list:
        """All readable steps in step-number order.

        Files that fail to parse are skipped with a warning.
        """
        if not self.steps_dir.is_dir():
            return []

        steps = []
        for path in sorted(self.steps_dir.glob("*.md")):
            try:
                steps.append(parse_step(path.read_text(encoding="utf-8")))
            except (OSError, StepFormatError) as e:
                logger.warning("Skipping unreadable step file '%s': %s", path.name, e)
        steps.sort(key=lambda s: s.number)
        return steps

    def get_step(self, number: int) -> Step:
        path = self._step_path(number)
        if not path.exists():
            raise StepNotFoundError(f"Step {format_step_number(number)} not found")
        return parse_step(path.read_text(encoding="utf-8"))

    def save_step(self, step: Step) -> None:
        self.steps_dir.mkdir(parents=True, exist_ok=True)
        self._step_path(step.number).write_text(render_step(step), encoding="utf-8")

    def next_step_number(self) -> int:
        """One past the highest step file number, starting at 1.

        Counts files that fail to parse too, so they are never overwritten.
        """
        if not self.steps_dir.is_dir():
            return 1
        numbers = [
            int(path.stem) for path in self.steps_dir.glob("*.md")
            if path.stem.isascii() and path.stem.isdigit()
        ]
        return max(numbers, default=0) + 1

    def remove_step(self, number: int) -> None:
        path = self._step_path(number)
        if not path.exists():
            raise StepNotFoundError(f"Step {format_step_number(number)} not found")
        path.unlink()

    def reset(self) -> None:
        """Delete every step and forget all recorded sessions."""
        if self.steps_dir.is_dir():
            for path in self.steps_dir.glob("*.md"):
                path.unlink()

        data = self._read_intent_toml()
        data["collect"]["sessions"] = []
        self._write_intent_toml(data)
