"""Parse Claude Code session logs into conversation turns."""

import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .errors import LogSourceError, SessionNotFoundError
from .models import ConversationTurn
from .schema import RawLogRecord, TextBlock, ThinkingBlock, ToolResultBlock, ToolUseBlock

logger = logging.getLogger(__name__)

SYSTEM_REMINDER_RE = re.compile(r"<system-reminder>.*?</system-reminder>", re.DOTALL)


def strip_system_reminders(text: str) -> str:
    """Remove every <system-reminder> span and trim the result."""
    return SYSTEM_REMINDER_RE.sub("", text).strip()


def segment(log_text: str) -> list:
    """Split a session transcript into conversation turns.

    A top-level user record with string content opens a new turn. Tool
    results (user records with block content) and assistant records are
    folded into the turn in progress. Sidechain records, records without
    a message and lines that are not valid records are dropped.

    Args:
        log_text: Full JSONL transcript text.

    Returns:
        Ordered list of ConversationTurn. Empty when the log never
        contains an opening user prompt.
    """
    turns = []
    current: Optional[ConversationTurn] = None

    for lineno, line in enumerate(log_text.split("\n"), 1):
        line = line.strip()
        if not line:
            continue

        record = _parse_record(line, lineno)
        if record is None or record.isSidechain is True or record.message is None:
            continue

        message = record.message
        if message.role == "user":
            if isinstance(message.content, str):
                if current is not None:
                    turns.append(current)
                current = ConversationTurn(user_prompt=strip_system_reminders(message.content))
            elif current is not None:
                for block in message.content:
                    if isinstance(block, ToolResultBlock):
                        current.tool_results.extend(block.texts())
        elif message.role == "assistant" and current is not None:
            _fold_assistant_blocks(message.content, current)

    if current is not None:
        turns.append(current)

    return turns


def _parse_record(line: str, lineno: int) -> Optional[RawLogRecord]:
    """Decode and validate one JSONL line, or None if it is noise."""
    try:
        raw = json.loads(line)
    except json.JSONDecodeError:
        logger.debug("line %d: not valid JSON, skipped", lineno)
        return None

    try:
        return RawLogRecord.model_validate(raw)
    except ValidationError:
        logger.debug("line %d: unrecognized record shape, skipped", lineno)
        return None


def _fold_assistant_blocks(content, turn: ConversationTurn) -> None:
    """Append assistant content blocks to the turn in progress."""
    if isinstance(content, str):
        return

    for block in content:
        if isinstance(block, ThinkingBlock):
            turn.assistant_thinking.append(block.thinking)
        elif isinstance(block, TextBlock):
            turn.assistant_text.append(block.text)
        elif isinstance(block, ToolUseBlock):
            turn.tool_uses.append(block.name)
            skill = block.skill_name()
            if skill is not None:
                turn.skills.append(skill)


def get_claude_projects_dir() -> Path:
    """Get the Claude Code projects directory."""
    return Path.home() / ".claude" / "projects"


def get_project_hash(cwd: str) -> str:
    """Convert a filesystem path to Claude's project directory name."""
    return cwd.replace(os.sep, "-")


class ClaudeCodeLogReader:
    """Reads session transcripts from one Claude Code project directory."""

    def __init__(self, project_dir: Path):
        self.project_dir = project_dir

    @classmethod
    def for_project(
        cls,
        project_path: Optional[str] = None,
        projects_dir: Optional[Path] = None,
    ) -> "ClaudeCodeLogReader":
        """Locate the log directory for a project.

        Args:
            project_path: Filesystem path to the project. Defaults to cwd.
            projects_dir: Claude projects root. Defaults to ~/.claude/projects.

        Raises:
            LogSourceError: If no log directory exists for the project.
        """
        projects_dir = projects_dir or get_claude_projects_dir()
        project_path = os.path.abspath(project_path or os.getcwd())
        project_hash = get_project_hash(project_path)

        project_dir = projects_dir / project_hash
        if not project_dir.is_dir() and projects_dir.is_dir():
            # Try to find a matching project directory
            for p in sorted(projects_dir.iterdir()):
                if p.is_dir() and (project_hash in p.name or p.name in project_hash):
                    project_dir = p
                    break

        if not project_dir.is_dir():
            raise LogSourceError(
                f"Claude Code project directory not found: {project_dir}\n"
                "Check that Claude Code has been used in this directory"
            )
        return cls(project_dir)

    def list_sessions(self) -> list:
        """Session ids in the project, oldest first."""
        def created(path: Path) -> tuple:
            stat = path.stat()
            return (getattr(stat, "st_birthtime", stat.st_mtime), path.stem)

        return [p.stem for p in sorted(self.project_dir.glob("*.jsonl"), key=created)]

    def read_session(self, session_id: str) -> str:
        """Return the full transcript text of a session."""
        return self._session_path(session_id).read_text(encoding="utf-8")

    def get_session_timestamp(self, session_id: str) -> datetime:
        """Return the creation time of a session log in UTC."""
        stat = self._session_path(session_id).stat()
        created = getattr(stat, "st_birthtime", stat.st_mtime)
        return datetime.fromtimestamp(created, tz=timezone.utc)

    def _session_path(self, session_id: str) -> Path:
        if "/" in session_id or "\\" in session_id or ".." in session_id:
            raise LogSourceError(f"Invalid session id: {session_id}")

        path = self.project_dir / f"{session_id}.jsonl"
        if not path.exists():
            raise SessionNotFoundError(f"No log found for session '{session_id}'")
        return path
