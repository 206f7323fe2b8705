"""Shared fixtures for the intentlog test suite."""

import json
from datetime import datetime, timezone

import pytest

from intentlog.models import StepDraft
from intentlog.repository import FileSystemRepository

SESSION_TIME = datetime(2025, 1, 15, 10, 30, 0, 123456, tzinfo=timezone.utc)


class LogBuilder:
    """Builds Claude Code JSONL transcripts line by line."""

    def __init__(self):
        self.lines = []

    def record(self, record: dict) -> "LogBuilder":
        self.lines.append(json.dumps(record, ensure_ascii=False))
        return self

    def raw(self, line: str) -> "LogBuilder":
        self.lines.append(line)
        return self

    def user(self, content, **extra) -> "LogBuilder":
        return self.record({"type": "user", "message": {"role": "user", "content": content}, **extra})

    def tool_result(self, content, **extra) -> "LogBuilder":
        block = {"type": "tool_result", "tool_use_id": "toolu_01", "content": content}
        return self.user([block], **extra)

    def assistant(self, *blocks, **extra) -> "LogBuilder":
        return self.record(
            {"type": "assistant", "message": {"role": "assistant", "content": list(blocks)}, **extra}
        )

    @staticmethod
    def text_block(text: str) -> dict:
        return {"type": "text", "text": text}

    @staticmethod
    def thinking_block(thinking: str) -> dict:
        return {"type": "thinking", "thinking": thinking, "signature": "sig"}

    @staticmethod
    def tool_use(name: str, tool_input=None) -> dict:
        return {"type": "tool_use", "id": "toolu_01", "name": name, "input": tool_input or {}}

    @classmethod
    def skill_use(cls, skill: str) -> dict:
        return cls.tool_use("Skill", {"skill": skill})

    def text(self) -> str:
        return "\n".join(self.lines) + "\n"


class FakeReader:
    """In-memory log source that records which sessions were read."""

    def __init__(self, sessions: dict):
        self.sessions = sessions
        self.read_calls = []

    def list_sessions(self) -> list:
        return list(self.sessions)

    def read_session(self, session_id: str) -> str:
        self.read_calls.append(session_id)
        return self.sessions[session_id]

    def get_session_timestamp(self, session_id: str) -> datetime:
        return SESSION_TIME


class FakeSummarizer:
    """Summarizer stub returning a fixed result (or raising it)."""

    def __init__(self, result=None):
        self.result = result if result is not None else StepDraft(
            title="ログイン画面の追加",
            prompt="ログイン画面を作って",
            reasoning="認証が必要になったため",
            outcome="ログインできるようになった",
            tags=["feature"],
            related_steps=[1],
        )
        self.calls = []

    def summarize(self, turns: list, previous_steps: list):
        self.calls.append((turns, previous_steps))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture
def log():
    return LogBuilder()


@pytest.fixture
def repository(tmp_path):
    return FileSystemRepository.init(tmp_path / ".intent")


@pytest.fixture
def fake_summarizer():
    return FakeSummarizer()
