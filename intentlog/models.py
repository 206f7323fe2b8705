"""Data models for intent extraction."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class ConversationTurn:
    """One human prompt plus all assistant and tool activity until the next one."""
    user_prompt: str
    assistant_thinking: list = field(default_factory=list)
    assistant_text: list = field(default_factory=list)
    tool_uses: list = field(default_factory=list)  # tool name per invocation
    tool_results: list = field(default_factory=list)
    skills: list = field(default_factory=list)  # raw, possibly namespaced

    def has_activity(self) -> bool:
        """True if the assistant replied in text or invoked a tool."""
        return bool(self.tool_uses or self.assistant_text)


@dataclass
class StepDraft:
    """Candidate step before numbering and persistence.

    ``skip=True`` means the session holds no extractable human intent.
    A classifier that does not apply returns ``None`` instead.
    """
    title: str = ""
    prompt: str = ""
    reasoning: str = ""
    outcome: str = ""
    tags: Optional[list] = None
    related_steps: Optional[list] = None
    skip: bool = False


@dataclass
class Step:
    """A persisted intent step."""
    number: int
    title: str
    session: str
    timestamp: datetime
    prompt: str
    reasoning: str
    outcome: str
    friction: str = ""
    tags: list = field(default_factory=list)
    related_steps: list = field(default_factory=list)


def summary_context(turn: ConversationTurn) -> str:
    """Render a turn as the context block handed to the summarizer."""
    ctx = f"## ユーザーの指示\n{turn.user_prompt}\n"
    if turn.assistant_thinking:
        ctx += "\n## AIの思考\n" + "\n".join(turn.assistant_thinking) + "\n"
    if turn.assistant_text:
        ctx += "\n## AIの応答\n" + "\n".join(turn.assistant_text) + "\n"
    if turn.tool_uses:
        ctx += "\n## 使用ツール\n" + ", ".join(turn.tool_uses) + "\n"
    return ctx
