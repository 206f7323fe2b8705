"""Pydantic models for Claude Code session JSONL records.

Only the fields the segmenter reads are modelled; everything else on a
record is ignored. Content blocks form a tagged union that is resolved
left to right and ends in a catch-all ``OtherBlock``, so a block with an
unrecognized (or malformed) tag never invalidates the record it sits in.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class TextBlock(_Model):
    type: Literal["text"]
    text: str


class ThinkingBlock(_Model):
    type: Literal["thinking"]
    thinking: str


class ToolUseBlock(_Model):
    type: Literal["tool_use"]
    name: str
    input: Any = None

    def skill_name(self) -> Optional[str]:
        """Skill identifier when this is a ``Skill`` invocation, else None."""
        if self.name != "Skill" or not isinstance(self.input, dict):
            return None
        skill = self.input.get("skill")
        return skill if isinstance(skill, str) else None


class ToolResultBlock(_Model):
    type: Literal["tool_result"]
    content: Any = None

    def texts(self) -> list:
        """Flatten the result payload into plain strings."""
        if isinstance(self.content, str):
            return [self.content]
        if isinstance(self.content, list):
            return [
                item["text"]
                for item in self.content
                if isinstance(item, dict) and isinstance(item.get("text"), str)
            ]
        return []


class OtherBlock(_Model):
    type: str


ContentBlock = Annotated[
    Union[TextBlock, ThinkingBlock, ToolUseBlock, ToolResultBlock, OtherBlock],
    Field(union_mode="left_to_right"),
]


class Message(_Model):
    role: str
    content: Annotated[Union[str, list[ContentBlock]], Field(union_mode="left_to_right")]


class RawLogRecord(_Model):
    """One line of a session transcript."""
    type: str
    isSidechain: Optional[bool] = None
    message: Optional[Message] = None
