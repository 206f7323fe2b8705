"""Filters for removing noise and private prompts from conversation turns."""

import logging
import re

from .models import ConversationTurn

logger = logging.getLogger(__name__)

DEFAULT_MIN_PROMPT_LENGTH = 20

CASE_INSENSITIVE_MARKER = "(?i)"

# System prompts of sub-agents that leak into the transcript as user turns
AGENT_INSTRUCTION_PATTERNS = [
    re.compile(r"^You are a "),
    re.compile(r"^You have access to"),
    re.compile(r"^IMPORTANT:"),
    re.compile(r"^Use this tool"),
]


def compile_patterns(patterns: list) -> list:
    """Compile user-configured exclude patterns.

    A leading ``(?i)`` marks a pattern as case-insensitive. Patterns that
    fail to compile are dropped with a warning.
    """
    compiled = []
    for pattern in patterns:
        flags = 0
        source = pattern
        if source.startswith(CASE_INSENSITIVE_MARKER):
            source = source[len(CASE_INSENSITIVE_MARKER):]
            flags = re.IGNORECASE
        try:
            compiled.append(re.compile(source, flags))
        except re.error as e:
            logger.warning("Ignoring invalid exclude pattern %r: %s", pattern, e)
    return compiled


class PrivacyFilter:
    """Drops turns whose prompt is noise, private, or an agent instruction."""

    def __init__(self, exclude_patterns: list = None, min_prompt_length: int = DEFAULT_MIN_PROMPT_LENGTH):
        self.exclude_patterns = compile_patterns(exclude_patterns or [])
        self.min_prompt_length = min_prompt_length

    @classmethod
    def from_config(cls, filter_config) -> "PrivacyFilter":
        return cls(filter_config.exclude_patterns, filter_config.min_prompt_length)

    def filter_turns(self, turns: list) -> list:
        """Return the turns worth summarizing, in their original order."""
        return [turn for turn in turns if self.accepts(turn)]

    def accepts(self, turn: ConversationTurn) -> bool:
        prompt = turn.user_prompt

        # Short prompts only count as noise when nothing happened afterwards
        if len(prompt) < self.min_prompt_length and not turn.has_activity():
            return False

        if any(p.search(prompt) for p in self.exclude_patterns):
            return False

        if any(p.search(prompt) for p in AGENT_INSTRUCTION_PATTERNS):
            return False

        return True
