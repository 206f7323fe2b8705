"""Heuristic classifiers that draft a step without calling the summarizer.

Each classifier returns a StepDraft when it recognizes the session and
None when it does not apply.
"""

import re
from typing import Optional

from .models import StepDraft

PLAN_PREFIX = "Implement the following plan:"

TITLE_MAX_CHARS = 30

_TITLE_RE = re.compile(r"^#[ \t]+(.+)$", re.MULTILINE)
_CONTEXT_RE = re.compile(r"^##[ \t]*Context\s*\n(.*?)(?=^##\s|\Z)", re.MULTILINE | re.DOTALL)
_CHANGES_RE = re.compile(r"^##[ \t]*変更\s*\n(.*?)(?=^##\s|\Z)", re.MULTILINE | re.DOTALL)
_CHANGED_FILE_RE = re.compile(r"^###\s*\d+\.\s*`([^`]+)`", re.MULTILINE)


def try_plan(prompt_text: str) -> Optional[StepDraft]:
    """Draft a step from a plan-execution prompt.

    Plan sessions open with ``Implement the following plan:`` followed by
    a markdown plan with a ``# Title`` and a ``## Context`` section.

    Args:
        prompt_text: The session's opening user prompt.

    Returns:
        StepDraft tagged "plan", or None if the prompt is not a plan or
        lacks a title or a non-empty Context section.
    """
    if not prompt_text.startswith(PLAN_PREFIX):
        return None

    body = prompt_text[len(PLAN_PREFIX):].strip()
    if not body:
        return None

    title_match = _TITLE_RE.search(body)
    if not title_match:
        return None
    title = title_match.group(1).strip()[:TITLE_MAX_CHARS]

    context_match = _CONTEXT_RE.search(body)
    if not context_match:
        return None
    context = context_match.group(1).strip()
    if not context:
        return None

    files = []
    changes_match = _CHANGES_RE.search(body)
    if changes_match:
        files = _CHANGED_FILE_RE.findall(changes_match.group(1))

    return StepDraft(
        title=title,
        prompt=context,
        reasoning=f"変更対象: {', '.join(files)}" if files else "",
        outcome=f"{title}の実装完了",
        tags=["plan"],
    )


def try_skill(turns: list) -> Optional[StepDraft]:
    """Draft a step from a session driven by Skill invocations.

    Namespaced skill ids collapse to their local name
    (``commit-commands:commit`` -> ``commit``); the first distinct name is
    the primary skill.
    """
    skills = [skill for turn in turns for skill in turn.skills]
    if not skills:
        return None

    names = list(dict.fromkeys(skill.rsplit(":", 1)[-1] for skill in skills))
    primary = names[0]
    label = ", ".join(names)

    return StepDraft(
        title=f"/{primary} スキル実行",
        prompt=turns[0].user_prompt or f"/{primary}",
        reasoning=f"実行スキル: {label}" if len(names) > 1 else "",
        outcome=f"{label} を実行完了",
        tags=["skill"],
    )


def classify_plan_session(turns: list) -> Optional[StepDraft]:
    """Plan strategy: applies to the session's opening prompt only."""
    return try_plan(turns[0].user_prompt)


# Tried in order by the collect pipeline; the first non-None draft wins
HEURISTIC_STRATEGIES = [
    ("plan", classify_plan_session),
    ("skill", try_skill),
]
