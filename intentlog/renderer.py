"""Render steps to markdown documents and parse them back."""

import json
import re
from datetime import datetime, timezone

from .errors import StepFormatError
from .models import Step

FRONTMATTER_DELIMITER = "---"

SECTIONS = ("prompt", "reasoning", "outcome", "friction")

_SECTION_RE = re.compile(r"^## (prompt|reasoning|outcome|friction)[ \t]*$", re.MULTILINE)
# Body lines that would read as a section heading carry one extra leading backslash
_HEADING_LINE_RE = re.compile(r"^(\\*## (?:prompt|reasoning|outcome|friction)[ \t]*)$", re.MULTILINE)
_ESCAPED_HEADING_RE = re.compile(r"^\\(\\*## (?:prompt|reasoning|outcome|friction)[ \t]*)$", re.MULTILINE)


def format_step_number(number: int) -> str:
    return f"{number:03d}"


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 UTC with seconds precision, e.g. 2025-01-15T10:30:00Z."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def render_step(step: Step) -> str:
    """Serialize a step to its on-disk markdown document.

    The document is a frontmatter header followed by the prompt,
    reasoning and outcome sections. The friction section is written only
    when the step has friction. Tags and related steps are JSON arrays.
    """
    lines = [
        FRONTMATTER_DELIMITER,
        f"step: {step.number}",
        f"title: {_quote(step.title)}",
        f"session: {_quote(step.session)}",
        f"timestamp: {format_timestamp(step.timestamp)}",
        f"tags: {json.dumps(list(step.tags), ensure_ascii=False)}",
        f"related: {json.dumps(list(step.related_steps))}",
        FRONTMATTER_DELIMITER,
    ]

    for section in SECTIONS:
        value = getattr(step, section)
        if section == "friction" and not value:
            continue
        lines.extend(["", f"## {section}", "", _HEADING_LINE_RE.sub(r"\\\1", value)])

    return "\n".join(lines) + "\n"


def parse_step(content: str) -> Step:
    """Parse a markdown step document.

    Args:
        content: Document text as produced by render_step.

    Returns:
        The decoded Step.

    Raises:
        StepFormatError: If the frontmatter is missing or a required field
            cannot be decoded.
    """
    text = content.lstrip()
    if not text.startswith(FRONTMATTER_DELIMITER):
        raise StepFormatError("frontmatter not found")

    rest = text[len(FRONTMATTER_DELIMITER):]
    end = rest.find("\n" + FRONTMATTER_DELIMITER)
    if end == -1:
        raise StepFormatError("frontmatter is not terminated")

    fields = _parse_frontmatter(rest[:end])
    body = rest[end + 1 + len(FRONTMATTER_DELIMITER):]
    sections = _parse_sections(body)

    try:
        number = int(_require(fields, "step"))
    except ValueError:
        raise StepFormatError(f"invalid step number: {fields['step']}")

    return Step(
        number=number,
        title=_unquote(_require(fields, "title")),
        session=_unquote(_require(fields, "session")),
        timestamp=_parse_timestamp(_require(fields, "timestamp")),
        tags=_parse_tags(fields.get("tags", "[]")),
        related_steps=_parse_related(fields.get("related", "[]")),
        prompt=sections.get("prompt", ""),
        reasoning=sections.get("reasoning", ""),
        outcome=sections.get("outcome", ""),
        friction=sections.get("friction", ""),
    )


def _quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _unquote(value: str) -> str:
    if value.startswith('"') and value.endswith('"') and len(value) >= 2:
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value[1:-1]
    return value


def _parse_frontmatter(block: str) -> dict:
    fields = {}
    for line in block.split("\n"):
        key, sep, value = line.partition(":")
        if sep and key.strip() and key.strip() not in fields:
            fields[key.strip()] = value.strip()
    return fields


def _require(fields: dict, key: str) -> str:
    if key not in fields:
        raise StepFormatError(f"field '{key}' not found")
    return fields[key]


def _parse_timestamp(value: str) -> datetime:
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise StepFormatError(f"invalid timestamp: {value}")
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _split_bare_list(value: str) -> list:
    inner = value.strip()
    if inner.startswith("["):
        inner = inner[1:]
    if inner.endswith("]"):
        inner = inner[:-1]
    if not inner.strip():
        return []
    return [item.strip() for item in inner.split(",")]


def _parse_list(value: str) -> list:
    """Decode a JSON array, or a bare ``[a, b]`` list from older files."""
    try:
        items = json.loads(value)
    except json.JSONDecodeError:
        return _split_bare_list(value)

    if not isinstance(items, list):
        raise StepFormatError(f"expected a list: {value}")
    return items


def _parse_tags(value: str) -> list:
    tags = _parse_list(value)
    if all(isinstance(tag, str) for tag in tags):
        return tags
    # Older files wrote tags unquoted, so [2024] is one tag, not a number
    return _split_bare_list(value)


def _parse_related(value: str) -> list:
    try:
        return [int(item) for item in _parse_list(value)]
    except (TypeError, ValueError):
        raise StepFormatError(f"invalid related step list: {value}")


def _parse_sections(body: str) -> dict:
    """Split the body on section headings.

    Each section is ``\\n\\n## name\\n\\n<value>`` and the document ends with
    one newline, so values are cut out exactly rather than stripped.
    """
    sections = {}
    matches = list(_SECTION_RE.finditer(body))
    for i, match in enumerate(matches):
        last = i + 1 == len(matches)
        stop = len(body) if last else matches[i + 1].start()
        value = body[match.end():stop].removeprefix("\n\n")
        value = value.removesuffix("\n") if last else value.removesuffix("\n\n")
        sections.setdefault(match.group(1), _ESCAPED_HEADING_RE.sub(r"\1", value))
    return sections


def render_step_line(step: Step) -> str:
    """One-line listing entry: number, date and title."""
    date = step.timestamp.astimezone(timezone.utc).strftime("%Y-%m-%d")
    return f"  {format_step_number(step.number)}  {date}  {step.title}"


def render_step_detail(step: Step) -> str:
    """Render a step for reading in the terminal."""
    lines = [
        f"# Step {format_step_number(step.number)}: {step.title}",
        f"session: {step.session}",
        f"timestamp: {format_timestamp(step.timestamp)}",
    ]
    if step.tags:
        lines.append(f"tags: {', '.join(step.tags)}")
    if step.related_steps:
        lines.append(f"related: {', '.join(format_step_number(n) for n in step.related_steps)}")

    for section in SECTIONS:
        value = getattr(step, section)
        if section == "friction" and not value:
            continue
        lines.extend(["", f"## {section}", "", value])

    return "\n".join(lines)
