"""Detect friction (errors and retry loops) in a session's tool activity."""

import re

ERROR_MESSAGE_MAX_CHARS = 200
RETRY_THRESHOLD = 3

# Tested in order; a tool result contributes at most one message
ERROR_PATTERNS = [
    re.compile(r"^error[\[:\s]", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^Error:", re.MULTILINE),
    re.compile(r"tool_use_error"),
    re.compile(r"ENOENT"),
    re.compile(r"EACCES"),
    re.compile(r"TypeError:"),
    re.compile(r"SyntaxError:"),
    re.compile(r"ReferenceError:"),
    re.compile(r"exit code [1-9]"),
    re.compile(r"non-zero exit"),
    re.compile(r"command not found"),
    re.compile(r"No such file or directory$", re.MULTILINE),
]


def extract_friction(turns: list) -> str:
    """Summarize errors and retry runs across all turns of a session.

    Args:
        turns: Unfiltered conversation turns.

    Returns:
        Friction messages joined with "; ", errors before retries. Empty
        string when nothing was detected.
    """
    return "; ".join(find_errors(turns) + find_retries(turns))


def find_errors(turns: list) -> list:
    """Distinct error lines found in tool results, in order of appearance."""
    messages = []
    for turn in turns:
        for result in turn.tool_results:
            message = _first_error_line(result)
            if message and message not in messages:
                messages.append(message)
    return messages


def _first_error_line(result: str):
    for pattern in ERROR_PATTERNS:
        if not pattern.search(result):
            continue
        for line in result.split("\n"):
            if pattern.search(line):
                return line.strip()[:ERROR_MESSAGE_MAX_CHARS]
        return None
    return None


def find_retries(turns: list) -> list:
    """Runs of the same tool invoked three or more times back to back.

    Turn boundaries do not break a run.
    """
    sequence = [tool for turn in turns for tool in turn.tool_uses]
    messages = []

    run_tool = None
    run_length = 0
    for tool in sequence + [None]:
        if tool == run_tool:
            run_length += 1
            continue
        if run_tool is not None and run_length >= RETRY_THRESHOLD:
            messages.append(f"{run_tool}のリトライ {run_length}回")
        run_tool = tool
        run_length = 1

    return messages
