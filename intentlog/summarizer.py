"""Summarize conversation turns into a step draft with Claude."""

import json
import logging
import os
import re
import subprocess
from typing import Optional

import anthropic
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .config import DEFAULT_MODEL, DEFAULT_TIMEOUT, SummarizerConfig
from .errors import SummarizerError, SummarizerTimeout
from .models import StepDraft, summary_context
from .renderer import format_step_number

logger = logging.getLogger(__name__)

# Summarization prompt template
SUMMARIZE_PROMPT = '''以下のAIとの会話ターンを分析して、JSON形式で要約してください。

重要な判定基準:
- 会話ターンの中に「人間が明示的に要求した意図」が読み取れるものだけを対象にしてください
- 機械的なやりとり（ツール呼び出しの羅列等）だけの場合は skip: true を返してください

要件:
- title: 何をしたかの短いタイトル（30文字以内）
- prompt: ユーザーが何を指示したかの要約
- reasoning: なぜこの実装になったかの説明（前のステップからの文脈の変化があれば含める）
- outcome: 何ができるようになったかの説明
- tags: 内容を分類する短いタグの配列（1〜4個）。例: ["bugfix"], ["feature","ux"], ["testing","ci"], ["refactor","security"]
- relatedSteps: 関連する過去のステップ番号の配列（なければ []）

必ず以下のJSON形式のみを出力してください（他のテキストは不要）:
{{"title":"...","prompt":"...","reasoning":"...","outcome":"...","tags":["..."],"relatedSteps":[]}}

スキップする場合:
{{"skip":true}}

会話ターン:
{turns}'''

HISTORY_PROMPT = '''これまでの意図の流れ:
{history}

上記を踏まえて、以下の新しいセッションを要約してください。前のステップとの関連性や意図の変化があれば reasoning に含めてください。

'''


class SummaryResponse(BaseModel):
    """Shape of the JSON object the summarizer must answer with."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    skip: bool = False
    title: str = ""
    prompt: str = ""
    reasoning: str = ""
    outcome: str = ""
    tags: list[str] = Field(default_factory=list)
    related_steps: list[int] = Field(default_factory=list, alias="relatedSteps")

    @model_validator(mode="after")
    def _require_content(self):
        if not self.skip and not (self.title and self.prompt and self.outcome):
            raise ValueError("title, prompt and outcome are required unless skip is true")
        return self


def build_prompt(turns: list, previous_steps: list) -> str:
    """Build the summarization prompt.

    Args:
        turns: Filtered conversation turns of the session.
        previous_steps: Recent persisted steps, listed as history.

    Returns:
        Prompt text for the model.
    """
    prompt = ""
    if previous_steps:
        history = "\n".join(
            f"- ステップ{format_step_number(s.number)}: {s.title}（{s.prompt}）" for s in previous_steps
        )
        prompt += HISTORY_PROMPT.format(history=history)

    context = "\n\n".join(
        f"--- ターン {i} ---\n{summary_context(turn)}" for i, turn in enumerate(turns, 1)
    )
    return prompt + SUMMARIZE_PROMPT.format(turns=context)


def parse_summary_response(response_text: str) -> Optional[StepDraft]:
    """Parse the model's JSON answer.

    Returns:
        StepDraft, or None if the model chose to skip the session.

    Raises:
        SummarizerError: If no JSON object is found or it does not match
            the expected shape.
    """
    json_match = re.search(r'\{[\s\S]*\}', response_text)
    if not json_match:
        raise SummarizerError(f"No JSON found in summarizer response: {response_text[:500]}")

    try:
        result = SummaryResponse.model_validate(json.loads(json_match.group()))
    except json.JSONDecodeError as e:
        raise SummarizerError(f"Summarizer returned invalid JSON: {e}")
    except ValidationError as e:
        raise SummarizerError(f"Summarizer response has unexpected shape: {e}")

    if result.skip:
        return None

    return StepDraft(
        title=result.title,
        prompt=result.prompt,
        reasoning=result.reasoning,
        outcome=result.outcome,
        tags=result.tags,
        related_steps=result.related_steps,
    )


class ClaudeCodeSummarizer:
    """Summarizes by piping the prompt through ``claude -p``."""

    command = ["claude", "-p", "--no-session-persistence"]

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def summarize(self, turns: list, previous_steps: list) -> Optional[StepDraft]:
        if not turns:
            raise SummarizerError("No conversation turns to summarize")

        prompt = build_prompt(turns, previous_steps)

        logger.debug("Running %s (%d prompt chars)", " ".join(self.command), len(prompt))

        # A nested claude refuses to run when it thinks it is inside Claude Code
        env = dict(os.environ)
        env.pop("CLAUDECODE", None)
        env.pop("CLAUDE_CODE", None)

        try:
            result = subprocess.run(
                self.command,
                input=prompt,
                capture_output=True,
                text=True,
                env=env,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise SummarizerError(f"Could not run claude. Is the Claude Code CLI installed? ({e})")
        except subprocess.TimeoutExpired:
            raise SummarizerTimeout(f"claude did not answer within {self.timeout:g}s")

        if result.returncode != 0 and not result.stdout:
            raise SummarizerError(f"claude exited with code {result.returncode}: {result.stderr.strip()}")

        return parse_summary_response(result.stdout.strip())


class AnthropicSummarizer:
    """Summarizes through the Anthropic Messages API.

    Requires:
        ANTHROPIC_API_KEY environment variable.
    """

    def __init__(self, model: str = DEFAULT_MODEL, timeout: float = DEFAULT_TIMEOUT, client=None):
        self.model = model
        if client is None:
            api_key = os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise SummarizerError("ANTHROPIC_API_KEY environment variable not set")
            client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.client = client

    def summarize(self, turns: list, previous_steps: list) -> Optional[StepDraft]:
        if not turns:
            raise SummarizerError("No conversation turns to summarize")

        prompt = build_prompt(turns, previous_steps)
        logger.debug("Calling %s (%d prompt chars)", self.model, len(prompt))

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=2000,
                messages=[{"role": "user", "content": prompt}]
            )
        except anthropic.APITimeoutError as e:
            raise SummarizerTimeout(f"Anthropic API timed out: {e}")
        except anthropic.APIError as e:
            raise SummarizerError(f"Anthropic API error: {e}")

        response_text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        return parse_summary_response(response_text)


def build_summarizer(config: SummarizerConfig):
    """Create the summarizer selected by configuration."""
    if config.backend == "anthropic":
        return AnthropicSummarizer(model=config.model, timeout=config.timeout)
    return ClaudeCodeSummarizer(timeout=config.timeout)
