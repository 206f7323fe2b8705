"""intentlog - Extract the evolution of intent from Claude Code sessions.

intentlog reads Claude Code session logs and turns each session into a
numbered "intent step": what the human asked for, why it was built that
way, what came out of it, and where the session hit friction.

Basic usage:
    from intentlog import segment, extract_friction, try_plan, try_skill

    turns = segment(Path("~/.claude/projects/.../session.jsonl").read_text())
    draft = try_plan(turns[0].user_prompt) or try_skill(turns)
    print(extract_friction(turns))

Collecting into a .intent/ store:
    from intentlog import (
        ClaudeCodeLogReader, ClaudeCodeSummarizer, CollectPipeline,
        FileSystemRepository, PrivacyFilter,
    )

    pipeline = CollectPipeline(
        reader=ClaudeCodeLogReader.for_project(),
        summarizer=ClaudeCodeSummarizer(),
        privacy_filter=PrivacyFilter(),
        repository=FileSystemRepository.open(".intent"),
    )
    report = pipeline.collect_all()
"""

__version__ = "0.2.0"

from .models import (
    ConversationTurn,
    StepDraft,
    Step,
    summary_context,
)
from .parser import (
    segment,
    strip_system_reminders,
    ClaudeCodeLogReader,
)
from .filters import PrivacyFilter
from .classifiers import try_plan, try_skill
from .friction import extract_friction
from .renderer import render_step, parse_step
from .repository import FileSystemRepository
from .summarizer import ClaudeCodeSummarizer, AnthropicSummarizer, build_summarizer
from .collect import CollectPipeline, CollectReport, SessionOutcome
from .config import Config, load_config
from .cli import main

__all__ = [
    # Models
    "ConversationTurn",
    "StepDraft",
    "Step",
    "summary_context",
    # Parser
    "segment",
    "strip_system_reminders",
    "ClaudeCodeLogReader",
    # Pipeline stages
    "PrivacyFilter",
    "try_plan",
    "try_skill",
    "extract_friction",
    # Storage
    "render_step",
    "parse_step",
    "FileSystemRepository",
    # Summarizer
    "ClaudeCodeSummarizer",
    "AnthropicSummarizer",
    "build_summarizer",
    # Orchestrator
    "CollectPipeline",
    "CollectReport",
    "SessionOutcome",
    # Config
    "Config",
    "load_config",
    # CLI
    "main",
]
