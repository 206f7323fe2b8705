"""Configuration for intentlog.

Settings live in ``.intent/config.toml``. Every key is optional; missing
keys fall back to the defaults below. Summarizer settings can be
overridden with environment variables using the ``INTENTLOG_`` prefix.
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import ConfigError
from .filters import DEFAULT_MIN_PROMPT_LENGTH

CONFIG_FILENAME = "config.toml"

SUMMARIZER_BACKENDS = ("claude-cli", "anthropic")

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_TIMEOUT = 120.0

DEFAULT_CONFIG_TOML = """[filter]
exclude_patterns = [
  "(?i)(api.?key|token|secret|password)",
  "^(はい|ok|yes|y|n|no)$",
  "戻して|取り消し|やっぱ",
]
min_prompt_length = 20

[summarizer]
backend = "claude-cli"
model = "claude-sonnet-4-20250514"
timeout = 120
"""


def _get_env(key: str) -> Optional[str]:
    """Get environment variable with INTENTLOG_ prefix."""
    return os.getenv(f"INTENTLOG_{key}")


@dataclass
class FilterConfig:
    """Privacy filter settings.

    Attributes:
        exclude_patterns: Regexes; prompts matching any are dropped. A
            leading ``(?i)`` makes a pattern case-insensitive.
        min_prompt_length: Prompts shorter than this are dropped unless
            the assistant acted on them.
    """
    exclude_patterns: list = field(default_factory=list)
    min_prompt_length: int = DEFAULT_MIN_PROMPT_LENGTH


@dataclass
class SummarizerConfig:
    """External summarizer settings."""
    backend: str = "claude-cli"
    model: str = DEFAULT_MODEL
    timeout: float = DEFAULT_TIMEOUT


@dataclass
class Config:
    filter: FilterConfig = field(default_factory=FilterConfig)
    summarizer: SummarizerConfig = field(default_factory=SummarizerConfig)


def load_config(intent_dir: Path) -> Config:
    """Load configuration from an .intent directory.

    Args:
        intent_dir: Path to the .intent directory.

    Returns:
        Config with defaults for anything not set.

    Raises:
        ConfigError: If the file is not valid TOML or a value has the
            wrong type.
    """
    path = Path(intent_dir) / CONFIG_FILENAME
    data = {}
    if path.exists():
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Cannot parse {path}: {e}")

    config = Config(
        filter=_filter_config(_section(data, "filter")),
        summarizer=_summarizer_config(_section(data, "summarizer")),
    )
    _apply_env_overrides(config.summarizer)
    return config


def _section(data: dict, name: str) -> dict:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _filter_config(section: dict) -> FilterConfig:
    patterns = section.get("exclude_patterns", [])
    if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
        raise ConfigError("filter.exclude_patterns must be a list of strings")

    min_length = section.get("min_prompt_length", DEFAULT_MIN_PROMPT_LENGTH)
    if isinstance(min_length, bool) or not isinstance(min_length, int) or min_length < 0:
        raise ConfigError("filter.min_prompt_length must be a non-negative integer")

    return FilterConfig(exclude_patterns=patterns, min_prompt_length=min_length)


def _summarizer_config(section: dict) -> SummarizerConfig:
    config = SummarizerConfig(
        backend=section.get("backend", "claude-cli"),
        model=section.get("model", DEFAULT_MODEL),
        timeout=section.get("timeout", DEFAULT_TIMEOUT),
    )
    _validate_summarizer(config)
    return config


def _apply_env_overrides(config: SummarizerConfig) -> None:
    if _get_env("SUMMARIZER_BACKEND"):
        config.backend = _get_env("SUMMARIZER_BACKEND")
    if _get_env("SUMMARIZER_MODEL"):
        config.model = _get_env("SUMMARIZER_MODEL")
    if _get_env("SUMMARIZER_TIMEOUT"):
        try:
            config.timeout = float(_get_env("SUMMARIZER_TIMEOUT"))
        except ValueError:
            raise ConfigError("INTENTLOG_SUMMARIZER_TIMEOUT must be a number")
    _validate_summarizer(config)


def _validate_summarizer(config: SummarizerConfig) -> None:
    if config.backend not in SUMMARIZER_BACKENDS:
        raise ConfigError(
            f"summarizer.backend must be one of {', '.join(SUMMARIZER_BACKENDS)}, got {config.backend!r}"
        )
    if not isinstance(config.model, str) or not config.model:
        raise ConfigError("summarizer.model must be a non-empty string")
    if isinstance(config.timeout, bool) or not isinstance(config.timeout, (int, float)) or config.timeout <= 0:
        raise ConfigError("summarizer.timeout must be a positive number")
