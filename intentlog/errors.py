"""Exceptions raised by intentlog."""


class IntentLogError(Exception):
    """Base class for all intentlog errors."""


class ConfigError(IntentLogError):
    """Configuration file is missing required structure or cannot be parsed."""


class RepositoryError(IntentLogError):
    """The .intent/ store is missing or cannot be used."""


class StepNotFoundError(RepositoryError):
    pass


class StepFormatError(RepositoryError):
    """A step document could not be parsed."""


class LogSourceError(IntentLogError):
    """Claude Code session logs cannot be located or read."""


class SessionNotFoundError(LogSourceError):
    pass


class SummarizerError(IntentLogError):
    """The external summarizer failed or returned an unusable response."""


class SummarizerTimeout(SummarizerError):
    pass
