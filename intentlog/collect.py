"""Collect intent steps from Claude Code sessions.

Sessions go through a fixed sequence: already-recorded check, segmentation,
heuristic strategies (plan, then skill), privacy filter, and finally the
external summarizer. The repository owns the step counter and the set of
recorded sessions; a session is recorded only once its outcome is final.
"""

import enum
import logging
from dataclasses import dataclass

from .classifiers import HEURISTIC_STRATEGIES
from .friction import extract_friction
from .models import Step, StepDraft
from .parser import segment
from .renderer import format_step_number

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 5


class SessionOutcome(enum.Enum):
    STORED = "stored"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class CollectReport:
    """Outcome counts of a batch run."""
    stored: int = 0
    skipped: int = 0
    failed: int = 0
    total: int = 0

    def add(self, outcome: SessionOutcome) -> None:
        self.total += 1
        if outcome is SessionOutcome.STORED:
            self.stored += 1
        elif outcome is SessionOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1

    def summary(self) -> str:
        parts = [f"{self.stored} stored", f"{self.skipped} skipped"]
        if self.failed:
            parts.append(f"{self.failed} failed")
        parts.append(f"{self.total} total")
        return "Done: " + ", ".join(parts)


class CollectPipeline:
    """Turns session logs into persisted steps.

    Args:
        reader: Log source with list_sessions, read_session and
            get_session_timestamp.
        summarizer: Object with summarize(turns, previous_steps).
        privacy_filter: PrivacyFilter applied before summarization.
        repository: Step storage (see FileSystemRepository).
        strategies: Ordered (name, fn) pairs; fn(turns) returns a
            StepDraft or None. Defaults to plan then skill.
    """

    def __init__(self, reader, summarizer, privacy_filter, repository, strategies=None):
        self.reader = reader
        self.summarizer = summarizer
        self.privacy_filter = privacy_filter
        self.repository = repository
        self.strategies = HEURISTIC_STRATEGIES if strategies is None else strategies

    def collect_all(self) -> CollectReport:
        """Process every session oldest first. One failure never stops the batch."""
        report = CollectReport()
        for session_id in self.reader.list_sessions():
            report.add(self.collect_session(session_id))
        return report

    def collect_session(self, session_id: str) -> SessionOutcome:
        """Process one session, catching any error as a failed outcome."""
        try:
            return self._collect(session_id)
        except Exception as e:
            logger.error("Failed to collect session '%s': %s", session_id, e)
            return SessionOutcome.FAILED

    def _collect(self, session_id: str) -> SessionOutcome:
        if self.repository.is_session_recorded(session_id):
            logger.debug("Session '%s' already collected, skipping", session_id)
            return SessionOutcome.SKIPPED

        logger.info("Reading session '%s'...", session_id)
        turns = segment(self.reader.read_session(session_id))
        if not turns:
            logger.info("  -> no conversation turns, skipped")
            return SessionOutcome.SKIPPED

        for name, strategy in self.strategies:
            draft = strategy(turns)
            if draft is not None:
                logger.info("  -> %s session, extracted without summarizer", name)
                self._store(session_id, draft, turns)
                return SessionOutcome.STORED

        logger.info("  -> %d conversation turns", len(turns))
        filtered = self.privacy_filter.filter_turns(turns)
        if not filtered:
            logger.info("  -> no turns left after filtering, skipped")
            self.repository.record_session(session_id)
            return SessionOutcome.SKIPPED

        logger.info("  -> %d turns after filtering, summarizing...", len(filtered))
        previous_steps = self.repository.list_steps()[-HISTORY_LIMIT:]
        draft = self.summarizer.summarize(filtered, previous_steps)
        if draft is None or draft.skip:
            logger.info("  -> no human intent found, skipped")
            self.repository.record_session(session_id)
            return SessionOutcome.SKIPPED

        self._store(session_id, draft, turns)
        return SessionOutcome.STORED

    def _store(self, session_id: str, draft: StepDraft, turns: list) -> Step:
        """Persist a draft as the next step, then record the session.

        Text fields are stored stripped. Friction always comes from the
        unfiltered turns.
        """
        step = Step(
            number=self.repository.next_step_number(),
            title=draft.title.strip(),
            session=session_id,
            timestamp=self.reader.get_session_timestamp(session_id).replace(microsecond=0),
            tags=list(draft.tags or []),
            related_steps=list(draft.related_steps or []),
            prompt=draft.prompt.strip(),
            reasoning=draft.reasoning.strip(),
            outcome=draft.outcome.strip(),
            friction=extract_friction(turns),
        )
        self.repository.save_step(step)
        self.repository.record_session(session_id)
        logger.info("  -> step %s created: %s", format_step_number(step.number), step.title)
        return step
