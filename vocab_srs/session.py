"""Study session state machine.

    IDLE --start--> PRESENTING --reveal--> FLIPPED --rate--> PRESENTING ... --> EXHAUSTED

``previous``/``next``/``shuffle`` move through the frozen presentation order
without rating. After every rating the queue is re-read from the store, so a
word that the rating moved out of the queue drops out of the session.
"""
import datetime
import logging
import random
from dataclasses import dataclass
from enum import IntEnum, auto
from typing import Callable, Dict, List, Optional

from . import db
from .cards import QueueEntry, ReviewState, utcnow
from .errors import SessionStateError
from .queues import QUEUE_NAMES
from .quiz import AnswerGrading, QuizOption, build_options
from .scheduler import PASSING_QUALITY, validate_quality

logger = logging.getLogger(__name__)


class SessionPhase(IntEnum):
    IDLE = auto()
    PRESENTING = auto()
    FLIPPED = auto()
    EXHAUSTED = auto()


@dataclass(frozen=True)
class SessionSummary:
    reviewed: int
    remembered: int
    forgotten: int
    remaining: int


class StudySession:
    def __init__(
        self,
        deck_id: Optional[str] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ) -> None:
        self.deck_id = deck_id or db.get_active_deck_id()
        self.rng = rng or random.Random()
        self.clock = clock or utcnow
        self.phase = SessionPhase.IDLE
        self.queue_name: Optional[str] = None
        self.index = 0
        self._order: List[str] = []
        self._entries: Dict[str, QueueEntry] = {}
        self._rated: set = set()
        self._qualities: List[int] = []

    # -- queue loading ---------------------------------------------------

    def _load_queue(self) -> List[str]:
        entries = db.get_queue(self.queue_name, self.deck_id, self.clock())
        self._entries = {e.item.id: e for e in entries}
        return [e.item.id for e in entries]

    def start(self, queue_name: str = "due") -> SessionPhase:
        """Load ``queue_name`` and present its first word (or finish at once if empty)."""
        if queue_name not in QUEUE_NAMES:
            raise ValueError(f"Unknown queue {queue_name!r}")
        self.queue_name = queue_name
        self._order = self._load_queue()
        self._rated = set()
        self._qualities = []
        self.index = 0
        self.phase = SessionPhase.PRESENTING if self._order else SessionPhase.EXHAUSTED
        logger.debug("Started %s session on %s with %d words", queue_name, self.deck_id, len(self._order))
        return self.phase

    # -- presentation ------------------------------------------------------

    @property
    def current(self) -> Optional[QueueEntry]:
        if self.phase not in (SessionPhase.PRESENTING, SessionPhase.FLIPPED):
            return None
        return self._entries[self._order[self.index]]

    @property
    def order(self) -> List[str]:
        return list(self._order)

    def _require(self, *phases: SessionPhase) -> None:
        if self.phase not in phases:
            allowed = ", ".join(p.name for p in phases)
            raise SessionStateError(f"Not allowed while {self.phase.name}; needs {allowed}")

    def reveal(self) -> QueueEntry:
        self._require(SessionPhase.PRESENTING)
        self.phase = SessionPhase.FLIPPED
        return self.current

    def previous(self) -> bool:
        self._require(SessionPhase.PRESENTING, SessionPhase.FLIPPED)
        self.phase = SessionPhase.PRESENTING
        if self.index == 0:
            return False
        self.index -= 1
        return True

    def next(self) -> bool:
        self._require(SessionPhase.PRESENTING, SessionPhase.FLIPPED)
        self.phase = SessionPhase.PRESENTING
        if self.index >= len(self._order) - 1:
            return False
        self.index += 1
        return True

    def shuffle(self) -> None:
        """Randomise presentation order. Review states are untouched."""
        self._require(SessionPhase.PRESENTING, SessionPhase.FLIPPED)
        self.rng.shuffle(self._order)
        self.index = 0
        self.phase = SessionPhase.PRESENTING

    # -- rating ------------------------------------------------------------

    def rate(self, quality: int) -> ReviewState:
        """Persist a rating for the revealed word and move to the next unrated one."""
        self._require(SessionPhase.FLIPPED)
        validate_quality(quality)
        word_id = self._order[self.index]
        new_state = db.review_word(self.deck_id, word_id, quality, self.clock())
        self._rated.add(word_id)
        self._qualities.append(quality)
        self._advance()
        return new_state

    def answer(self, is_correct: bool, grading: Optional[AnswerGrading] = None) -> ReviewState:
        """Rate a multiple-choice answer; no separate reveal is needed."""
        self._require(SessionPhase.PRESENTING, SessionPhase.FLIPPED)
        self.phase = SessionPhase.FLIPPED
        return self.rate((grading or AnswerGrading()).quality_for(is_correct))

    def quiz_options(self, distractors: int = 3) -> List[QuizOption]:
        entry = self.current
        if entry is None:
            raise SessionStateError("No word is being presented")
        pool = db.get_deck(self.deck_id).words
        return build_options(entry.item, pool, self.rng, distractors)

    def _advance(self) -> None:
        fresh_ids = self._load_queue()
        fresh = set(fresh_ids)
        full = self._order + [i for i in fresh_ids if i not in self._order]
        after_current = full[self.index + 1:] + full[:self.index + 1]

        next_id = None
        for word_id in after_current:
            if word_id in fresh and word_id not in self._rated:
                next_id = word_id
                break

        self._order = [i for i in full if i in fresh]
        if next_id is None:
            self.index = 0
            self.phase = SessionPhase.EXHAUSTED
        else:
            self.index = self._order.index(next_id)
            self.phase = SessionPhase.PRESENTING

    # -- bookkeeping -------------------------------------------------------

    def summary(self) -> SessionSummary:
        remembered = sum(1 for q in self._qualities if q >= PASSING_QUALITY)
        return SessionSummary(
            reviewed=len(self._qualities),
            remembered=remembered,
            forgotten=len(self._qualities) - remembered,
            remaining=sum(1 for i in self._order if i not in self._rated),
        )

    def stats(self) -> Dict[str, int]:
        return db.get_stats(self.deck_id, self.clock())

    def reset(self, deck_id: Optional[str] = None) -> int:
        """Erase all review states of the deck and return to IDLE."""
        removed = db.reset_progress(deck_id or self.deck_id)
        self.phase = SessionPhase.IDLE
        self.queue_name = None
        self.index = 0
        self._order = []
        self._entries = {}
        self._rated = set()
        self._qualities = []
        return removed
