import datetime
from dataclasses import dataclass, field
from typing import List, Optional

INITIAL_EASINESS = 2.5
MIN_EASINESS = 1.3


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """SQLite hands datetimes back without tzinfo; treat those as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


@dataclass(frozen=True)
class VocabularyItem:
    id: str
    term: str
    definition: str
    part_of_speech: str = "noun"
    example: str = ""
    synonyms: tuple = ()


@dataclass(frozen=True)
class ReviewState:
    """SM-2 scheduling record for one word inside one deck.

    ``interval == 0 and repetitions == 0`` means the word was never reviewed.
    """
    item_id: str
    next_review_at: datetime.datetime
    easiness_factor: float = INITIAL_EASINESS
    interval: int = 0
    repetitions: int = 0
    last_reviewed_at: Optional[datetime.datetime] = None

    @property
    def is_new(self) -> bool:
        return self.interval == 0 and self.repetitions == 0


@dataclass
class Deck:
    id: str
    name: str
    description: str = ""
    is_protected: bool = False
    created_at: datetime.datetime = field(default_factory=utcnow)
    words: List[VocabularyItem] = field(default_factory=list)

    def find_word(self, word_id: str) -> Optional[VocabularyItem]:
        for word in self.words:
            if word.id == word_id:
                return word
        return None


@dataclass(frozen=True)
class QueueEntry:
    item: VocabularyItem
    state: ReviewState


def create_initial(item_id: str, now: Optional[datetime.datetime] = None) -> ReviewState:
    """Zero state for a word that has never been reviewed; due as of ``now``."""
    return ReviewState(item_id=item_id, next_review_at=now or utcnow())
