from __future__ import annotations
import datetime
import json
import logging
import os
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text, create_engine, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from .cards import Deck, QueueEntry, ReviewState, VocabularyItem, as_utc, create_initial, utcnow
from .csv_format import DEFAULT_PART_OF_SPEECH, ImportResult, export_deck_csv, parse_deck_csv, placeholder_example
from .default_deck import DEFAULT_DECK_DESCRIPTION, DEFAULT_DECK_ID, DEFAULT_DECK_NAME, DEFAULT_WORDS
from .errors import DeckNotFoundError, PersistenceError, ProtectedDeckError, ValidationError, WordNotFoundError
from . import queues, scheduler

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


DB_PATH: str = os.environ.get("VOCAB_SRS_DB", "vocab_srs.db")
engine = create_engine(f"sqlite:///{DB_PATH}")
# Prevent attribute expiration on commit so returned objects remain accessible
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


class DeckRecord(Base):
    __tablename__ = "decks"
    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    is_protected: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow)


class WordRecord(Base):
    __tablename__ = "words"
    id: Mapped[str] = mapped_column(String, primary_key=True)
    deck_id: Mapped[str] = mapped_column(String, ForeignKey("decks.id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    term: Mapped[str] = mapped_column(String, nullable=False)
    definition: Mapped[str] = mapped_column(Text, nullable=False)
    part_of_speech: Mapped[str] = mapped_column(String, default=DEFAULT_PART_OF_SPEECH)
    example: Mapped[str] = mapped_column(Text, default="")
    synonyms_json: Mapped[str] = mapped_column(Text, default="[]")
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow)


class ReviewRecord(Base):
    """Per-deck SM-2 state. Keyed by deck and word so ids never collide across decks."""
    __tablename__ = "review_states"
    deck_id: Mapped[str] = mapped_column(String, ForeignKey("decks.id"), primary_key=True)
    word_id: Mapped[str] = mapped_column(String, ForeignKey("words.id"), primary_key=True)
    easiness_factor: Mapped[float] = mapped_column(Float, default=2.5)
    interval: Mapped[int] = mapped_column(Integer, default=0)
    repetitions: Mapped[int] = mapped_column(Integer, default=0)
    next_review_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=utcnow)
    last_reviewed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime, nullable=True)


class AppState(Base):
    __tablename__ = "app_state"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    active_deck_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)


class DailyProgress(Base):
    __tablename__ = "daily_progress"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    date: Mapped[datetime.date] = mapped_column(Date, unique=True, default=lambda: datetime.date.today())
    cards_reviewed: Mapped[int] = mapped_column(Integer, default=0)


def configure(db_path: str) -> None:
    """Point the module at a different SQLite file."""
    global DB_PATH, engine, SessionLocal
    DB_PATH = db_path
    engine = create_engine(f"sqlite:///{db_path}")
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


def is_db_initialized() -> bool:
    """Check if the database is already initialized by checking if tables exist."""
    from sqlalchemy import inspect
    inspector = inspect(engine)
    table_names = inspector.get_table_names()

    required_tables = {"decks", "words", "review_states", "app_state", "daily_progress"}
    return required_tables.issubset(set(table_names))


def init_db() -> None:
    """Create all tables and make sure the protected starter deck exists."""
    Base.metadata.create_all(bind=engine)
    ensure_default_deck()


def get_session() -> Session:
    return SessionLocal()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Commit on success; roll back and raise PersistenceError on storage failure."""
    session: Session = get_session()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Database operation failed: %s", exc)
        raise PersistenceError(str(exc)) from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ----------------------------------------------------------------------
# Record <-> model conversion
# ----------------------------------------------------------------------

def _to_item(record: WordRecord) -> VocabularyItem:
    return VocabularyItem(
        id=record.id,
        term=record.term,
        definition=record.definition,
        part_of_speech=record.part_of_speech,
        example=record.example,
        synonyms=tuple(json.loads(record.synonyms_json or "[]")),
    )


def _to_state(record: ReviewRecord) -> ReviewState:
    return ReviewState(
        item_id=record.word_id,
        easiness_factor=record.easiness_factor,
        interval=record.interval,
        repetitions=record.repetitions,
        next_review_at=as_utc(record.next_review_at),
        last_reviewed_at=as_utc(record.last_reviewed_at) if record.last_reviewed_at else None,
    )


def _word_records(session: Session, deck_id: str) -> List[WordRecord]:
    return (
        session.query(WordRecord)
        .filter(WordRecord.deck_id == deck_id)
        .order_by(WordRecord.position.asc())
        .all()
    )


def _to_deck(session: Session, record: DeckRecord) -> Deck:
    return Deck(
        id=record.id,
        name=record.name,
        description=record.description or "",
        is_protected=bool(record.is_protected),
        created_at=as_utc(record.created_at),
        words=[_to_item(w) for w in _word_records(session, record.id)],
    )


def _require_deck(session: Session, deck_id: str) -> DeckRecord:
    record = session.get(DeckRecord, deck_id)
    if record is None:
        raise DeckNotFoundError(deck_id)
    return record


def _require_word(session: Session, deck_id: str, word_id: str) -> WordRecord:
    _require_deck(session, deck_id)
    word = session.get(WordRecord, word_id)
    if word is None or word.deck_id != deck_id:
        raise WordNotFoundError(deck_id, word_id)
    return word


def _new_word_record(session: Session, deck_id: str, item: VocabularyItem, position: int) -> WordRecord:
    record = WordRecord(
        id=item.id,
        deck_id=deck_id,
        position=position,
        term=item.term,
        definition=item.definition,
        part_of_speech=item.part_of_speech,
        example=item.example,
        synonyms_json=json.dumps(list(item.synonyms)),
        created_at=utcnow(),
    )
    session.add(record)
    return record


def _next_position(session: Session, deck_id: str) -> int:
    current = session.query(func.max(WordRecord.position)).filter(WordRecord.deck_id == deck_id).scalar()
    return 0 if current is None else current + 1


# ----------------------------------------------------------------------
# Decks
# ----------------------------------------------------------------------

def ensure_default_deck() -> None:
    with session_scope() as session:
        if session.get(DeckRecord, DEFAULT_DECK_ID) is not None:
            return
        session.add(DeckRecord(
            id=DEFAULT_DECK_ID,
            name=DEFAULT_DECK_NAME,
            description=DEFAULT_DECK_DESCRIPTION,
            is_protected=True,
            created_at=utcnow(),
        ))
        for position, (term, pos, definition, example, synonyms) in enumerate(DEFAULT_WORDS):
            item = VocabularyItem(
                id=str(uuid.uuid4()),
                term=term,
                definition=definition,
                part_of_speech=pos,
                example=example,
                synonyms=synonyms,
            )
            _new_word_record(session, DEFAULT_DECK_ID, item, position)
        logger.info("Seeded protected deck %s with %d words", DEFAULT_DECK_ID, len(DEFAULT_WORDS))


def list_decks() -> List[Deck]:
    """All decks, protected deck first, then oldest to newest."""
    with session_scope() as session:
        records = (
            session.query(DeckRecord)
            .order_by(DeckRecord.is_protected.desc(), DeckRecord.created_at.asc())
            .all()
        )
        return [_to_deck(session, r) for r in records]


def get_deck(deck_id: str) -> Deck:
    with session_scope() as session:
        return _to_deck(session, _require_deck(session, deck_id))


def _new_deck_record(session: Session, name: str, description: str) -> DeckRecord:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Deck name is required")
    record = DeckRecord(
        id=str(uuid.uuid4()),
        name=name,
        description=(description or "").strip(),
        is_protected=False,
        created_at=utcnow(),
    )
    session.add(record)
    session.flush()
    return record


def create_deck(name: str, description: str = "") -> Deck:
    with session_scope() as session:
        deck = _to_deck(session, _new_deck_record(session, name, description))
    logger.info("Created deck %s (%s)", deck.id, deck.name)
    return deck


def delete_deck(deck_id: str) -> None:
    """Delete a deck with its words and review states.

    Raises ProtectedDeckError for the starter deck. If the deleted deck was
    active, the protected deck becomes active.
    """
    with session_scope() as session:
        record = _require_deck(session, deck_id)
        if record.is_protected:
            raise ProtectedDeckError(deck_id)

        session.query(ReviewRecord).filter(ReviewRecord.deck_id == deck_id).delete()
        session.query(WordRecord).filter(WordRecord.deck_id == deck_id).delete()
        session.delete(record)

        state = session.get(AppState, 1)
        if state is not None and state.active_deck_id == deck_id:
            state.active_deck_id = DEFAULT_DECK_ID
    logger.info("Deleted deck %s", deck_id)


def set_active_deck(deck_id: str) -> Deck:
    with session_scope() as session:
        deck = _to_deck(session, _require_deck(session, deck_id))
        state = session.get(AppState, 1)
        if state is None:
            session.add(AppState(id=1, active_deck_id=deck_id))
        else:
            state.active_deck_id = deck_id
    logger.info("Active deck is now %s", deck_id)
    return deck


def get_active_deck_id() -> str:
    """The active deck id; the protected deck when unset or dangling."""
    with session_scope() as session:
        state = session.get(AppState, 1)
        if state is not None and state.active_deck_id:
            if session.get(DeckRecord, state.active_deck_id) is not None:
                return state.active_deck_id
        return DEFAULT_DECK_ID


def get_active_deck() -> Deck:
    return get_deck(get_active_deck_id())


# ----------------------------------------------------------------------
# Words
# ----------------------------------------------------------------------

def add_word(
    deck_id: str,
    term: str,
    definition: str,
    part_of_speech: Optional[str] = None,
    example: Optional[str] = None,
    synonyms: Optional[Sequence[str]] = None,
) -> VocabularyItem:
    """Append a word to a deck under a fresh id. Term and definition are required."""
    term = (term or "").strip()
    definition = (definition or "").strip()
    if not term or not definition:
        raise ValidationError("Both word and definition are required")

    item = VocabularyItem(
        id=str(uuid.uuid4()),
        term=term,
        definition=definition,
        part_of_speech=(part_of_speech or "").strip() or DEFAULT_PART_OF_SPEECH,
        example=(example or "").strip() or placeholder_example(term),
        synonyms=tuple(s.strip() for s in (synonyms or ()) if s.strip()),
    )
    with session_scope() as session:
        _require_deck(session, deck_id)
        _new_word_record(session, deck_id, item, _next_position(session, deck_id))
    logger.info("Added word %r to deck %s", term, deck_id)
    return item


def remove_word(deck_id: str, word_id: str) -> None:
    with session_scope() as session:
        word = _require_word(session, deck_id, word_id)
        session.query(ReviewRecord).filter(
            ReviewRecord.deck_id == deck_id, ReviewRecord.word_id == word_id
        ).delete()
        session.delete(word)
    logger.info("Removed word %s from deck %s", word_id, deck_id)


def import_words(deck_id: str, text: str) -> ImportResult:
    """Parse CSV text and append the accepted rows to an existing deck."""
    result = parse_deck_csv(text)
    if not result.items:
        raise ValidationError("No valid words found in CSV", details=result.rejected)
    with session_scope() as session:
        _require_deck(session, deck_id)
        position = _next_position(session, deck_id)
        for offset, item in enumerate(result.items):
            _new_word_record(session, deck_id, item, position + offset)
    logger.info("Imported %d words into deck %s (%d rejected)",
                len(result.items), deck_id, len(result.rejected))
    return result


def import_deck(name: str, text: str, description: str = "") -> Tuple[Deck, ImportResult]:
    """Create a new deck from CSV text.

    Nothing is created when no row is usable; the ValidationError then
    carries the per-row rejections in ``details``.
    """
    result = parse_deck_csv(text)
    if not result.items:
        raise ValidationError("No valid words found in CSV", details=result.rejected)
    with session_scope() as session:
        record = _new_deck_record(session, name, description)
        for position, item in enumerate(result.items):
            _new_word_record(session, record.id, item, position)
        session.flush()
        deck = _to_deck(session, record)
    logger.info("Imported deck %s with %d words (%d rejected)",
                deck.id, len(result.items), len(result.rejected))
    return deck, result


def export_deck(deck_id: str) -> str:
    return export_deck_csv(get_deck(deck_id))


# ----------------------------------------------------------------------
# Review state
# ----------------------------------------------------------------------

def get_review_states(deck_id: str) -> Dict[str, ReviewState]:
    """Stored states for a deck, keyed by word id. Unreviewed words are absent."""
    with session_scope() as session:
        _require_deck(session, deck_id)
        records = session.query(ReviewRecord).filter(ReviewRecord.deck_id == deck_id).all()
        return {r.word_id: _to_state(r) for r in records}


def load_entries(deck_id: str) -> List[QueueEntry]:
    """Every word of a deck paired with its state, in deck order.

    Words never reviewed get a zero state that is due from their creation time.
    """
    with session_scope() as session:
        _require_deck(session, deck_id)
        stored = {
            r.word_id: _to_state(r)
            for r in session.query(ReviewRecord).filter(ReviewRecord.deck_id == deck_id).all()
        }
        entries: List[QueueEntry] = []
        for record in _word_records(session, deck_id):
            state = stored.get(record.id) or create_initial(record.id, as_utc(record.created_at))
            entries.append(QueueEntry(item=_to_item(record), state=state))
        return entries


def save_review_state(deck_id: str, state: ReviewState) -> None:
    with session_scope() as session:
        _require_word(session, deck_id, state.item_id)
        _store_state(session, deck_id, state)


def _store_state(session: Session, deck_id: str, state: ReviewState) -> None:
    record = session.get(ReviewRecord, (deck_id, state.item_id))
    if record is None:
        record = ReviewRecord(deck_id=deck_id, word_id=state.item_id)
        session.add(record)
    record.easiness_factor = state.easiness_factor
    record.interval = state.interval
    record.repetitions = state.repetitions
    record.next_review_at = state.next_review_at
    record.last_reviewed_at = state.last_reviewed_at


def review_word(
    deck_id: str,
    word_id: str,
    quality: int,
    now: Optional[datetime.datetime] = None,
) -> ReviewState:
    """Rate a word, persist the new SM-2 state and count it toward today's progress.

    The read, the scheduling step and the write share one transaction.
    """
    scheduler.validate_quality(quality)
    now = as_utc(now) if now is not None else utcnow()
    with session_scope() as session:
        word = _require_word(session, deck_id, word_id)
        record = session.get(ReviewRecord, (deck_id, word_id))
        current = _to_state(record) if record else create_initial(word_id, as_utc(word.created_at))
        new_state = scheduler.next_state(current, quality, now)
        _store_state(session, deck_id, new_state)
        _record_review_day(session, now.astimezone().date())
    logger.debug("Reviewed %s/%s q=%d -> interval=%d ef=%.2f",
                 deck_id, word_id, quality, new_state.interval, new_state.easiness_factor)
    return new_state


def reset_progress(deck_id: str) -> int:
    """Forget every review state of a deck. Returns how many were removed."""
    with session_scope() as session:
        _require_deck(session, deck_id)
        removed = session.query(ReviewRecord).filter(ReviewRecord.deck_id == deck_id).delete()
    logger.info("Reset progress for deck %s (%d states removed)", deck_id, removed)
    return removed


def get_queue(name: str, deck_id: Optional[str] = None,
              now: Optional[datetime.datetime] = None) -> List[QueueEntry]:
    return queues.build_queue(load_entries(deck_id or get_active_deck_id()), name, now)


def get_stats(deck_id: Optional[str] = None, now: Optional[datetime.datetime] = None) -> Dict[str, int]:
    return queues.queue_stats(load_entries(deck_id or get_active_deck_id()), now)


# ----------------------------------------------------------------------
# Study streak
# ----------------------------------------------------------------------

def _record_review_day(session: Session, day: datetime.date) -> None:
    daily = session.query(DailyProgress).filter_by(date=day).one_or_none()
    if daily is None:
        daily = DailyProgress(date=day, cards_reviewed=0)
        session.add(daily)
    daily.cards_reviewed = (daily.cards_reviewed or 0) + 1


def get_streak(today: Optional[datetime.date] = None) -> Dict[str, object]:
    """Consecutive study days.

    Returns ``{current, longest, total_days, studied_today}``. The current
    streak may start today or yesterday, so it survives until a full day is
    missed.
    """
    today = today or datetime.date.today()
    with session_scope() as session:
        rows = session.query(DailyProgress.date).filter(DailyProgress.cards_reviewed > 0).all()
        studied_dates = {r.date for r in rows}

    current_streak = 0
    check = today
    if check not in studied_dates:
        check = today - datetime.timedelta(days=1)
    while check in studied_dates:
        current_streak += 1
        check -= datetime.timedelta(days=1)

    longest_streak = 0
    if studied_dates:
        sorted_dates = sorted(studied_dates)
        run = 1
        for i in range(1, len(sorted_dates)):
            if sorted_dates[i] - sorted_dates[i - 1] == datetime.timedelta(days=1):
                run += 1
            else:
                longest_streak = max(longest_streak, run)
                run = 1
        longest_streak = max(longest_streak, run)

    return {
        "current": current_streak,
        "longest": longest_streak,
        "total_days": len(studied_dates),
        "studied_today": today in studied_dates,
    }
