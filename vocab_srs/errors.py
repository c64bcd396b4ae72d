"""Exceptions raised by the vocabulary store, scheduler and study sessions."""
from typing import List, Optional


class VocabSRSError(Exception):
    """Base class for every error this package raises on purpose."""


class ValidationError(VocabSRSError, ValueError):
    """Input that cannot be turned into a word, deck or rating."""

    def __init__(self, message: str, details: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.details = list(details or [])


class InvalidQualityError(ValidationError):
    pass


class NotFoundError(VocabSRSError, LookupError):
    pass


class DeckNotFoundError(NotFoundError):
    def __init__(self, deck_id: str) -> None:
        super().__init__(f"Deck not found: {deck_id}")
        self.deck_id = deck_id


class WordNotFoundError(NotFoundError):
    def __init__(self, deck_id: str, word_id: str) -> None:
        super().__init__(f"Word {word_id} not found in deck {deck_id}")
        self.deck_id = deck_id
        self.word_id = word_id


class ProtectedDeckError(VocabSRSError):
    def __init__(self, deck_id: str) -> None:
        super().__init__(f"Deck {deck_id} is protected and cannot be deleted")
        self.deck_id = deck_id


class PersistenceError(VocabSRSError):
    """A storage read or write failed; the transaction was rolled back."""


class SessionStateError(VocabSRSError):
    """A study-session action was attempted in a phase that does not allow it."""
