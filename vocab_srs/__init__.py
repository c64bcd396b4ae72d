"""
Vocab SRS

Vocabulary decks with SM-2 spaced-repetition scheduling and study queues.
"""

from . import cards
from . import scheduler
from . import queues
from . import csv_format
from . import db
from . import quiz
from . import session

__version__ = "0.1.0"
__all__ = ["cards", "scheduler", "queues", "csv_format", "db", "quiz", "session"]
