import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .cards import VocabularyItem
from .scheduler import validate_quality


@dataclass(frozen=True)
class AnswerGrading:
    """How a right or wrong multiple-choice answer maps onto an SM-2 quality.

    The defaults treat a correct pick as perfect recall and a wrong pick as
    "recognized after". Guess-heavy modes may want a lower correct quality.
    """
    correct_quality: int = 5
    incorrect_quality: int = 1

    def __post_init__(self) -> None:
        validate_quality(self.correct_quality)
        validate_quality(self.incorrect_quality)

    def quality_for(self, is_correct: bool) -> int:
        return self.correct_quality if is_correct else self.incorrect_quality


@dataclass(frozen=True)
class QuizOption:
    word_id: str
    term: str
    definition: str
    is_correct: bool


def build_options(
    item: VocabularyItem,
    pool: Sequence[VocabularyItem],
    rng: Optional[random.Random] = None,
    distractors: int = 3,
) -> List[QuizOption]:
    """Multiple-choice definitions for ``item``: the right one plus distractors.

    Distractors are drawn from other words in ``pool``; a small deck simply
    yields fewer options.
    """
    rng = rng or random.Random()
    others = [w for w in pool if w.id != item.id and w.definition != item.definition]
    picked = rng.sample(others, min(distractors, len(others)))

    options = [QuizOption(item.id, item.term, item.definition, True)]
    options.extend(QuizOption(w.id, w.term, w.definition, False) for w in picked)
    rng.shuffle(options)
    return options
