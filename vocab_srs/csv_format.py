"""Deck CSV import/export.

Columns, in order: word, definition, partOfSpeech, example, synonyms.
Only the first two are required. Synonyms are ``;``-separated inside their
field. A header row is optional and recognised by a ``word`` or
``definition`` cell in the first row.
"""
import csv
import io
import logging
import uuid
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .cards import Deck, VocabularyItem
from .errors import ValidationError

logger = logging.getLogger(__name__)

CSV_HEADER = ["word", "definition", "partOfSpeech", "example", "synonyms"]
HEADER_MARKERS = {"word", "definition"}
SYNONYM_SEPARATOR = ";"
DEFAULT_PART_OF_SPEECH = "noun"


def placeholder_example(term: str) -> str:
    return f'The word "{term}" is commonly used in academic contexts.'


def split_synonyms(raw: str) -> tuple:
    return tuple(s.strip() for s in raw.split(SYNONYM_SEPARATOR) if s.strip())


@dataclass
class ImportResult:
    items: List[VocabularyItem] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return bool(self.items)


def _looks_like_header(row: Sequence[str]) -> bool:
    return any(cell.strip().lower() in HEADER_MARKERS for cell in row)


def _cell(row: Sequence[str], index: int) -> str:
    return row[index].strip() if index < len(row) else ""


def parse_row(row: Sequence[str], item_id: Optional[str] = None) -> VocabularyItem:
    """Turn one CSV row into a word, filling in optional columns."""
    if len(row) < 2:
        raise ValidationError("Not enough fields (need at least word and definition)")
    term = _cell(row, 0)
    definition = _cell(row, 1)
    if not term or not definition:
        raise ValidationError("Missing word or definition")

    return VocabularyItem(
        id=item_id or str(uuid.uuid4()),
        term=term,
        definition=definition,
        part_of_speech=_cell(row, 2) or DEFAULT_PART_OF_SPEECH,
        example=_cell(row, 3) or placeholder_example(term),
        synonyms=split_synonyms(_cell(row, 4)),
    )


def parse_deck_csv(text: str) -> ImportResult:
    """Parse CSV text into words.

    Bad rows are skipped and described in ``ImportResult.rejected``; they
    never abort the batch. Every accepted row gets a fresh id.
    """
    result = ImportResult()
    reader = csv.reader(io.StringIO(text.strip()))
    first = True
    while True:
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as exc:
            _reject(result, f"Line {reader.line_num}: unreadable CSV ({exc})")
            continue
        if not any(cell.strip() for cell in row):
            continue
        if first:
            first = False
            if _looks_like_header(row):
                continue
        try:
            result.items.append(parse_row(row))
        except ValidationError as exc:
            _reject(result, f"Line {reader.line_num}: {exc}")
    return result


def _reject(result: ImportResult, message: str) -> None:
    logger.warning("Rejected import row: %s", message)
    result.rejected.append(message)


def export_words_csv(words: Iterable[VocabularyItem]) -> str:
    buffer = io.StringIO()
    buffer.write(",".join(CSV_HEADER) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for word in words:
        writer.writerow([
            word.term,
            word.definition,
            word.part_of_speech,
            word.example,
            SYNONYM_SEPARATOR.join(word.synonyms),
        ])
    return buffer.getvalue().rstrip("\n")


def export_deck_csv(deck: Deck) -> str:
    """Serialise a deck: header row, then every field quoted with ``"`` doubled."""
    return export_words_csv(deck.words)
