import functools
import logging
import os
from typing import Any, Callable, Optional

import click

from . import db
from .errors import VocabSRSError
from .queues import QUEUE_NAMES
from .quiz import AnswerGrading
from .scheduler import QUALITY_LABELS, format_interval, time_until_review
from .session import SessionPhase, StudySession


def handles_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn store/session errors into a clean CLI failure."""
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except VocabSRSError as exc:
            details = getattr(exc, "details", None)
            if details:
                for line in details:
                    click.echo(f"  {line}", err=True)
            raise click.ClickException(str(exc)) from exc
    return wrapper


@click.group()
@click.option("--db", "db_path", envvar="VOCAB_SRS_DB", default=None, help="SQLite database path.")
@click.option("--debug", is_flag=True, default=os.getenv("DEBUG", "0") == "1", help="Verbose logging.")
def main(db_path: Optional[str], debug: bool) -> None:
    """Vocabulary decks with SM-2 spaced repetition."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.WARNING,
    )
    if db_path:
        db.configure(db_path)
    if not db.is_db_initialized():
        db.init_db()
    else:
        db.ensure_default_deck()


@main.command("init-db")
def init_db() -> None:
    """Initialize the vocabulary database."""
    db.init_db()
    click.echo("Database initialized.")


@main.command("decks")
def list_decks() -> None:
    """List all decks; the active one is marked with *."""
    active_id = db.get_active_deck_id()
    for deck in db.list_decks():
        marker = "*" if deck.id == active_id else " "
        lock = " (protected)" if deck.is_protected else ""
        click.echo(f"{marker} {deck.id}  {deck.name}{lock} - {len(deck.words)} words")


@main.command("create-deck")
@click.argument("name")
@click.option("--description", default="", help="Deck description")
@handles_errors
def create_deck(name: str, description: str) -> None:
    """Create an empty deck."""
    deck = db.create_deck(name, description)
    click.echo(f"Deck '{deck.name}' created with id {deck.id}.")


@main.command("delete-deck")
@click.argument("deck_id")
@handles_errors
def delete_deck(deck_id: str) -> None:
    """Delete a deck and its review history."""
    db.delete_deck(deck_id)
    click.echo(f"Deck {deck_id} deleted.")


@main.command("use-deck")
@click.argument("deck_id")
@handles_errors
def use_deck(deck_id: str) -> None:
    """Make a deck the active one."""
    deck = db.set_active_deck(deck_id)
    click.echo(f"Now studying '{deck.name}'.")


@main.command("add-word")
@click.argument("term")
@click.argument("definition")
@click.option("--pos", "part_of_speech", default="", help="Part of speech (default: noun)")
@click.option("--example", default="", help="Example sentence")
@click.option("--synonyms", default="", help="Synonyms separated by ';'")
@click.option("--deck", "deck_id", default=None, help="Deck id (default: active deck)")
@handles_errors
def add_word(term: str, definition: str, part_of_speech: str, example: str,
             synonyms: str, deck_id: Optional[str]) -> None:
    """Add a word to a deck."""
    deck_id = deck_id or db.get_active_deck_id()
    item = db.add_word(deck_id, term, definition, part_of_speech, example, synonyms.split(";"))
    click.echo(f"Word '{item.term}' added with id {item.id}.")


@main.command("remove-word")
@click.argument("word_id")
@click.option("--deck", "deck_id", default=None, help="Deck id (default: active deck)")
@handles_errors
def remove_word(word_id: str, deck_id: Optional[str]) -> None:
    """Remove a word and its review state."""
    db.remove_word(deck_id or db.get_active_deck_id(), word_id)
    click.echo(f"Word {word_id} removed.")


@main.command("import-csv")
@click.argument("csv_file", type=click.File("r", encoding="utf-8-sig"))
@click.option("--name", default=None, help="Name of the new deck")
@click.option("--description", default="", help="Deck description")
@click.option("--deck", "deck_id", default=None, help="Append to this existing deck instead")
@handles_errors
def import_csv(csv_file: Any, name: Optional[str], description: str, deck_id: Optional[str]) -> None:
    """Create a deck from a CSV file (word,definition,partOfSpeech,example,synonyms)."""
    if deck_id:
        result = db.import_words(deck_id, csv_file.read())
        deck = db.get_deck(deck_id)
    elif name:
        deck, result = db.import_deck(name, csv_file.read(), description)
    else:
        raise click.UsageError("Give --name for a new deck or --deck for an existing one.")
    click.echo(f"Imported {len(result.items)} words into '{deck.name}' ({deck.id}).")
    if result.rejected:
        click.echo(f"Skipped {len(result.rejected)} rows:")
        for line in result.rejected:
            click.echo(f"  {line}")


@main.command("export-csv")
@click.option("--deck", "deck_id", default=None, help="Deck id (default: active deck)")
@click.option("--output", type=click.File("w", encoding="utf-8"), default="-", help="Output file")
@handles_errors
def export_csv(deck_id: Optional[str], output: Any) -> None:
    """Write a deck as CSV."""
    output.write(db.export_deck(deck_id or db.get_active_deck_id()) + "\n")


@main.command("stats")
@click.option("--deck", "deck_id", default=None, help="Deck id (default: active deck)")
@handles_errors
def stats(deck_id: Optional[str]) -> None:
    """Show queue counts for a deck."""
    deck = db.get_deck(deck_id or db.get_active_deck_id())
    counts = db.get_stats(deck.id)
    click.echo(f"{deck.name}:")
    for key in ("total", "due", "new", "learning", "mastered"):
        click.echo(f"  {key.capitalize()}: {counts[key]}")


@main.command("review")
@click.argument("word_id")
@click.argument("quality", type=click.IntRange(0, 5))
@click.option("--deck", "deck_id", default=None, help="Deck id (default: active deck)")
@handles_errors
def review(word_id: str, quality: int, deck_id: Optional[str]) -> None:
    """Record a 0-5 rating for one word without a study session."""
    state = db.review_word(deck_id or db.get_active_deck_id(), word_id, quality)
    click.echo(f"Next review in {format_interval(state.interval)} (EF {state.easiness_factor:.2f}).")


@main.command("reset-progress")
@click.option("--deck", "deck_id", default=None, help="Deck id (default: active deck)")
@click.confirmation_option(prompt="Forget all review history for this deck?")
@handles_errors
def reset_progress(deck_id: Optional[str]) -> None:
    """Erase all review states of a deck."""
    removed = db.reset_progress(deck_id or db.get_active_deck_id())
    click.echo(f"Progress reset ({removed} review states removed).")


@main.command("streak")
def streak() -> None:
    """Show the study streak."""
    data = db.get_streak()
    click.echo(f"Current streak: {data['current']} days")
    click.echo(f"Longest streak: {data['longest']} days")
    click.echo(f"Days studied: {data['total_days']}")
    if not data["studied_today"]:
        click.echo("You have not studied today yet.")


def _show_back(session: StudySession) -> None:
    entry = session.current
    item = entry.item
    click.echo(f"  {item.definition}")
    click.echo(f"  e.g. {item.example}")
    if item.synonyms:
        click.echo(f"  Synonyms: {', '.join(item.synonyms)}")


def _quality_prompt() -> str:
    labels = "  ".join(f"{q}={label}" for q, (label, _) in QUALITY_LABELS.items())
    return f"{labels}\nRate recall 0-5 (q to quit)"


def _study_flashcard(session: StudySession) -> bool:
    """One flashcard step; returns False when the learner quits."""
    entry = session.current
    click.echo(f"\n{entry.item.term} ({entry.item.part_of_speech})  [{time_until_review(entry.state)}]")
    action = click.prompt("[Enter] reveal, [p]revious, [n]ext, [q]uit", default="", show_default=False)
    action = action.strip().lower()
    if action == "q":
        return False
    if action == "p":
        session.previous()
        return True
    if action == "n":
        session.next()
        return True

    session.reveal()
    _show_back(session)
    while True:
        raw = click.prompt(_quality_prompt(), type=str).strip().lower()
        if raw == "q":
            return False
        if raw in {"0", "1", "2", "3", "4", "5"}:
            break
        click.echo("Invalid score.")
    state = session.rate(int(raw))
    click.echo(f"Next review in {format_interval(state.interval)}.")
    return True


def _study_quiz(session: StudySession, grading: AnswerGrading) -> bool:
    entry = session.current
    options = session.quiz_options()
    click.echo(f"\n{entry.item.term} ({entry.item.part_of_speech})")
    for number, option in enumerate(options, start=1):
        click.echo(f"  {number}. {option.definition}")
    raw = click.prompt("Your choice (q to quit)", type=str).strip().lower()
    if raw == "q":
        return False
    if not raw.isdigit() or not 1 <= int(raw) <= len(options):
        click.echo("Invalid choice.")
        return True

    chosen = options[int(raw) - 1]
    if chosen.is_correct:
        click.echo("Correct!")
    else:
        click.echo(f"Wrong. {entry.item.term}: {entry.item.definition}")
    session.answer(chosen.is_correct, grading)
    return True


@main.command("study")
@click.option("--queue", "queue_name", type=click.Choice(QUEUE_NAMES), default="due", help="Which queue to study")
@click.option("--quiz", is_flag=True, help="Multiple-choice mode instead of flashcards")
@click.option("--shuffle", is_flag=True, help="Shuffle presentation order")
@click.option("--correct-quality", type=click.IntRange(0, 5), default=5, help="Quality for a right quiz answer")
@click.option("--incorrect-quality", type=click.IntRange(0, 5), default=1, help="Quality for a wrong quiz answer")
@handles_errors
def study(queue_name: str, quiz: bool, shuffle: bool, correct_quality: int, incorrect_quality: int) -> None:
    """Study the active deck interactively."""
    session = StudySession()
    grading = AnswerGrading(correct_quality, incorrect_quality)
    if session.start(queue_name) == SessionPhase.EXHAUSTED:
        click.echo(f"🎉 Nothing in the '{queue_name}' queue. All caught up!")
        return
    if shuffle:
        session.shuffle()

    while session.phase != SessionPhase.EXHAUSTED:
        keep_going = _study_quiz(session, grading) if quiz else _study_flashcard(session)
        if not keep_going:
            break

    summary = session.summary()
    click.echo(f"\nReviewed {summary.reviewed}: {summary.remembered} remembered, "
               f"{summary.forgotten} to practice, {summary.remaining} left.")


if __name__ == "__main__":
    main()
