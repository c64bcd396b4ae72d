#!/usr/bin/env python3
"""
Vocab SRS - Flask JSON API
HTTP access to decks, study queues and SM-2 reviews. Everything works on the
active deck unless a deck id is part of the URL.
"""

import os
import logging
from typing import Any

from flask import Flask, jsonify, request, Response

from vocab_srs import db
from vocab_srs.cards import QueueEntry, ReviewState, Deck
from vocab_srs.errors import NotFoundError, ProtectedDeckError, PersistenceError, ValidationError
from vocab_srs.queues import QUEUE_NAMES
from vocab_srs.quiz import build_options

DEBUG = os.environ.get("DEBUG", "0") == "1"

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.DEBUG if DEBUG else logging.INFO,
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
app.config['MAX_CONTENT_LENGTH'] = 2 * 1024 * 1024  # CSV uploads


@app.before_request
def initialize_app() -> None:
    """Initialize the database if needed."""
    if not hasattr(app, '_database_initialized'):
        if not db.is_db_initialized():
            db.init_db()
            logger.info("Database initialized on startup")
        setattr(app, "_database_initialized", True)


def _error(message: str, status: int, **extra: Any) -> Any:
    return jsonify({'status': 'error', 'message': message, **extra}), status


@app.errorhandler(ValidationError)
def handle_validation(exc: ValidationError) -> Any:
    return _error(str(exc), 400, details=exc.details)


@app.errorhandler(NotFoundError)
def handle_not_found(exc: NotFoundError) -> Any:
    return _error(str(exc), 404)


@app.errorhandler(ProtectedDeckError)
def handle_protected(exc: ProtectedDeckError) -> Any:
    return _error(str(exc), 409)


@app.errorhandler(PersistenceError)
def handle_persistence(exc: PersistenceError) -> Any:
    logger.error("Storage failure: %s", exc)
    return _error('Storage failure, please retry', 500)


def _state_json(state: ReviewState) -> dict:
    return {
        'easiness_factor': state.easiness_factor,
        'interval': state.interval,
        'repetitions': state.repetitions,
        'next_review_at': state.next_review_at.isoformat(),
        'last_reviewed_at': state.last_reviewed_at.isoformat() if state.last_reviewed_at else None,
    }


def _word_json(item: Any) -> dict:
    return {
        'id': item.id,
        'word': item.term,
        'definition': item.definition,
        'part_of_speech': item.part_of_speech,
        'example': item.example,
        'synonyms': list(item.synonyms),
    }


def _entry_json(entry: QueueEntry) -> dict:
    data = _word_json(entry.item)
    data['state'] = _state_json(entry.state)
    return data


def _deck_json(deck: Deck, with_words: bool = False) -> dict:
    data = {
        'id': deck.id,
        'name': deck.name,
        'description': deck.description,
        'is_protected': deck.is_protected,
        'created_at': deck.created_at.isoformat(),
        'word_count': len(deck.words),
    }
    if with_words:
        data['words'] = [_word_json(w) for w in deck.words]
    return data


def _body() -> dict:
    return request.get_json(silent=True) or {}


@app.route('/api/decks')
def api_list_decks() -> Any:
    active_id = db.get_active_deck_id()
    return jsonify({
        'status': 'success',
        'active_deck_id': active_id,
        'decks': [_deck_json(d) for d in db.list_decks()],
    })


@app.route('/api/decks', methods=['POST'])
def api_create_deck() -> Any:
    data = _body()
    deck = db.create_deck(data.get('name', ''), data.get('description', ''))
    return jsonify({'status': 'success', 'deck': _deck_json(deck)}), 201


@app.route('/api/decks/<deck_id>', methods=['DELETE'])
def api_delete_deck(deck_id: str) -> Any:
    db.delete_deck(deck_id)
    return jsonify({'status': 'success', 'active_deck_id': db.get_active_deck_id()})


@app.route('/api/decks/active')
def api_active_deck() -> Any:
    return jsonify({'status': 'success', 'deck': _deck_json(db.get_active_deck(), with_words=True)})


@app.route('/api/decks/<deck_id>/activate', methods=['POST'])
def api_activate_deck(deck_id: str) -> Any:
    deck = db.set_active_deck(deck_id)
    return jsonify({'status': 'success', 'deck': _deck_json(deck)})


@app.route('/api/decks/<deck_id>/words', methods=['POST'])
def api_add_word(deck_id: str) -> Any:
    data = _body()
    synonyms = data.get('synonyms') or []
    if isinstance(synonyms, str):
        synonyms = synonyms.split(';')
    item = db.add_word(
        deck_id,
        data.get('word', ''),
        data.get('definition', ''),
        data.get('part_of_speech'),
        data.get('example'),
        synonyms,
    )
    return jsonify({'status': 'success', 'word': _word_json(item)}), 201


@app.route('/api/decks/<deck_id>/words/<word_id>', methods=['DELETE'])
def api_remove_word(deck_id: str, word_id: str) -> Any:
    db.remove_word(deck_id, word_id)
    return jsonify({'status': 'success'})


@app.route('/api/decks/import', methods=['POST'])
def api_import_deck() -> Any:
    """Create a deck from CSV, sent as an uploaded ``file`` or a JSON ``csv`` field."""
    upload = request.files.get('file')
    if upload is not None:
        text = upload.read().decode('utf-8-sig')
        name = request.form.get('name') or os.path.splitext(upload.filename or 'Imported deck')[0]
        description = request.form.get('description', '')
    else:
        data = _body()
        text = data.get('csv', '')
        name = data.get('name', '')
        description = data.get('description', '')
    deck, result = db.import_deck(name, text, description)
    return jsonify({
        'status': 'success',
        'deck': _deck_json(deck),
        'imported': len(result.items),
        'rejected': result.rejected,
    }), 201


@app.route('/api/decks/<deck_id>/import', methods=['POST'])
def api_import_words(deck_id: str) -> Any:
    """Append CSV rows to an existing deck, sent like ``/api/decks/import``."""
    upload = request.files.get('file')
    text = upload.read().decode('utf-8-sig') if upload is not None else _body().get('csv', '')
    result = db.import_words(deck_id, text)
    return jsonify({
        'status': 'success',
        'deck': _deck_json(db.get_deck(deck_id)),
        'imported': len(result.items),
        'rejected': result.rejected,
    })


@app.route('/api/decks/<deck_id>/export')
def api_export_deck(deck_id: str) -> Any:
    deck = db.get_deck(deck_id)
    filename = deck.name.replace(' ', '-').lower() + '.csv'
    return Response(
        db.export_deck(deck_id),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )


@app.route('/api/stats')
def api_stats() -> Any:
    return jsonify({'status': 'success', 'stats': db.get_stats()})


@app.route('/api/queues/<name>')
def api_queue(name: str) -> Any:
    if name not in QUEUE_NAMES:
        return _error(f"Unknown queue '{name}'", 404)
    entries = db.get_queue(name)
    return jsonify({'status': 'success', 'queue': name, 'cards': [_entry_json(e) for e in entries]})


@app.route('/api/review', methods=['POST'])
def api_review() -> Any:
    """Rate one word of the active deck: ``{"word_id": ..., "quality": 0-5}``."""
    data = _body()
    word_id = data.get('word_id')
    if not word_id:
        return _error('word_id is required', 400)
    state = db.review_word(db.get_active_deck_id(), str(word_id), data.get('quality'))
    return jsonify({'status': 'success', 'state': _state_json(state), 'stats': db.get_stats()})


@app.route('/api/quiz/<word_id>')
def api_quiz(word_id: str) -> Any:
    deck = db.get_active_deck()
    item = deck.find_word(word_id)
    if item is None:
        return _error(f'Word {word_id} not found in deck {deck.id}', 404)
    options = build_options(item, deck.words)
    return jsonify({
        'status': 'success',
        'word': item.term,
        'options': [{'word_id': o.word_id, 'definition': o.definition, 'is_correct': o.is_correct}
                    for o in options],
    })


@app.route('/api/progress/reset', methods=['POST'])
def api_reset_progress() -> Any:
    removed = db.reset_progress(db.get_active_deck_id())
    return jsonify({'status': 'success', 'removed': removed})


@app.route('/api/streak')
def api_streak() -> Any:
    return jsonify({'status': 'success', 'streak': db.get_streak()})


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='Vocab SRS API')
    parser.add_argument('--host', default='127.0.0.1', help='Host IP to bind to')
    parser.add_argument('--port', type=int, default=5000, help='Port to bind to (default: 5000)')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')

    args = parser.parse_args()

    if args.debug:
        DEBUG = True

    if not db.is_db_initialized():
        db.init_db()
        logger.info("Database initialized")

    app.run(debug=DEBUG, host=args.host, port=args.port)
