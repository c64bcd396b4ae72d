import io
from typing import Any, Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app import app
from vocab_srs import db
from vocab_srs.default_deck import DEFAULT_DECK_ID, DEFAULT_WORDS


@pytest.fixture(scope="function")
def temp_db(tmp_path: Any) -> Generator[None, None, None]:
    """Setup transient SQLite DB for testing."""
    path = str(tmp_path / "api.db")
    db.engine = create_engine(f"sqlite:///{path}")
    db.SessionLocal = sessionmaker(bind=db.engine, expire_on_commit=False)
    db.init_db()
    yield


@pytest.fixture
def client(temp_db: Any) -> Any:
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


def _first_word_id(client: Any) -> str:
    return client.get('/api/decks/active').get_json()['deck']['words'][0]['id']


def test_list_decks(client: Any) -> None:
    data = client.get('/api/decks').get_json()
    assert data['status'] == 'success'
    assert data['active_deck_id'] == DEFAULT_DECK_ID
    assert data['decks'][0]['is_protected'] is True
    assert data['decks'][0]['word_count'] == len(DEFAULT_WORDS)


def test_create_activate_and_delete_deck(client: Any) -> None:
    response = client.post('/api/decks', json={'name': 'Biology', 'description': 'Cells'})
    assert response.status_code == 201
    deck_id = response.get_json()['deck']['id']

    response = client.post(f'/api/decks/{deck_id}/activate')
    assert response.status_code == 200
    assert client.get('/api/decks').get_json()['active_deck_id'] == deck_id

    response = client.delete(f'/api/decks/{deck_id}')
    assert response.status_code == 200
    assert response.get_json()['active_deck_id'] == DEFAULT_DECK_ID


def test_create_deck_without_name(client: Any) -> None:
    response = client.post('/api/decks', json={'name': ''})
    assert response.status_code == 400
    assert response.get_json()['status'] == 'error'


def test_protected_deck_delete_conflict(client: Any) -> None:
    response = client.delete(f'/api/decks/{DEFAULT_DECK_ID}')
    assert response.status_code == 409
    assert len(client.get('/api/decks').get_json()['decks']) == 1


def test_unknown_deck_is_404(client: Any) -> None:
    assert client.post('/api/decks/nope/activate').status_code == 404
    assert client.delete('/api/decks/nope').status_code == 404
    assert client.get('/api/decks/nope/export').status_code == 404


def test_add_and_remove_word(client: Any) -> None:
    deck_id = client.post('/api/decks', json={'name': 'Custom'}).get_json()['deck']['id']
    response = client.post(f'/api/decks/{deck_id}/words', json={
        'word': 'Quip', 'definition': 'A witty remark', 'synonyms': 'jest;gibe',
    })
    assert response.status_code == 201
    word = response.get_json()['word']
    assert word['part_of_speech'] == 'noun'
    assert word['synonyms'] == ['jest', 'gibe']

    assert client.delete(f"/api/decks/{deck_id}/words/{word['id']}").status_code == 200
    assert client.delete(f"/api/decks/{deck_id}/words/{word['id']}").status_code == 404


def test_add_word_missing_definition(client: Any) -> None:
    response = client.post(f'/api/decks/{DEFAULT_DECK_ID}/words', json={'word': 'Quip'})
    assert response.status_code == 400


def test_import_json_and_export(client: Any) -> None:
    csv_text = "word,definition\nLaconic,Using very few words\nbroken\n"
    response = client.post('/api/decks/import', json={'name': 'Imported', 'csv': csv_text})
    assert response.status_code == 201
    data = response.get_json()
    assert data['imported'] == 1
    assert len(data['rejected']) == 1

    response = client.get(f"/api/decks/{data['deck']['id']}/export")
    assert response.status_code == 200
    assert response.mimetype == 'text/csv'
    body = response.get_data(as_text=True)
    assert body.splitlines()[0] == 'word,definition,partOfSpeech,example,synonyms'
    assert body.splitlines()[1].startswith('"Laconic","Using very few words","noun"')


def test_import_file_upload(client: Any) -> None:
    upload = (io.BytesIO(b"Zealot,A fanatic\nQuip,A witty remark\n"), 'my-words.csv')
    response = client.post('/api/decks/import', data={'file': upload},
                           content_type='multipart/form-data')
    assert response.status_code == 201
    data = response.get_json()
    assert data['deck']['name'] == 'my-words'
    assert data['imported'] == 2


def test_import_into_existing_deck(client: Any) -> None:
    deck_id = client.post('/api/decks', json={'name': 'Custom'}).get_json()['deck']['id']
    response = client.post(f'/api/decks/{deck_id}/import',
                           json={'csv': 'Laconic,Using very few words\nbroken\n'})
    assert response.status_code == 200
    data = response.get_json()
    assert data['imported'] == 1
    assert data['deck']['word_count'] == 1
    assert len(data['rejected']) == 1

    response = client.post('/api/decks/nope/import', json={'csv': 'Quip,A witty remark'})
    assert response.status_code == 404


def test_import_nothing_usable(client: Any) -> None:
    response = client.post('/api/decks/import', json={'name': 'Bad', 'csv': 'lonely'})
    assert response.status_code == 400
    assert response.get_json()['details']


def test_queues_and_stats(client: Any) -> None:
    response = client.get('/api/queues/due')
    assert response.status_code == 200
    cards = response.get_json()['cards']
    assert len(cards) == len(DEFAULT_WORDS)
    assert cards[0]['state']['repetitions'] == 0

    stats = client.get('/api/stats').get_json()['stats']
    assert stats['total'] == len(DEFAULT_WORDS)
    assert stats['new'] == len(DEFAULT_WORDS)

    assert client.get('/api/queues/later').status_code == 404


def test_review_updates_state(client: Any) -> None:
    word_id = _first_word_id(client)
    response = client.post('/api/review', json={'word_id': word_id, 'quality': 5})
    assert response.status_code == 200
    data = response.get_json()
    assert data['state']['interval'] == 1
    assert data['state']['easiness_factor'] == 2.6
    assert data['stats']['learning'] == 1
    assert data['stats']['due'] == len(DEFAULT_WORDS) - 1


def test_review_validation(client: Any) -> None:
    word_id = _first_word_id(client)
    assert client.post('/api/review', json={'quality': 3}).status_code == 400
    assert client.post('/api/review', json={'word_id': word_id, 'quality': 8}).status_code == 400
    assert client.post('/api/review', json={'word_id': 'missing', 'quality': 3}).status_code == 404


def test_quiz_options(client: Any) -> None:
    word_id = _first_word_id(client)
    data = client.get(f'/api/quiz/{word_id}').get_json()
    assert len(data['options']) == 4
    assert [o['word_id'] for o in data['options'] if o['is_correct']] == [word_id]
    assert client.get('/api/quiz/missing').status_code == 404


def test_reset_progress_and_streak(client: Any) -> None:
    word_id = _first_word_id(client)
    client.post('/api/review', json={'word_id': word_id, 'quality': 4})

    streak = client.get('/api/streak').get_json()['streak']
    assert streak['current'] == 1
    assert streak['studied_today'] is True

    response = client.post('/api/progress/reset')
    assert response.get_json()['removed'] == 1
    assert client.get('/api/stats').get_json()['stats']['new'] == len(DEFAULT_WORDS)
