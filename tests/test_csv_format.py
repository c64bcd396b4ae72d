import pytest

from vocab_srs.cards import Deck, VocabularyItem
from vocab_srs.csv_format import export_deck_csv, parse_deck_csv
from vocab_srs.errors import ValidationError
from vocab_srs.csv_format import parse_row


def test_parse_with_header_and_all_columns():
    text = (
        "word,definition,partOfSpeech,example,synonyms\n"
        "Laconic,Using very few words,adjective,His laconic reply ended the talk.,terse;brief\n"
    )
    result = parse_deck_csv(text)
    assert result.rejected == []
    assert len(result.items) == 1
    item = result.items[0]
    assert item.term == "Laconic"
    assert item.definition == "Using very few words"
    assert item.part_of_speech == "adjective"
    assert item.example == "His laconic reply ended the talk."
    assert item.synonyms == ("terse", "brief")
    assert item.id


def test_header_is_optional():
    result = parse_deck_csv("Laconic,Using very few words\nZealot,A fanatic")
    assert [i.term for i in result.items] == ["Laconic", "Zealot"]


def test_header_detection_is_case_insensitive():
    result = parse_deck_csv("Word,Definition\nLaconic,Using very few words")
    assert [i.term for i in result.items] == ["Laconic"]


def test_term_containing_word_is_not_a_header():
    result = parse_deck_csv("Swordfish,A large fish with a long bill")
    assert [i.term for i in result.items] == ["Swordfish"]


def test_optional_fields_default():
    item = parse_deck_csv("Laconic,Using very few words").items[0]
    assert item.part_of_speech == "noun"
    assert item.example == 'The word "Laconic" is commonly used in academic contexts.'
    assert item.synonyms == ()


def test_bad_rows_are_reported_not_fatal():
    text = (
        "word,definition\n"
        "Laconic,Using very few words\n"
        "Orphan\n"
        ",No term here\n"
        "\n"
        "Zealot,A fanatic\n"
    )
    result = parse_deck_csv(text)
    assert [i.term for i in result.items] == ["Laconic", "Zealot"]
    assert len(result.rejected) == 2
    assert result.rejected[0].startswith("Line 3:")
    assert "Not enough fields" in result.rejected[0]
    assert result.rejected[1].startswith("Line 4:")
    assert "Missing word or definition" in result.rejected[1]
    assert result.success


def test_unreadable_row_is_reported_and_earlier_rows_kept():
    text = "good,meaning\nbig," + "x" * 200000
    result = parse_deck_csv(text)
    assert [i.term for i in result.items] == ["good"]
    assert len(result.rejected) == 1
    assert result.rejected[0].startswith("Line 2: unreadable CSV")


def test_nothing_usable():
    result = parse_deck_csv("word,definition\nonly-one-field")
    assert result.items == []
    assert not result.success


def test_quoted_fields_with_commas_and_quotes():
    text = '"Quip","A witty remark, often ""sharp""",noun,"He made a quip.","jest;gibe"'
    item = parse_deck_csv(text).items[0]
    assert item.definition == 'A witty remark, often "sharp"'
    assert item.synonyms == ("jest", "gibe")


def test_each_row_gets_a_distinct_id():
    result = parse_deck_csv("a,1\nb,2\nc,3")
    assert len({i.id for i in result.items}) == 3


def test_parse_row_validates():
    with pytest.raises(ValidationError):
        parse_row(["only"])
    with pytest.raises(ValidationError):
        parse_row(["  ", "definition"])


def test_export_quotes_everything_and_doubles_quotes():
    deck = Deck(id="d", name="Deck", words=[
        VocabularyItem(id="1", term='Say "hi"', definition="greet, warmly",
                       part_of_speech="verb", example="Hi.", synonyms=("greet", "hail")),
    ])
    lines = export_deck_csv(deck).split("\n")
    assert lines[0] == "word,definition,partOfSpeech,example,synonyms"
    assert lines[1] == '"Say ""hi""","greet, warmly","verb","Hi.","greet;hail"'


def test_export_import_export_round_trip():
    deck = Deck(id="d", name="Deck", words=[
        VocabularyItem(id="1", term="Laconic", definition="Using very few words",
                       part_of_speech="adjective", example='He said "no", then left.',
                       synonyms=("terse", "brief")),
        VocabularyItem(id="2", term="Zealot", definition="A fanatic, often militant",
                       part_of_speech="noun", example="A zealot for the cause.", synonyms=()),
    ])
    first = export_deck_csv(deck)
    reimported = parse_deck_csv(first)
    assert reimported.rejected == []
    again = export_deck_csv(Deck(id="x", name="Copy", words=reimported.items))
    assert again == first
    assert [(i.term, i.definition, i.part_of_speech, i.example, i.synonyms) for i in reimported.items] == \
        [(i.term, i.definition, i.part_of_speech, i.example, i.synonyms) for i in deck.words]
