"""Tests for the vocabulary catalog service."""
import pytest
from faker import Faker

from flashgame.models.game_models import (
    Difficulty,
    Direction,
    GameFilter,
    SelectionType,
)
from flashgame.models.models import VocabularyWord
from flashgame.services.vocabulary_service import SAMPLE_VOCABULARY, VocabularyService

fake = Faker()


def test_add_word(catalog: VocabularyService) -> None:
    """Test adding a single word."""
    word = catalog.add_word(" Haus ", "house", source="lesson-1")

    assert word.id is not None
    assert word.german == "Haus"
    assert word.english == "house"
    assert word.approved is False
    assert word.difficulty == Difficulty.EASY
    assert word.times_correct == 0
    assert word.times_incorrect == 0
    assert word.source == "lesson-1"


def test_add_words_skips_duplicates(catalog: VocabularyService) -> None:
    catalog.add_word("Hund", "dog")

    added = catalog.add_words(
        [("hund", "DOG"), ("Katze", "cat"), ("katze", "cat"), ("Hund", "hound")],
        source="animals",
    )

    assert [(w.german, w.english) for w in added] == [("Katze", "cat"), ("Hund", "hound")]
    assert all(w.approved for w in added)
    assert all(w.source == "animals" for w in added)
    assert catalog.count_words() == 3


def test_list_approved_words_all(catalog: VocabularyService) -> None:
    catalog.add_words([("Haus", "house"), ("Buch", "book")])
    catalog.add_word("Tisch", "table", approved=False)

    words = catalog.list_approved_words(GameFilter())

    assert [w.prompt for w in words] == ["Haus", "Buch"]
    assert [w.answer for w in words] == ["house", "book"]


def test_list_approved_words_direction(catalog: VocabularyService) -> None:
    catalog.add_words([("Wasser", "water")])

    words = catalog.list_approved_words(GameFilter(direction=Direction.ENGLISH_TO_GERMAN))

    assert words[0].prompt == "water"
    assert words[0].answer == "Wasser"


def test_list_approved_words_by_difficulty(catalog: VocabularyService) -> None:
    easy, hard = catalog.add_words([("Apfel", "apple"), ("Eichhörnchen", "squirrel")])
    hard.difficulty = int(Difficulty.HARD)
    catalog.db.commit()

    words = catalog.list_approved_words(
        GameFilter(selection=SelectionType.BY_DIFFICULTY, difficulty=Difficulty.HARD)
    )

    assert [w.id for w in words] == [hard.id]
    assert words[0].difficulty is Difficulty.HARD


def test_list_approved_words_by_source(catalog: VocabularyService) -> None:
    catalog.add_words([("Blume", "flower")], source="garden")
    catalog.add_words([("Fenster", "window")], source="house")
    catalog.add_word("Baum", "tree", approved=False, source="garden")

    words = catalog.list_approved_words(GameFilter(selection=SelectionType.BY_SOURCE, source="garden"))

    assert [w.prompt for w in words] == ["Blume"]
    assert words[0].source == "garden"


def test_list_approved_words_individual(catalog: VocabularyService) -> None:
    added = catalog.add_words([(f"{fake.word()}{i}", fake.word()) for i in range(4)])
    chosen = [added[1].id, added[3].id]

    words = catalog.list_approved_words(GameFilter(selection=SelectionType.INDIVIDUAL, word_ids=chosen))

    assert [w.id for w in words] == chosen


def test_list_approved_words_requires_filter_values(catalog: VocabularyService) -> None:
    with pytest.raises(ValueError):
        catalog.list_approved_words(GameFilter(selection=SelectionType.BY_DIFFICULTY))
    with pytest.raises(ValueError):
        catalog.list_approved_words(GameFilter(selection=SelectionType.BY_SOURCE))


def test_paginated_vocabulary(catalog: VocabularyService) -> None:
    catalog.add_words([(f"Wort{i}", f"word{i}") for i in range(25)], source="list")
    catalog.add_word("Straße", "street")

    words, total = catalog.get_paginated_vocabulary(page=2, page_size=10, source="list")
    assert total == 25
    assert [w.german for w in words] == [f"Wort{i}" for i in range(10, 20)]

    words, total = catalog.get_paginated_vocabulary(search_term="STREET")
    assert total == 1
    assert words[0].german == "Straße"

    words, total = catalog.get_paginated_vocabulary(approved=False)
    assert total == 1
    assert words[0].german == "Straße"


def test_update_and_approve_word(catalog: VocabularyService) -> None:
    word = catalog.add_word("Hous", "house")

    catalog.update_word(word.id, "Haus", "house")
    catalog.update_word_approval(word.id, True)

    stored = catalog.get_word(word.id)
    assert stored.german == "Haus"
    assert stored.approved is True

    with pytest.raises(ValueError):
        catalog.update_word(9999, "x", "y")


def test_delete_word(catalog: VocabularyService) -> None:
    word_id = catalog.add_word("Katze", "cat").id

    assert catalog.delete_word(word_id) is True
    assert catalog.delete_word(word_id) is False
    assert catalog.get_word(word_id) is None


def test_delete_words_by_source(catalog: VocabularyService) -> None:
    catalog.add_words([("Hund", "dog"), ("Katze", "cat")], source="pets")
    catalog.add_words([("Buch", "book")], source="school")

    assert catalog.delete_words_by_source("pets") == 2
    assert catalog.get_all_sources() == ["school"]


def test_get_all_sources_in_first_seen_order(catalog: VocabularyService) -> None:
    catalog.add_words([("a", "1")], source="b-list")
    catalog.add_words([("b", "2")], source="a-list")
    catalog.add_words([("c", "3")], source="b-list")
    catalog.add_word("d", "4")

    assert catalog.get_all_sources() == ["b-list", "a-list"]


def test_update_word_statistics_keeps_difficulty_below_min_attempts(catalog: VocabularyService) -> None:
    word = catalog.add_word("Hund", "dog")

    catalog.update_word_statistics(word.id, False)
    catalog.update_word_statistics(word.id, False)

    assert word.times_incorrect == 2
    assert word.difficulty == Difficulty.EASY


@pytest.mark.parametrize(
    "answers,expected",
    [
        ([True, True, True, True, True], Difficulty.EASY),
        ([True, True, False], Difficulty.MEDIUM),
        ([True, False, False], Difficulty.HARD),
    ],
)
def test_update_word_statistics_rerates_difficulty(catalog: VocabularyService, answers, expected) -> None:
    word = catalog.add_word("Fenster", "window")
    word.difficulty = int(Difficulty.MEDIUM)
    catalog.db.commit()

    for was_correct in answers:
        catalog.update_word_statistics(word.id, was_correct)

    assert word.difficulty == expected
    assert word.times_correct == answers.count(True)


def test_seed_sample_vocabulary_only_when_empty(catalog: VocabularyService) -> None:
    assert catalog.seed_sample_vocabulary() == len(SAMPLE_VOCABULARY)
    assert catalog.seed_sample_vocabulary() == 0
    assert catalog.count_words(approved=True) == len(SAMPLE_VOCABULARY)


def test_clear_vocabulary(catalog: VocabularyService) -> None:
    catalog.seed_sample_vocabulary()

    catalog.clear_vocabulary()

    assert catalog.db.query(VocabularyWord).count() == 0
