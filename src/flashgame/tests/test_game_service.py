"""Tests for the game service."""
import random
import time

import pytest
from prometheus_client import REGISTRY

from flashgame.models.game_models import (
    Direction,
    GameFilter,
    SelectionType,
    SessionState,
)
from flashgame.services.game_service import (
    GameService,
    check_answer,
    make_hint,
)
from flashgame.services.vocabulary_service import VocabularyService

USER_ID = 1001


def metric_value(name: str) -> float:
    return REGISTRY.get_sample_value(name) or 0.0


@pytest.fixture
def game_service() -> GameService:
    return GameService(rng_factory=lambda: random.Random(99), session_timeout=60)


@pytest.fixture
def one_word_catalog(catalog: VocabularyService) -> VocabularyService:
    catalog.add_words([("Apfel", "apple")])
    return catalog


def test_check_answer_normalizes() -> None:
    assert check_answer("  Apple ", "apple") is True
    assert check_answer("good  morning", "Good morning") is True
    assert check_answer("aple", "apple") is False


def test_make_hint() -> None:
    assert make_hint("apple") == "a... (5 letters)"
    assert make_hint("guten Morgen") == "g... M..."
    assert make_hint("") == ""


def test_start_game_without_words(game_service: GameService, catalog: VocabularyService) -> None:
    assert game_service.start_game(USER_ID, GameFilter(), catalog) is None
    assert game_service.has_game(USER_ID) is False


def test_start_game_returns_first_card(game_service: GameService, catalog: VocabularyService) -> None:
    catalog.add_words([("Haus", "house"), ("Hund", "dog")])

    word = game_service.start_game(USER_ID, GameFilter(), catalog)

    assert word.prompt in {"Haus", "Hund"}
    assert game_service.current_word(USER_ID) == word
    assert game_service.progress(USER_ID).total_count == 2


def test_submit_answer_updates_session_and_catalog(
    game_service: GameService, one_word_catalog: VocabularyService
) -> None:
    word = game_service.start_game(USER_ID, GameFilter(), one_word_catalog)

    outcome = game_service.submit_answer(USER_ID, "pear", one_word_catalog)

    assert outcome.is_correct is False
    assert outcome.expected == "apple"
    assert outcome.stat.times_incorrect == 1
    assert outcome.next_word == word
    assert outcome.completed is False
    assert one_word_catalog.get_word(word.id).times_incorrect == 1


def test_game_completes_after_mastery(game_service: GameService, one_word_catalog: VocabularyService) -> None:
    game_service.start_game(USER_ID, GameFilter(), one_word_catalog)

    first = game_service.submit_answer(USER_ID, "apple", one_word_catalog)
    second = game_service.submit_answer(USER_ID, "Apple", one_word_catalog)

    assert first.mastered is False
    assert second.mastered is True
    assert second.completed is True
    assert second.next_word is None
    assert second.result.all_mastered is True
    assert second.result.correct_count == 2
    assert game_service.has_game(USER_ID) is False


def test_reverse_direction_expects_german(game_service: GameService, one_word_catalog: VocabularyService) -> None:
    game_filter = GameFilter(direction=Direction.ENGLISH_TO_GERMAN)
    word = game_service.start_game(USER_ID, game_filter, one_word_catalog)

    outcome = game_service.submit_answer(USER_ID, "apfel", one_word_catalog)

    assert word.prompt == "apple"
    assert outcome.is_correct is True


def test_hint_and_skip(game_service: GameService, catalog: VocabularyService) -> None:
    catalog.add_words([("Haus", "house"), ("Hund", "dog")])
    game_service.start_game(USER_ID, GameFilter(), catalog)

    hint = game_service.hint(USER_ID)
    next_word = game_service.skip(USER_ID)

    assert hint in {"h... (5 letters)", "d... (3 letters)"}
    assert next_word is not None
    assert game_service.progress(USER_ID).answered == 0
    assert game_service.get_session(USER_ID).tracker.result().skipped_count == 1


def test_restart_clears_progress(game_service: GameService, catalog: VocabularyService) -> None:
    catalog.add_words([("Haus", "house"), ("Hund", "dog")])
    game_service.start_game(USER_ID, GameFilter(), catalog)
    game_service.submit_answer(USER_ID, "wrong", catalog)

    game_service.restart(USER_ID)

    assert game_service.progress(USER_ID).answered == 0


def test_end_game(game_service: GameService, catalog: VocabularyService) -> None:
    catalog.add_words([("Haus", "house"), ("Hund", "dog")])
    game_service.start_game(USER_ID, GameFilter(), catalog)
    tracker = game_service.get_session(USER_ID).tracker

    result = game_service.end_game(USER_ID)

    assert result.all_mastered is False
    assert tracker.state is SessionState.COMPLETE
    assert game_service.has_game(USER_ID) is False
    with pytest.raises(ValueError):
        game_service.end_game(USER_ID)


def test_starting_again_replaces_running_game(game_service: GameService, catalog: VocabularyService) -> None:
    catalog.add_words([("Haus", "house"), ("Hund", "dog")])
    game_service.start_game(USER_ID, GameFilter(), catalog)
    old_tracker = game_service.get_session(USER_ID).tracker

    game_service.start_game(USER_ID, GameFilter(), catalog)

    assert old_tracker.is_complete
    assert game_service.get_session(USER_ID).tracker is not old_tracker


def test_remove_word_mid_game(game_service: GameService, catalog: VocabularyService) -> None:
    catalog.add_words([("Haus", "house"), ("Hund", "dog")])
    word = game_service.start_game(USER_ID, GameFilter(), catalog)

    assert game_service.remove_word(word.id, catalog) is True

    assert catalog.get_word(word.id) is None
    next_word = game_service.current_word(USER_ID)
    assert next_word is not None
    assert next_word.id != word.id
    assert game_service.progress(USER_ID).total_count == 1

    assert game_service.remove_word(next_word.id, catalog) is True
    assert game_service.has_game(USER_ID) is False


def test_remove_word_reaches_every_game(game_service: GameService, catalog: VocabularyService) -> None:
    catalog.add_words([("Haus", "house"), ("Hund", "dog"), ("Katze", "cat")])
    game_service.start_game(USER_ID, GameFilter(), catalog)
    game_service.start_game(USER_ID + 1, GameFilter(), catalog)
    word_id = catalog.get_vocabulary()[0].id

    game_service.remove_word(word_id, catalog)

    for user_id in (USER_ID, USER_ID + 1):
        tracker = game_service.get_session(user_id).tracker
        assert word_id not in {w.id for w in tracker.words}
        assert tracker.current_word.id != word_id


def test_remove_unknown_word_does_not_count_deletion(
    game_service: GameService, catalog: VocabularyService
) -> None:
    before = metric_value("flashgame_words_deleted_total")

    assert game_service.remove_word(999, catalog) is False

    assert metric_value("flashgame_words_deleted_total") == before


def test_remove_word_counts_deletion(game_service: GameService, catalog: VocabularyService) -> None:
    word = catalog.add_word("Haus", "house", approved=True)
    before = metric_value("flashgame_words_deleted_total")

    game_service.remove_word(word.id, catalog)

    assert metric_value("flashgame_words_deleted_total") == before + 1


def test_replaced_game_counts_as_ended_early(game_service: GameService, catalog: VocabularyService) -> None:
    catalog.add_words([("Haus", "house"), ("Hund", "dog")])
    game_service.start_game(USER_ID, GameFilter(), catalog)
    before = metric_value("flashgame_games_ended_early_total")

    game_service.start_game(USER_ID, GameFilter(), catalog)

    assert metric_value("flashgame_games_ended_early_total") == before + 1


def test_idle_game_counts_as_ended_early(game_service: GameService, catalog: VocabularyService) -> None:
    catalog.add_words([("Haus", "house")])
    game_service.start_game(USER_ID, GameFilter(), catalog)
    game_service.get_session(USER_ID).last_activity = time.time() - 120
    before = metric_value("flashgame_games_ended_early_total")

    game_service.cleanup_inactive()

    assert metric_value("flashgame_games_ended_early_total") == before + 1


def test_hint_shown_until_card_changes(game_service: GameService, catalog: VocabularyService) -> None:
    catalog.add_words([("Haus", "house"), ("Hund", "dog")])
    game_service.start_game(USER_ID, GameFilter(), catalog)
    session = game_service.get_session(USER_ID)

    assert session.hint_shown is False
    game_service.hint(USER_ID)
    assert session.hint_shown is True

    game_service.skip(USER_ID)
    assert session.hint_shown is False

    game_service.hint(USER_ID)
    game_service.submit_answer(USER_ID, "wrong", catalog)
    assert session.hint_shown is False

def test_unknown_player(game_service: GameService, catalog: VocabularyService) -> None:
    with pytest.raises(ValueError):
        game_service.submit_answer(USER_ID, "apple", catalog)
    with pytest.raises(ValueError):
        game_service.skip(USER_ID)


def test_filter_selection_reaches_catalog(game_service: GameService, catalog: VocabularyService) -> None:
    catalog.add_words([("Blume", "flower")], source="garden")
    catalog.add_words([("Buch", "book")], source="school")

    word = game_service.start_game(
        USER_ID, GameFilter(selection=SelectionType.BY_SOURCE, source="school"), catalog
    )

    assert word.prompt == "Buch"
    assert game_service.progress(USER_ID).total_count == 1


def test_cleanup_inactive(game_service: GameService, catalog: VocabularyService) -> None:
    catalog.add_words([("Haus", "house")])
    game_service.start_game(USER_ID, GameFilter(), catalog)
    game_service.start_game(USER_ID + 1, GameFilter(), catalog)
    game_service.get_session(USER_ID).last_activity = time.time() - 120

    assert game_service.cleanup_inactive() == 1
    assert game_service.has_game(USER_ID) is False
    assert game_service.has_game(USER_ID + 1) is True
