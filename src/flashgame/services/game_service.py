"""Service for running flashcard games for many players."""
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from flashgame import monitoring
from flashgame.config import settings
from flashgame.models.game_models import (
    GameFilter,
    ProgressSnapshot,
    SessionResult,
    SessionStat,
    Word,
)
from flashgame.services.mastery_tracker import MasteryTracker
from flashgame.services.vocabulary_service import VocabularyService


logger = logging.getLogger(__name__)


def normalize_answer(text: str) -> str:
    return " ".join(text.split()).lower()


def check_answer(given: str, expected: str) -> bool:
    """Typed answers match when equal ignoring case and surrounding spaces."""
    return normalize_answer(given) == normalize_answer(expected)


def make_hint(answer: str) -> str:
    """First letter of each word for phrases, first letter and length otherwise."""
    parts = answer.split()
    if not parts:
        return ""
    if len(parts) > 1:
        return " ".join(f"{part[0]}..." for part in parts)
    return f"{answer[0]}... ({len(answer)} letters)"


@dataclass
class GameSession:
    """One player's running game."""
    tracker: MasteryTracker
    game_filter: GameFilter
    last_activity: float = field(default_factory=time.time)
    just_mastered: Optional[Word] = None
    result: Optional[SessionResult] = None
    hint_shown: bool = False

    def touch(self) -> None:
        self.last_activity = time.time()


@dataclass(frozen=True)
class AnswerResult:
    """Outcome of a typed answer."""
    word: Word
    is_correct: bool
    expected: str
    stat: SessionStat
    mastered: bool
    next_word: Optional[Word]
    result: Optional[SessionResult] = None

    @property
    def completed(self) -> bool:
        return self.result is not None


class GameService:
    """Keeps one mastery tracker per player and feeds answers into the catalog."""

    def __init__(
        self,
        rng_factory: Callable[[], random.Random] = random.Random,
        session_timeout: Optional[int] = None,
    ):
        self.rng_factory = rng_factory
        self.session_timeout = session_timeout or settings.game.session_timeout
        self.sessions: Dict[int, GameSession] = {}

    def start_game(
        self, user_id: int, game_filter: GameFilter, catalog: VocabularyService
    ) -> Optional[Word]:
        """Start a new game. Returns the first card, or None if no words match."""
        self._discard(user_id)

        words = catalog.list_approved_words(game_filter)
        if not words:
            logger.info(f"No words for user {user_id} with filter {game_filter}")
            return None

        tracker = MasteryTracker(
            rng=self.rng_factory(),
            on_mastered=lambda word, stat: self._on_mastered(session, word),
            on_complete=lambda result: self._on_complete(session, result),
        )
        session = GameSession(tracker=tracker, game_filter=game_filter)
        first_word = tracker.initialize(words)
        self.sessions[user_id] = session

        monitoring.games_started.labels(selection=game_filter.selection.value).inc()
        monitoring.active_games.inc()
        logger.info(f"User {user_id} started a game with {len(words)} words")
        return first_word

    def get_session(self, user_id: int) -> GameSession:
        session = self.sessions.get(user_id)
        if session is None:
            raise ValueError(f"No active game for user {user_id}")
        return session

    def has_game(self, user_id: int) -> bool:
        return user_id in self.sessions

    def current_word(self, user_id: int) -> Optional[Word]:
        return self.get_session(user_id).tracker.current_word

    def progress(self, user_id: int) -> ProgressSnapshot:
        return self.get_session(user_id).tracker.progress()

    def submit_answer(self, user_id: int, text: str, catalog: VocabularyService) -> AnswerResult:
        """Check a typed answer against the current card and move on."""
        session = self.get_session(user_id)
        session.touch()
        tracker = session.tracker
        word = tracker.current_word
        if word is None:
            raise ValueError(f"No card on the table for user {user_id}")

        is_correct = check_answer(text, word.answer)
        session.just_mastered = None
        session.hint_shown = False
        stat = tracker.record_answer(word.id, is_correct)
        monitoring.answers.labels(result="correct" if is_correct else "incorrect").inc()

        try:
            catalog.update_word_statistics(word.id, is_correct)
        except ValueError:
            logger.warning(f"Word {word.id} vanished from the catalog during the game")
            tracker.remove_word(word.id)

        next_word = tracker.select_next()
        if next_word is None:
            self._finish(user_id)

        return AnswerResult(
            word=word,
            is_correct=is_correct,
            expected=word.answer,
            stat=stat,
            mastered=session.just_mastered is not None,
            next_word=next_word,
            result=session.result,
        )

    def skip(self, user_id: int) -> Optional[Word]:
        session = self.get_session(user_id)
        session.touch()
        session.hint_shown = False
        next_word = session.tracker.on_skip()
        if next_word is None:
            self._finish(user_id)
        return next_word

    def hint(self, user_id: int) -> str:
        """Hint for the current card. Marks the hint as shown until the card changes."""
        session = self.get_session(user_id)
        word = session.tracker.current_word
        if word is None:
            return ""
        session.hint_shown = True
        return make_hint(word.answer)

    def restart(self, user_id: int) -> Word:
        """Start over with the same words."""
        session = self.get_session(user_id)
        session.touch()
        session.hint_shown = False
        session.result = None
        logger.info(f"User {user_id} restarted the game")
        return session.tracker.reset()

    def end_game(self, user_id: int) -> SessionResult:
        """End the player's game early and forget it."""
        session = self.get_session(user_id)
        was_complete = session.tracker.is_complete
        result = session.tracker.end()
        if not was_complete:
            monitoring.games_ended_early.inc()
        self._finish(user_id)
        return result

    def remove_word(self, word_id: int, catalog: VocabularyService) -> bool:
        """Delete a word from the catalog and from every running game.

        Games left without unmastered words complete. Games whose current
        card was the removed word move on to another card. Returns False if
        the catalog had no such word.
        """
        deleted = catalog.delete_word(word_id)
        if deleted:
            monitoring.words_deleted.inc()

        for user_id, session in list(self.sessions.items()):
            tracker = session.tracker
            if not any(word.id == word_id for word in tracker.words):
                continue
            tracker.remove_word(word_id)
            if tracker.current_word is None:
                session.hint_shown = False
                if tracker.select_next() is None:
                    self._finish(user_id)
            logger.info(f"Removed word {word_id} from the game of user {user_id}")

        return deleted

    def cleanup_inactive(self) -> int:
        """Forget games nobody touched for longer than the session timeout."""
        now = time.time()
        stale = [
            user_id
            for user_id, session in self.sessions.items()
            if now - session.last_activity > self.session_timeout
        ]
        for user_id in stale:
            self._discard(user_id)
            logger.info(f"Cleaned up inactive game for user {user_id}")
        return len(stale)

    def _on_mastered(self, session: GameSession, word: Word) -> None:
        session.just_mastered = word
        monitoring.words_mastered.inc()

    def _on_complete(self, session: GameSession, result: SessionResult) -> None:
        session.result = result
        if result.all_mastered:
            monitoring.games_completed.inc()
        monitoring.session_duration.observe(result.elapsed_seconds)

    def _finish(self, user_id: int) -> None:
        if self.sessions.pop(user_id, None) is not None:
            monitoring.active_games.dec()

    def _discard(self, user_id: int) -> None:
        session = self.sessions.get(user_id)
        if session is not None and not session.tracker.is_complete:
            session.tracker.end()
            monitoring.games_ended_early.inc()
        self._finish(user_id)
