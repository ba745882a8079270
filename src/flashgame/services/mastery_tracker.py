"""Session-scoped mastery tracking for the flashcard game."""
import logging
import random
from datetime import datetime, UTC
from typing import Callable, Dict, List, Optional, Set

from flashgame.config import MASTERY_STREAK, MASTERY_STREAK_AFTER_MISTAKE
from flashgame.models.game_models import (
    ProgressSnapshot,
    SessionResult,
    SessionStat,
    SessionState,
    Word,
    WordState,
)


logger = logging.getLogger(__name__)


class TrackerError(Exception):
    """Base class for misuse of the mastery tracker."""


class TrackerNotInitializedError(TrackerError):
    """The tracker was used before initialize()."""


class EmptyWordSetError(TrackerError):
    """initialize() was called without any words."""


class DuplicateWordError(TrackerError):
    """initialize() was called with repeated word ids."""


class UnknownWordError(TrackerError):
    """A word id that is not part of the session was referenced."""


class SessionCompleteError(TrackerError):
    """An answer was recorded after the session finished."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MasteryTracker:
    """Tracks per-word streaks and picks the next word until all are mastered.

    A word is mastered when its correct streak reaches ``MASTERY_STREAK``,
    or ``MASTERY_STREAK_AFTER_MISTAKE`` once it has been answered wrongly in
    this session. Mastery never reverts. Statistics live only as long as the
    tracker does.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utcnow,
        on_mastered: Optional[Callable[[Word, SessionStat], None]] = None,
        on_complete: Optional[Callable[[SessionResult], None]] = None,
    ):
        self.rng = rng or random.Random()
        self.clock = clock
        self.on_mastered = on_mastered
        self.on_complete = on_complete

        self._state = SessionState.NOT_STARTED
        self._words: List[Word] = []
        self._by_id: Dict[int, Word] = {}
        self._unmastered: List[Word] = []
        self._stats: Dict[int, SessionStat] = {}
        self._mastered_ids: Set[int] = set()
        self._current: Optional[Word] = None
        self._correct_count = 0
        self._incorrect_count = 0
        self._skipped_count = 0
        self._started_at: Optional[datetime] = None
        self._ended_at: Optional[datetime] = None

    # Read-only state

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_word(self) -> Optional[Word]:
        return self._current

    @property
    def words(self) -> List[Word]:
        return list(self._words)

    @property
    def unmastered_words(self) -> List[Word]:
        return list(self._unmastered)

    @property
    def mastered_ids(self) -> Set[int]:
        return set(self._mastered_ids)

    @property
    def is_complete(self) -> bool:
        return self._state is SessionState.COMPLETE

    def threshold_for(self, stat: SessionStat) -> int:
        """Streak needed to master a word with the given statistics."""
        if stat.times_incorrect > 0:
            return MASTERY_STREAK_AFTER_MISTAKE
        return MASTERY_STREAK

    def get_stat(self, word_id: int) -> Optional[SessionStat]:
        """Statistics of a word, None until it has been answered."""
        self._require_initialized()
        self._require_known(word_id)
        return self._stats.get(word_id)

    def word_state(self, word_id: int) -> WordState:
        self._require_initialized()
        self._require_known(word_id)
        stat = self._stats.get(word_id)
        if stat is None:
            return WordState.NEW
        if stat.mastered:
            return WordState.MASTERED
        return WordState.IN_PROGRESS

    def progress(self) -> ProgressSnapshot:
        self._require_initialized()
        return ProgressSnapshot(
            answered=self._correct_count + self._incorrect_count,
            correct_count=self._correct_count,
            incorrect_count=self._incorrect_count,
            mastered_count=len(self._mastered_ids),
            total_count=len(self._words),
        )

    def result(self) -> SessionResult:
        self._require_initialized()
        return SessionResult(
            total_count=len(self._words),
            mastered_count=len(self._mastered_ids),
            correct_count=self._correct_count,
            incorrect_count=self._incorrect_count,
            skipped_count=self._skipped_count,
            started_at=self._started_at,
            ended_at=self._ended_at or self.clock(),
            all_mastered=bool(self._words) and not self._unmastered,
        )

    # Lifecycle

    def initialize(self, words: List[Word]) -> Word:
        """Start a fresh session over ``words`` and return the first card."""
        words = list(words)
        if not words:
            raise EmptyWordSetError("Cannot start a session without words")

        by_id: Dict[int, Word] = {}
        for word in words:
            if word.id in by_id:
                raise DuplicateWordError(f"Word {word.id} appears more than once")
            by_id[word.id] = word

        self._words = words
        self._by_id = by_id
        self._unmastered = list(words)
        self._stats = {}
        self._mastered_ids = set()
        self._correct_count = 0
        self._incorrect_count = 0
        self._skipped_count = 0
        self._started_at = self.clock()
        self._ended_at = None
        self._state = SessionState.ACTIVE
        self._current = self.rng.choice(self._unmastered)
        logger.debug(f"Session initialized with {len(words)} words, first word {self._current.id}")
        return self._current

    def reset(self) -> Word:
        """Restart with the same words, dropping all statistics."""
        self._require_initialized()
        logger.debug("Resetting session")
        return self.initialize(self._words)

    def end(self) -> SessionResult:
        """End the session early. Returns the final result."""
        self._require_initialized()
        if self._state is not SessionState.COMPLETE:
            logger.debug("Session ended by the player")
            self._complete()
        return self.result()

    # Answers and selection

    def record_answer(self, word_id: int, was_correct: bool) -> SessionStat:
        """Update the statistics of ``word_id`` with one answer."""
        self._require_initialized()
        word = self._require_known(word_id)
        if self._state is SessionState.COMPLETE:
            raise SessionCompleteError("Session is already complete")

        stat = self._stats.setdefault(word_id, SessionStat())
        if was_correct:
            stat.times_correct += 1
            stat.correct_streak += 1
        else:
            stat.times_incorrect += 1
            stat.correct_streak = 0

        threshold = self.threshold_for(stat)
        if not stat.mastered and stat.correct_streak >= threshold:
            stat.mastered = True
            self._mastered_ids.add(word_id)
            self._unmastered = [w for w in self._unmastered if w.id != word_id]
            logger.debug(f"Word {word_id} mastered with streak {stat.correct_streak}/{threshold}")
            if self.on_mastered:
                self.on_mastered(word, stat)

        if was_correct:
            self._correct_count += 1
        else:
            self._incorrect_count += 1
        return stat

    def select_next(self) -> Optional[Word]:
        """Pick the next card at random, or None once every word is mastered."""
        self._require_initialized()
        if self._state is SessionState.COMPLETE:
            return None
        if not self._unmastered:
            self._complete()
            return None
        self._current = self.rng.choice(self._unmastered)
        return self._current

    def on_correct(self, word_id: int) -> Optional[Word]:
        self.record_answer(word_id, True)
        return self.select_next()

    def on_incorrect(self, word_id: int) -> Optional[Word]:
        self.record_answer(word_id, False)
        return self.select_next()

    def on_skip(self) -> Optional[Word]:
        """Move on without answering the current card."""
        self._require_initialized()
        if self._state is SessionState.ACTIVE:
            self._skipped_count += 1
        return self.select_next()

    def remove_word(self, word_id: int) -> None:
        """Drop a word that disappeared from the catalog mid-session."""
        self._require_initialized()
        word = self._require_known(word_id)
        self._words.remove(word)
        del self._by_id[word_id]
        self._stats.pop(word_id, None)
        self._mastered_ids.discard(word_id)
        self._unmastered = [w for w in self._unmastered if w.id != word_id]
        if self._current is not None and self._current.id == word_id:
            self._current = None
        logger.debug(f"Word {word_id} removed from session, {len(self._unmastered)} left")
        if not self._unmastered and self._state is SessionState.ACTIVE:
            self._complete()

    # Internals

    def _complete(self) -> None:
        self._state = SessionState.COMPLETE
        self._ended_at = self.clock()
        self._current = None
        result = self.result()
        logger.info(
            f"Session complete: {result.mastered_count}/{result.total_count} mastered, "
            f"{result.correct_count} correct, {result.incorrect_count} incorrect"
        )
        if self.on_complete:
            self.on_complete(result)

    def _require_initialized(self) -> None:
        if self._state is SessionState.NOT_STARTED:
            raise TrackerNotInitializedError("Tracker used before initialize()")

    def _require_known(self, word_id: int) -> Word:
        word = self._by_id.get(word_id)
        if word is None:
            raise UnknownWordError(f"Word {word_id} is not part of this session")
        return word
