"""Models for game-related data structures."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import List, Optional


class Difficulty(IntEnum):
    """Static difficulty tag of a word."""
    EASY = 1
    MEDIUM = 2
    HARD = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


class Direction(Enum):
    """Which side of the card is shown to the player."""
    GERMAN_TO_ENGLISH = "de_en"
    ENGLISH_TO_GERMAN = "en_de"

    @property
    def label(self) -> str:
        if self is Direction.GERMAN_TO_ENGLISH:
            return "German → English"
        return "English → German"


class SelectionType(Enum):
    """How the candidate words for a game are chosen."""
    ALL = "all"
    BY_DIFFICULTY = "difficulty"
    BY_SOURCE = "source"
    INDIVIDUAL = "individual"


class WordState(Enum):
    """Progress of a single word within a session."""
    NEW = "new"
    IN_PROGRESS = "in_progress"
    MASTERED = "mastered"


class SessionState(Enum):
    """Lifecycle of a game session."""
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Word:
    """A card as seen by the mastery tracker."""
    id: int
    prompt: str
    answer: str
    difficulty: Difficulty = Difficulty.EASY
    source: Optional[str] = None


@dataclass
class SessionStat:
    """Per-word statistics for the current session only."""
    times_correct: int = 0
    times_incorrect: int = 0
    correct_streak: int = 0
    mastered: bool = False

    @property
    def attempts(self) -> int:
        return self.times_correct + self.times_incorrect


@dataclass
class GameFilter:
    """Word selection chosen by the player before a game starts."""
    selection: SelectionType = SelectionType.ALL
    difficulty: Optional[Difficulty] = None
    source: Optional[str] = None
    word_ids: List[int] = field(default_factory=list)
    direction: Direction = Direction.GERMAN_TO_ENGLISH


@dataclass(frozen=True)
class ProgressSnapshot:
    """Read-only view of session progress."""
    answered: int
    correct_count: int
    incorrect_count: int
    mastered_count: int
    total_count: int

    @property
    def percent(self) -> int:
        if not self.total_count:
            return 0
        return round(self.mastered_count / self.total_count * 100)


@dataclass(frozen=True)
class SessionResult:
    """Final statistics reported when a session completes."""
    total_count: int
    mastered_count: int
    correct_count: int
    incorrect_count: int
    skipped_count: int
    started_at: datetime
    ended_at: datetime
    all_mastered: bool

    @property
    def answered(self) -> int:
        return self.correct_count + self.incorrect_count

    @property
    def accuracy(self) -> float:
        """Share of correct answers, 0.0 when nothing was answered."""
        if not self.answered:
            return 0.0
        return self.correct_count / self.answered

    @property
    def elapsed_seconds(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()
