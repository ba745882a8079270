"""Service for managing the permanent vocabulary catalog."""
import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from flashgame.config import settings
from flashgame.models.game_models import (
    Difficulty,
    Direction,
    GameFilter,
    SelectionType,
    Word,
)
from flashgame.models.models import VocabularyWord


logger = logging.getLogger(__name__)

SAMPLE_VOCABULARY = [
    ("Haus", "house", Difficulty.EASY),
    ("Katze", "cat", Difficulty.EASY),
    ("Hund", "dog", Difficulty.EASY),
    ("Buch", "book", Difficulty.EASY),
    ("Apfel", "apple", Difficulty.EASY),
    ("Fenster", "window", Difficulty.MEDIUM),
    ("Straße", "street", Difficulty.MEDIUM),
    ("Blume", "flower", Difficulty.EASY),
    ("Wasser", "water", Difficulty.EASY),
    ("Tisch", "table", Difficulty.EASY),
]


def _pair_key(german: str, english: str) -> str:
    return f"{german.strip().lower()}-{english.strip().lower()}"


def to_game_word(row: VocabularyWord, direction: Direction = Direction.GERMAN_TO_ENGLISH) -> Word:
    """Convert a catalog row into the card shown by the game."""
    if direction is Direction.GERMAN_TO_ENGLISH:
        prompt, answer = row.german, row.english
    else:
        prompt, answer = row.english, row.german
    return Word(
        id=row.id,
        prompt=prompt,
        answer=answer,
        difficulty=Difficulty(row.difficulty),
        source=row.source,
    )


class VocabularyService:
    """Service for managing words in the catalog."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    # Queries

    def get_vocabulary(self) -> List[VocabularyWord]:
        return self.db.query(VocabularyWord).order_by(VocabularyWord.id).all()

    def get_approved_vocabulary(self) -> List[VocabularyWord]:
        return (
            self.db.query(VocabularyWord)
            .filter(VocabularyWord.approved == True)
            .order_by(VocabularyWord.id)
            .all()
        )

    def get_word(self, word_id: int) -> Optional[VocabularyWord]:
        """Get a word by its ID."""
        return self.db.query(VocabularyWord).filter(VocabularyWord.id == word_id).first()

    def get_words_by_ids(self, word_ids: Iterable[int]) -> List[VocabularyWord]:
        word_ids = list(word_ids)
        if not word_ids:
            return []
        return (
            self.db.query(VocabularyWord)
            .filter(VocabularyWord.id.in_(word_ids))
            .order_by(VocabularyWord.id)
            .all()
        )

    def get_vocabulary_by_difficulty(self, difficulty: int) -> List[VocabularyWord]:
        """Approved words with the given difficulty."""
        return (
            self.db.query(VocabularyWord)
            .filter(
                VocabularyWord.approved == True,
                VocabularyWord.difficulty == int(difficulty),
            )
            .order_by(VocabularyWord.id)
            .all()
        )

    def get_vocabulary_by_source(self, source: str, approved_only: bool = False) -> List[VocabularyWord]:
        query = self.db.query(VocabularyWord).filter(VocabularyWord.source == source)
        if approved_only:
            query = query.filter(VocabularyWord.approved == True)
        return query.order_by(VocabularyWord.id).all()

    def get_paginated_vocabulary(
        self,
        page: int = 1,
        page_size: Optional[int] = None,
        search_term: str = "",
        source: Optional[str] = None,
        approved: Optional[bool] = None,
    ) -> Tuple[List[VocabularyWord], int]:
        """Return one page of words matching the search and the total match count."""
        page_size = page_size or settings.catalog.page_size
        page = max(page, 1)

        query = self.db.query(VocabularyWord)
        if search_term:
            query = query.filter(
                or_(
                    VocabularyWord.german.ilike(f"%{search_term}%"),
                    VocabularyWord.english.ilike(f"%{search_term}%"),
                )
            )
        if source:
            query = query.filter(VocabularyWord.source == source)
        if approved is not None:
            query = query.filter(VocabularyWord.approved == approved)

        total_count = query.count()
        words = (
            query.order_by(VocabularyWord.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return words, total_count

    def get_all_sources(self) -> List[str]:
        """Distinct sources in the order they were first added."""
        rows = (
            self.db.query(VocabularyWord.source)
            .filter(VocabularyWord.source.isnot(None))
            .order_by(VocabularyWord.id)
            .all()
        )
        sources: List[str] = []
        for (source,) in rows:
            if source not in sources:
                sources.append(source)
        return sources

    def count_words(self, approved: Optional[bool] = None) -> int:
        query = self.db.query(VocabularyWord)
        if approved is not None:
            query = query.filter(VocabularyWord.approved == approved)
        return query.count()

    def list_approved_words(self, game_filter: Optional[GameFilter] = None) -> List[Word]:
        """Candidate cards for a game, already oriented by the filter's direction."""
        game_filter = game_filter or GameFilter()
        selection = game_filter.selection

        if selection is SelectionType.ALL:
            rows = self.get_approved_vocabulary()
        elif selection is SelectionType.BY_DIFFICULTY:
            if game_filter.difficulty is None:
                raise ValueError("Difficulty selection requires a difficulty")
            rows = self.get_vocabulary_by_difficulty(game_filter.difficulty)
        elif selection is SelectionType.BY_SOURCE:
            if not game_filter.source:
                raise ValueError("Source selection requires a source")
            rows = self.get_vocabulary_by_source(game_filter.source, approved_only=True)
        elif selection is SelectionType.INDIVIDUAL:
            rows = self.get_words_by_ids(game_filter.word_ids)
        else:
            raise ValueError(f"Unknown selection type: {selection}")

        logger.debug(f"Selection {selection.value} returned {len(rows)} words")
        return [to_game_word(row, game_filter.direction) for row in rows]

    # Changes

    def add_word(
        self,
        german: str,
        english: str,
        approved: bool = False,
        source: Optional[str] = None,
    ) -> VocabularyWord:
        """Add a single word to the catalog."""
        word = VocabularyWord(
            german=german.strip(),
            english=english.strip(),
            approved=approved,
            difficulty=int(Difficulty.EASY),
            times_correct=0,
            times_incorrect=0,
            source=source,
        )
        self.db.add(word)
        self.db.commit()
        self.db.refresh(word)
        logger.info(f"Added word {word.id}: {word.german} - {word.english}")
        return word

    def add_words(
        self, pairs: Iterable[Tuple[str, str]], source: Optional[str] = None
    ) -> List[VocabularyWord]:
        """Add many approved words, skipping pairs that already exist."""
        existing = {_pair_key(w.german, w.english) for w in self.get_vocabulary()}

        new_words = []
        for german, english in pairs:
            key = _pair_key(german, english)
            if key in existing:
                logger.debug(f"Skipping duplicate pair {german} - {english}")
                continue
            existing.add(key)
            new_words.append(
                VocabularyWord(
                    german=german.strip(),
                    english=english.strip(),
                    approved=True,
                    difficulty=int(Difficulty.EASY),
                    times_correct=0,
                    times_incorrect=0,
                    source=source,
                )
            )

        self.db.add_all(new_words)
        self.db.commit()
        logger.info(f"Added {len(new_words)} words from source {source}")
        return new_words

    def update_word_approval(self, word_id: int, approved: bool) -> VocabularyWord:
        word = self._get_existing(word_id)
        word.approved = approved
        self.db.commit()
        return word

    def update_word(self, word_id: int, german: str, english: str) -> VocabularyWord:
        word = self._get_existing(word_id)
        word.german = german.strip()
        word.english = english.strip()
        self.db.commit()
        return word

    def delete_word(self, word_id: int) -> bool:
        """Delete a word. Returns False if it did not exist."""
        word = self.get_word(word_id)
        if not word:
            return False
        self.db.delete(word)
        self.db.commit()
        logger.info(f"Deleted word {word_id}")
        return True

    def delete_words_by_source(self, source: str) -> int:
        """Delete every word of a source and return how many were removed."""
        deleted = (
            self.db.query(VocabularyWord)
            .filter(VocabularyWord.source == source)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(f"Deleted {deleted} words from source {source}")
        return deleted

    def update_word_statistics(self, word_id: int, was_correct: bool) -> VocabularyWord:
        """Record a flashcard attempt and re-rate the word's difficulty."""
        word = self._get_existing(word_id)
        if was_correct:
            word.times_correct += 1
        else:
            word.times_incorrect += 1

        total_attempts = word.times_correct + word.times_incorrect
        if total_attempts >= settings.catalog.min_attempts:
            correct_ratio = word.times_correct / total_attempts
            if correct_ratio > settings.catalog.easy_ratio:
                word.difficulty = int(Difficulty.EASY)
            elif correct_ratio > settings.catalog.medium_ratio:
                word.difficulty = int(Difficulty.MEDIUM)
            else:
                word.difficulty = int(Difficulty.HARD)

        self.db.commit()
        return word

    def seed_sample_vocabulary(self) -> int:
        """Insert the starter words into an empty catalog."""
        if self.count_words():
            return 0
        for german, english, difficulty in SAMPLE_VOCABULARY:
            self.db.add(
                VocabularyWord(
                    german=german,
                    english=english,
                    approved=True,
                    difficulty=int(difficulty),
                    times_correct=0,
                    times_incorrect=0,
                )
            )
        self.db.commit()
        logger.info(f"Seeded catalog with {len(SAMPLE_VOCABULARY)} sample words")
        return len(SAMPLE_VOCABULARY)

    def clear_vocabulary(self) -> int:
        deleted = self.db.query(VocabularyWord).delete(synchronize_session=False)
        self.db.commit()
        return deleted

    def _get_existing(self, word_id: int) -> VocabularyWord:
        word = self.get_word(word_id)
        if not word:
            raise ValueError(f"Word {word_id} not found")
        return word
