"""Database models for the vocabulary catalog."""
from sqlalchemy import Boolean, Column, Integer, String

from flashgame.models.base import Base, TimestampMixin


class VocabularyWord(Base, TimestampMixin):
    """A German/English pair stored in the permanent catalog."""

    __tablename__ = "vocabulary_words"

    id = Column(Integer, primary_key=True, index=True)
    german = Column(String, nullable=False)
    english = Column(String, nullable=False)
    approved = Column(Boolean, default=False, nullable=False)
    difficulty = Column(Integer, default=1, nullable=False)  # 1-easy, 2-medium, 3-hard
    times_correct = Column(Integer, default=0, nullable=False)
    times_incorrect = Column(Integer, default=0, nullable=False)
    source = Column(String, nullable=True, index=True)  # file or list the word came from

    def __repr__(self) -> str:
        return f"<VocabularyWord {self.id} {self.german!r}={self.english!r}>"
