"""Word source for classic games and the player suggestion workflow."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from impostor.models import Category, Word

logger = logging.getLogger(__name__)

MIN_SUGGESTION_LENGTH = 2


class WordSourceError(Exception):
    """The word store could not be reached; the requested action had no effect."""


@dataclass(frozen=True)
class WordResult:
    id: int
    word: str
    category_id: str
    category_name: str


@dataclass(frozen=True)
class SuggestionResult:
    success: bool
    already_exists: bool = False


class WordSource:
    def get_random_word(self, category: Optional[str] = None, language: Optional[str] = None) -> Optional[WordResult]:
        raise NotImplementedError


class SqlWordSource(WordSource):
    def __init__(self, db):
        self.db = db

    def _run(self, fn):
        try:
            return fn()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            logger.exception('[word-source] query failed')
            raise WordSourceError(str(exc)) from exc

    def get_random_word(self, category=None, language=None):
        def query():
            stmt = select(Word, Category).join(Category, Word.category_id == Category.id).where(Word.approved.is_(True))
            if category:
                stmt = stmt.where(Category.slug == category)
            if language:
                stmt = stmt.where(Word.language == language)
            row = self.db.session.execute(stmt.order_by(func.random()).limit(1)).first()
            if row is None:
                return None
            word, cat = row
            return WordResult(id=word.id, word=word.word, category_id=cat.slug, category_name=cat.name)
        return self._run(query)

    def categories(self) -> List[dict]:
        return self._run(lambda: [c.to_dict() for c in Category.query.order_by(Category.name).all()])

    def suggest_word(self, word, category_id, suggested_by, language) -> SuggestionResult:
        normalized = (word or '').strip().lower()
        if len(normalized) < MIN_SUGGESTION_LENGTH:
            return SuggestionResult(success=False)

        def store():
            category = Category.query.filter_by(slug=category_id).first()
            if category is None:
                return SuggestionResult(success=False)
            exists = Word.query.filter_by(category_id=category.id, word=normalized).first()
            if exists:
                return SuggestionResult(success=False, already_exists=True)
            self.db.session.add(Word(
                word=normalized,
                category_id=category.id,
                language=language,
                approved=False,
                suggested_by=suggested_by,
            ))
            self.db.session.commit()
            logger.info(f"[word-suggested] word={normalized} category={category_id} by={suggested_by}")
            return SuggestionResult(success=True)
        return self._run(store)

    def pending_suggestions(self) -> List[dict]:
        return self._run(
            lambda: [w.to_dict() for w in Word.query.filter_by(approved=False).order_by(Word.created_at).all()]
        )

    def review(self, word_id, approve) -> bool:
        """Approve a suggestion, or reject (delete) it."""
        def apply():
            word = self.db.session.get(Word, word_id)
            if word is None or word.approved:
                return False
            if approve:
                word.approved = True
            else:
                self.db.session.delete(word)
            self.db.session.commit()
            logger.info(f"[word-reviewed] id={word_id} approved={bool(approve)}")
            return True
        return self._run(apply)
