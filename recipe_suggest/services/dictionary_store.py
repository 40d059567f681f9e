"""Permanent ingredient dictionary."""

import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from recipe_suggest.database import store_operation
from recipe_suggest.exceptions import DuplicateEntry, ValidationError
from recipe_suggest.models.dictionary_entry import DictionaryEntry
from recipe_suggest.models.enums import EntrySource
from recipe_suggest.services.normalizer import normalize, slugify_english

logger = logging.getLogger(__name__)


class DictionaryStore:
    """Lookups and curated additions for the permanent dictionary."""

    def __init__(self, db: Session):
        self.db = db

    @store_operation
    def get(self, normalized: str) -> DictionaryEntry | None:
        """Get an entry by its normalized source text."""
        return (
            self.db.query(DictionaryEntry)
            .filter(DictionaryEntry.normalized_source == normalized)
            .first()
        )

    @store_operation
    def get_by_english(self, canonical_english: str) -> DictionaryEntry | None:
        """Reverse lookup by canonical English name."""
        return (
            self.db.query(DictionaryEntry)
            .filter(DictionaryEntry.canonical_english == canonical_english)
            .order_by(DictionaryEntry.id)
            .first()
        )

    @store_operation
    def add(
        self,
        source_text: str,
        canonical_english: str,
        category: str = "other",
        general_form: str | None = None,
        nutrition_per_100g: dict | None = None,
        added_by: EntrySource = EntrySource.ADMIN,
    ) -> DictionaryEntry:
        """Add a curated entry.

        Raises:
            DuplicateEntry: if the normalized source or English name is taken
        """
        normalized = normalize(source_text)
        english = slugify_english(canonical_english)
        if not normalized or not english:
            raise ValidationError("Source text and English name must contain letters or digits")

        existing = (
            self.db.query(DictionaryEntry)
            .filter(
                or_(
                    DictionaryEntry.normalized_source == normalized,
                    DictionaryEntry.canonical_english == english,
                )
            )
            .first()
        )
        if existing:
            raise DuplicateEntry(
                f"Dictionary already contains '{existing.source_text}' -> "
                f"'{existing.canonical_english}'"
            )

        entry = DictionaryEntry(
            normalized_source=normalized,
            source_text=source_text.strip(),
            canonical_english=english,
            general_form=general_form or english,
            category=category,
            nutrition_per_100g=nutrition_per_100g,
            added_by=added_by.value,
        )
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateEntry(f"Dictionary already contains '{normalized}'") from e
        self.db.refresh(entry)
        logger.info(f"Added dictionary entry '{normalized}' -> '{english}' ({added_by})")
        return entry
