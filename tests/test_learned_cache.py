"""Tests for the learned translation cache and promotion."""

from datetime import timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from recipe_suggest.models.dictionary_entry import DictionaryEntry
from recipe_suggest.models.learned_cache_entry import LearnedCacheEntry
from recipe_suggest.models.mixins import utcnow
from recipe_suggest.services.dictionary_store import DictionaryStore
from recipe_suggest.services.learned_cache import LearnedCacheStore


def create_entry(store, normalized="la-lot", english="betel-leaf", now=None):
    return store.create_if_absent(
        normalized=normalized,
        source_text="Lá lốt",
        canonical_english=english,
        category="vegetable",
        nutrition_per_100g={"calories": 39, "protein": 4.3, "carbs": 6.5, "fat": 0.6, "fiber": 2},
        now=now,
    )


def test_create_if_absent(db):
    """Test the first creation wins and later ones are ignored."""
    store = LearnedCacheStore(db)

    assert create_entry(store) is True
    assert create_entry(store, english="something-else") is False

    entry = store.get("la-lot")
    assert entry.canonical_english == "betel-leaf"
    assert entry.usage_count == 1
    assert entry.added_by == "ai"


def test_entries_expire_after_a_year(db):
    """Test entries older than the TTL are treated as absent."""
    store = LearnedCacheStore(db)
    create_entry(store, now=utcnow() - timedelta(days=366))

    assert store.get("la-lot") is None
    assert store.get_by_english("betel-leaf") is None
    assert store.record_usage("la-lot") is None
    assert store.purge_expired() == 1


def test_record_usage_increments(db):
    """Test usage bumps the counter."""
    store = LearnedCacheStore(db)
    create_entry(store)

    assert store.record_usage("la-lot") == 2
    assert store.record_usage("la-lot") == 3
    assert store.get("la-lot").usage_count == 3


def test_record_usage_unknown_entry(db):
    """Test usage of a missing entry is a no-op."""
    assert LearnedCacheStore(db).record_usage("khong-co") is None


def test_promotion_at_exactly_threshold(db):
    """Test the 100th use moves the entry into the dictionary."""
    store = LearnedCacheStore(db)
    create_entry(store)
    db.query(LearnedCacheEntry).update({LearnedCacheEntry.usage_count: 98})
    db.commit()

    assert store.record_usage("la-lot") == 99
    assert store.get("la-lot") is not None
    assert DictionaryStore(db).get("la-lot") is None

    assert store.record_usage("la-lot") == 100
    assert store.get("la-lot") is None

    promoted = DictionaryStore(db).get("la-lot")
    assert promoted is not None
    assert promoted.added_by == "promoted"
    assert promoted.canonical_english == "betel-leaf"
    assert promoted.usage_count == 100
    assert promoted.nutrition_per_100g["calories"] == 39


def test_promotion_conflict_is_swallowed(db):
    """Test promotion is skipped when the dictionary already has the entry."""
    DictionaryStore(db).add("Lá lốt", "betel-leaf", category="vegetable")
    store = LearnedCacheStore(db)
    create_entry(store)
    db.query(LearnedCacheEntry).update({LearnedCacheEntry.usage_count: 99})
    db.commit()

    assert store.record_usage("la-lot") == 100
    assert db.query(DictionaryEntry).count() == 1
    assert db.query(DictionaryEntry).one().added_by == "admin"


def test_read_error_after_usage_bump_counts_once(db):
    """Test a transient failure after the bump commits does not bump again."""
    store = LearnedCacheStore(db)
    create_entry(store)

    real_query = db.query
    real_bump = store._bump
    pending_failures = []

    def flaky_query(*args, **kwargs):
        if pending_failures:
            pending_failures.pop()
            raise OperationalError("SELECT", {}, Exception("connection reset"))
        return real_query(*args, **kwargs)

    def bump_then_drop_connection(normalized, now):
        result = real_bump(normalized, now)
        pending_failures.append(True)
        return result

    with patch.object(db, "query", side_effect=flaky_query), patch.object(
        store, "_bump", side_effect=bump_then_drop_connection
    ):
        assert store.record_usage("la-lot") == 2

    assert store.get("la-lot").usage_count == 2
