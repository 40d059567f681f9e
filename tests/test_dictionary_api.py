"""Tests for the dictionary admin endpoint."""

from recipe_suggest.services.dictionary_store import DictionaryStore


def test_add_entry(client, auth_headers, db):
    """Test adding a curated translation."""
    response = client.post(
        "/api/v1/dictionary",
        json={
            "source_text": "Rau muống",
            "canonical_english": "water-spinach",
            "category": "vegetable",
            "nutrition_per_100g": {"calories": 19, "protein": 2.6, "carbs": 3.1, "fat": 0.2},
        },
        headers=auth_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["normalized_source"] == "rau-muong"
    assert data["canonical_english"] == "water-spinach"
    assert data["added_by"] == "admin"
    assert data["usage_count"] == 0
    assert data["nutrition_per_100g"]["calories"] == 19

    assert DictionaryStore(db).get("rau-muong") is not None


def test_add_entry_used_by_lookup(client, auth_headers):
    """Test new entries are served by the dictionary tier."""
    client.post(
        "/api/v1/dictionary",
        json={"source_text": "Rau muống", "canonical_english": "water-spinach"},
        headers=auth_headers,
    )

    response = client.post(
        "/api/v1/ingredients/lookup", json={"ingredients": ["rau muong"]}, headers=auth_headers
    )

    result = response.json()["results"][0]
    assert result["canonical_english"] == "water-spinach"
    assert result["source"] == "dictionary"


def test_duplicate_source_rejected(client, auth_headers, seeded_dictionary):
    """Test the same source text cannot be added twice."""
    response = client.post(
        "/api/v1/dictionary",
        json={"source_text": "thit ga", "canonical_english": "poultry"},
        headers=auth_headers,
    )
    assert response.status_code == 409


def test_duplicate_english_rejected(client, auth_headers, seeded_dictionary):
    """Test the same English term cannot be added twice."""
    response = client.post(
        "/api/v1/dictionary",
        json={"source_text": "Gà ta", "canonical_english": "chicken"},
        headers=auth_headers,
    )
    assert response.status_code == 409


def test_requires_auth(client):
    """Test the endpoint rejects anonymous callers."""
    response = client.post(
        "/api/v1/dictionary",
        json={"source_text": "Rau muống", "canonical_english": "water-spinach"},
    )
    assert response.status_code in (401, 403)
