"""Tests for the suggestion API endpoints."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest

from recipe_suggest.models.enums import JobState
from recipe_suggest.models.generation_job import GenerationJob
from recipe_suggest.services.cache_key import quantize
from recipe_suggest.services.cache_matcher import MatchCriteria
from recipe_suggest.services.generation_worker import GenerationWorker
from recipe_suggest.services.job_store import JobStore
from recipe_suggest.services.suggestion_cache import SuggestionCacheStore
from recipe_suggest.services.suggestion_service import SuggestionService
from recipe_suggest.services.translator import Translator

GENERATED = {
    "recipes": [
        {
            "name": "Gà Xào Sả Ớt",
            "usedIngredients": ["chicken", "scallion"],
            "ingredients": [
                {"name": "chicken", "vietnameseName": "Thịt gà", "amount": "500", "unit": "g"},
                {"name": "scallion", "vietnameseName": "Hành lá", "amount": "50", "unit": "g"},
                {"name": "lemongrass", "vietnameseName": "Sả", "amount": "2", "unit": "cây"},
            ],
            "steps": [{"stepNumber": 1, "instruction": "Xào gà với sả", "duration": 15}],
            "cookingTime": 20,
            "servings": 2,
        }
    ]
}

CACHED_SUGGESTION = {
    "name": "Gà Kho Gừng",
    "description": "Gà kho với hành",
    "ingredients": [
        {"canonical_name": "chicken", "display_name": "Thịt gà", "amount": "500", "unit": "g",
         "importance": "required"},
        {"canonical_name": "scallion", "display_name": "Hành lá", "amount": "30", "unit": "g",
         "importance": "required"},
    ],
    "used_ingredients": ["chicken", "scallion"],
    "steps": [{"step_number": 1, "instruction": "Kho gà", "duration_minutes": 20}],
    "cooking_time_minutes": 20,
    "difficulty": "easy",
    "servings": 2,
    "nutrition_per_serving": {"calories": 420, "protein": 78, "carbs": 1, "fat": 9, "fiber": 0},
}


@pytest.fixture
def enqueue():
    """Capture generation jobs instead of sending them to the broker."""
    with patch("recipe_suggest.tasks.generation.generate_suggestion.delay") as mock_delay:
        yield mock_delay


def store_chicken_scallion(db, max_time=30):
    criteria = MatchCriteria(
        ingredients=["chicken", "scallion"], settings=quantize(2, None, max_time)
    )
    SuggestionCacheStore(db).put(
        criteria.cache_key,
        [CACHED_SUGGESTION],
        criteria.to_request_settings(),
        ["chicken", "scallion"],
    )
    return criteria.cache_key


def test_exact_cache_hit(client, auth_headers, db, seeded_dictionary, enqueue):
    """Test a cached request is answered immediately."""
    key = store_chicken_scallion(db)

    response = client.post(
        "/api/v1/suggestions",
        json={"ingredients": ["Thịt gà", "hành lá"], "servings": 2, "max_cooking_time": 30},
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed"
    assert data["cache_hit"] is True
    assert data["match_type"] == "exact"
    assert data["cache_key"] == key
    assert data["match_score"] == 130
    assert data["suggestions"][0]["name"] == "Gà Kho Gừng"
    assert data["job_id"] is None
    assert [t["canonical_english"] for t in data["translations"]] == ["chicken", "scallion"]
    assert data["rate_limit"]["remaining"] == 4
    assert response.headers["X-RateLimit-Limit"] == "5"
    assert response.headers["X-RateLimit-Remaining"] == "4"
    assert "Retry-After" not in response.headers
    enqueue.assert_not_called()


def test_cache_hit_respects_time_limit(client, auth_headers, db, seeded_dictionary, enqueue):
    """Test cached suggestions over the time limit are not served."""
    store_chicken_scallion(db, max_time=30)

    response = client.post(
        "/api/v1/suggestions",
        json={"ingredients": ["Thịt gà", "Hành lá"], "max_cooking_time": 15},
        headers=auth_headers,
    )

    assert response.status_code == 202
    enqueue.assert_called_once()


def test_miss_queues_job_then_worker_fills_cache(
    client, auth_headers, db, seeded_dictionary, enqueue
):
    """Test the full miss, generate, then hit cycle."""
    response = client.post(
        "/api/v1/suggestions",
        json={"ingredients": ["Thịt gà, Hành lá"]},
        headers=auth_headers,
    )

    assert response.status_code == 202
    data = response.json()
    assert data["status"] == "pending"
    assert data["cache_hit"] is False
    assert data["estimated_seconds"] == 30
    job_id = data["job_id"]

    message = enqueue.call_args.args[0]
    assert message["job_id"] == job_id
    assert message["user_id"] == "user-1"
    assert message["ingredients"] == ["chicken", "scallion"]
    assert [t["original"] for t in message["translations"]] == ["Thịt gà", "Hành lá"]
    assert [t["canonical"] for t in message["translations"]] == ["chicken", "scallion"]
    assert message["cache_key"] == "chicken|scallion|s2|none|t30"

    pending = client.get(f"/api/v1/suggestions/jobs/{job_id}", headers=auth_headers)
    assert pending.status_code == 200
    assert pending.json()["status"] == "pending"

    worker_llm = AsyncMock()
    worker_llm.generate.return_value = json.dumps(GENERATED)
    worker_llm.generate_json.return_value = {"calories": 20, "protein": 1, "carbs": 4, "fat": 0}
    result = asyncio.run(GenerationWorker(db, llm_service=worker_llm).process(message))
    assert result["success"] is True

    done = client.get(f"/api/v1/suggestions/jobs/{job_id}", headers=auth_headers)
    assert done.status_code == 200
    job = done.json()
    assert job["status"] == "completed"
    assert job["result"][0]["name"] == "Gà Xào Sả Ớt"
    assert job["completed_at"] is not None

    again = client.post(
        "/api/v1/suggestions",
        json={"ingredients": ["Thịt gà", "Hành lá"]},
        headers=auth_headers,
    )
    assert again.status_code == 200
    hit = again.json()
    assert hit["cache_hit"] is True
    assert hit["match_type"] == "partial"
    assert hit["cache_key"] == result["cache_key"]
    assert hit["rate_limit"]["remaining"] == 3
    assert enqueue.call_count == 1


def test_daily_limit(client, auth_headers, seeded_dictionary, enqueue):
    """Test the sixth request of the day is rejected."""
    for _ in range(5):
        response = client.post(
            "/api/v1/suggestions", json={"ingredients": ["Tỏi"]}, headers=auth_headers
        )
        assert response.status_code == 202

    response = client.post(
        "/api/v1/suggestions", json={"ingredients": ["Tỏi"]}, headers=auth_headers
    )

    assert response.status_code == 429
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert int(response.headers["Retry-After"]) >= 0
    body = response.json()
    assert body["rate_limit"]["current_count"] == 5
    assert body["rate_limit"]["remaining"] == 0
    assert enqueue.call_count == 5


def test_limit_is_per_user(client, auth_headers, other_auth_headers, seeded_dictionary, enqueue):
    """Test one user's usage does not count against another."""
    for _ in range(5):
        client.post("/api/v1/suggestions", json={"ingredients": ["Tỏi"]}, headers=auth_headers)

    response = client.post(
        "/api/v1/suggestions", json={"ingredients": ["Tỏi"]}, headers=other_auth_headers
    )

    assert response.status_code == 202
    assert response.json()["rate_limit"]["remaining"] == 4


def test_empty_ingredients_rejected_without_charge(client, auth_headers, enqueue):
    """Test empty input is a 400 and does not use quota."""
    response = client.post(
        "/api/v1/suggestions", json={"ingredients": [" ", ","]}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.headers["X-RateLimit-Limit"] == "5"
    assert response.headers["X-RateLimit-Remaining"] == "5"
    assert "X-RateLimit-Reset" in response.headers
    assert response.json()["rate_limit"]["current_count"] == 0
    usage = client.get("/api/v1/suggestions/usage", headers=auth_headers)
    assert usage.json()["rate_limit"]["current_count"] == 0


def test_unrecognized_ingredients_rejected_without_charge(client, auth_headers, enqueue):
    """Test input where nothing translates is a 400 listing the failures."""
    response = client.post(
        "/api/v1/suggestions", json={"ingredients": ["bàn ghế"]}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.headers["X-RateLimit-Remaining"] == "5"
    assert response.json()["rate_limit"]["remaining"] == 5
    assert response.json()["failed_ingredients"] == ["bàn ghế"]
    usage = client.get("/api/v1/suggestions/usage", headers=auth_headers)
    assert usage.json()["rate_limit"]["remaining"] == 5
    enqueue.assert_not_called()


def test_partially_recognized_ingredients(client, auth_headers, seeded_dictionary, enqueue):
    """Test unknown ingredients are dropped and reported."""
    response = client.post(
        "/api/v1/suggestions",
        json={"ingredients": ["Tỏi", "bàn ghế"]},
        headers=auth_headers,
    )

    assert response.status_code == 202
    assert response.json()["failed_ingredients"] == ["bàn ghế"]
    assert enqueue.call_args.args[0]["ingredients"] == ["garlic"]


def test_invalid_settings_rejected(client, auth_headers):
    """Test out-of-range settings fail request validation."""
    response = client.post(
        "/api/v1/suggestions",
        json={"ingredients": ["Tỏi"], "servings": 0},
        headers=auth_headers,
    )
    assert response.status_code == 422


def test_job_not_found(client, auth_headers):
    """Test polling an unknown job."""
    response = client.get("/api/v1/suggestions/jobs/missing", headers=auth_headers)
    assert response.status_code == 404


def test_job_of_other_user_forbidden(client, db, auth_headers, other_auth_headers):
    """Test users cannot poll each other's jobs."""
    job = JobStore(db).create(auth_headers.user_id, "garlic|s2|none|t30")

    response = client.get(f"/api/v1/suggestions/jobs/{job.job_id}", headers=other_auth_headers)

    assert response.status_code == 403


def test_processing_job_polls_as_pending(client, db, auth_headers):
    """Test the worker's in-progress state is reported as pending."""
    jobs = JobStore(db)
    job = jobs.create(auth_headers.user_id, "garlic|s2|none|t30")
    jobs.mark_processing(job)

    response = client.get(f"/api/v1/suggestions/jobs/{job.job_id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "pending"


def test_usage(client, auth_headers):
    """Test the usage endpoint reports a fresh quota."""
    response = client.get("/api/v1/suggestions/usage", headers=auth_headers)

    assert response.status_code == 200
    quota = response.json()["rate_limit"]
    assert quota["limit"] == 5
    assert quota["remaining"] == 5
    assert response.headers["X-RateLimit-Remaining"] == "5"


def test_invalid_token_rejected(client):
    """Test requests with a bad token are unauthorized."""
    response = client.get(
        "/api/v1/suggestions/usage", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_enqueue_failure_fails_job(db, seeded_dictionary, mock_llm):
    """Test a job that cannot be queued is marked failed."""

    def broken_broker(message):
        raise ConnectionError("broker down")

    service = SuggestionService(db, translator=Translator(db, mock_llm), enqueue=broken_broker)

    with pytest.raises(ConnectionError):
        await service.suggest("user-1", ["Tỏi"])

    job = db.query(GenerationJob).one()
    assert job.status == JobState.FAILED
    assert "broker down" in job.error
