"""Tests for typed persistence over a key-value store."""

import json
import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from src.storage.key_value_store import InMemoryStore
from src.storage.persistence import (
    MAX_FEEDBACK,
    MAX_HISTORY,
    STORAGE_KEYS,
    DataPersistence,
    generate_data_hash,
)

T0 = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock for expiry tests."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def persistence(clock):
    return DataPersistence(InMemoryStore(), clock=clock)


class TestSelectionHistory:
    """Tests for the capped selection history."""

    def test_append_stamps_timestamp(self, persistence):
        assert persistence.save_selection_history({"food_id": "congee"}) is True

        history = persistence.get_selection_history()
        assert history == [{"food_id": "congee", "timestamp": T0.isoformat()}]

    def test_existing_timestamp_kept(self, persistence):
        persistence.save_selection_history({"food_id": "a", "timestamp": "2020-01-01T00:00:00"})
        assert persistence.get_selection_history()[0]["timestamp"] == "2020-01-01T00:00:00"

    def test_history_capped_keeping_most_recent(self, persistence):
        for i in range(MAX_HISTORY + 1):
            persistence.save_selection_history({"n": i})

        history = persistence.get_selection_history()
        assert len(history) == 500
        assert history[0]["n"] == 1
        assert history[-1]["n"] == 500

    def test_empty_history(self, persistence):
        assert persistence.get_selection_history() == []

    def test_corrupted_history_reads_as_empty(self, persistence):
        persistence.store.set(STORAGE_KEYS["USER_HISTORY"], "not json")
        assert persistence.get_selection_history() == []


class TestFeedback:
    """Tests for the capped feedback list."""

    def test_feedback_gets_id_and_timestamp(self, persistence):
        persistence.save_feedback({"food_id": "a", "liked": True})
        entry = persistence.get_feedback_data()[0]

        assert entry["food_id"] == "a"
        assert entry["timestamp"] == T0.isoformat()
        assert len(entry["id"]) > 10

    def test_feedback_capped(self, persistence):
        for i in range(MAX_FEEDBACK + 5):
            persistence.save_feedback({"n": i})

        feedback = persistence.get_feedback_data()
        assert len(feedback) == 200
        assert feedback[0]["n"] == 5


class TestPreferencesAndSettings:
    """Tests for single-value buckets."""

    def test_preferences_get_last_updated(self, persistence):
        persistence.save_preferences({"spicy": True})
        assert persistence.get_preferences() == {"spicy": True, "lastUpdated": T0.isoformat()}

    def test_settings_round_trip(self, persistence):
        persistence.save_settings({"theme": "dark"})
        assert persistence.get_settings() == {"theme": "dark"}

    def test_absent_values_are_none(self, persistence):
        assert persistence.get_preferences() is None
        assert persistence.get_settings() is None


class TestModelCache:
    """Tests for the generic 7-day model cache."""

    def test_cache_envelope(self, persistence):
        persistence.cache_model({"base_scores": {"a": 0.5}}, "2.0")
        cached = persistence.get_cached_model()

        assert cached["model"] == {"base_scores": {"a": 0.5}}
        assert cached["version"] == "2.0"
        assert cached["cachedAt"] == T0.isoformat()
        assert cached["hash"] == generate_data_hash('{"base_scores": {"a": 0.5}}')

    def test_cache_expires_after_seven_days(self, persistence, clock):
        persistence.cache_model({"x": 1})

        clock.now = T0 + timedelta(days=7)
        assert persistence.get_cached_model() is not None

        clock.now = T0 + timedelta(days=7, seconds=1)
        assert persistence.get_cached_model() is None
        assert persistence.store.get(STORAGE_KEYS["MODEL_CACHE"]) is None

    def test_clear_model_cache(self, persistence):
        persistence.cache_model({"x": 1})
        persistence.clear_model_cache()
        assert persistence.get_cached_model() is None


class TestDataHash:
    """Tests for the 32-bit string hash."""

    def test_known_values(self):
        assert generate_data_hash("") == "0"
        assert generate_data_hash("a") == "61"
        # 97 * 31 + 98 = 3105
        assert generate_data_hash("ab") == format(3105, "x")

    def test_overflow_wraps_to_signed(self):
        value = generate_data_hash("the quick brown fox jumps over the lazy dog")
        assert value.lstrip("-") == value.lstrip("-").lower()
        assert len(value.lstrip("-")) <= 8


class TestExportImport:
    """Tests for export, import and housekeeping."""

    def test_export_contains_every_bucket(self, persistence):
        persistence.save_selection_history({"food_id": "a"})
        persistence.save_settings({"theme": "dark"})

        exported = json.loads(persistence.export_all_data())
        assert exported["version"] == "1.0"
        assert exported["exportDate"] == T0.isoformat()
        assert len(exported["history"]) == 1
        assert exported["preferences"] is None
        assert exported["settings"] == {"theme": "dark"}
        assert exported["feedback"] == []

    def test_import_into_fresh_store(self, persistence, clock):
        persistence.save_selection_history({"food_id": "a"})
        persistence.save_feedback({"food_id": "a", "liked": False})
        exported = persistence.export_all_data()

        other = DataPersistence(InMemoryStore(), clock=clock)
        assert other.import_data(exported) is True
        assert other.get_selection_history() == persistence.get_selection_history()
        assert other.get_feedback_data() == persistence.get_feedback_data()

    def test_import_leaves_absent_buckets(self, persistence):
        persistence.save_settings({"theme": "dark"})
        assert persistence.import_data(json.dumps({"history": [{"food_id": "b"}]})) is True

        assert persistence.get_settings() == {"theme": "dark"}
        assert persistence.get_selection_history() == [{"food_id": "b"}]

    @pytest.mark.parametrize("payload", ["{oops", "[1, 2]"])
    def test_import_rejects_bad_payload(self, persistence, payload):
        assert persistence.import_data(payload) is False

    def test_clear_all_data(self, persistence):
        persistence.save_settings({"theme": "dark"})
        persistence.cache_model({"x": 1})

        assert persistence.clear_all_data() is True
        assert persistence.store.keys() == []

    def test_storage_stats(self, persistence):
        persistence.save_settings({"a": 1})
        stats = persistence.get_storage_stats()

        assert stats["SETTINGS"]["size"] == len('{"a": 1}')
        assert stats["USER_HISTORY"]["size"] == 0
        assert stats["total"]["size"] == stats["SETTINGS"]["size"]
        assert stats["total"]["sizeKB"] == "0.01"


class TestUnavailableStorage:
    """Every operation degrades when the store is disabled."""

    @pytest.fixture
    def disabled(self, clock):
        return DataPersistence(InMemoryStore(available=False), clock=clock)

    def test_writes_return_false(self, disabled):
        assert disabled.save_selection_history({"food_id": "a"}) is False
        assert disabled.save_feedback({"food_id": "a"}) is False
        assert disabled.save_settings({}) is False
        assert disabled.cache_model({}) is False
        assert disabled.import_data("{}") is False
        assert disabled.clear_all_data() is False

    def test_reads_return_none(self, disabled):
        assert disabled.get_selection_history() is None
        assert disabled.get_preferences() is None
        assert disabled.get_cached_model() is None
        assert disabled.export_all_data() is None
        assert disabled.get_storage_stats() is None

    def test_quota_exceeded_write_returns_false(self, clock):
        persistence = DataPersistence(InMemoryStore(capacity_bytes=100), clock=clock)
        assert persistence.save_settings({"blob": "x" * 200}) is False


class TestGenerateId:
    """Tests for id generation."""

    def test_ids_are_unique(self, persistence):
        ids = {persistence.generate_id() for _ in range(50)}
        assert len(ids) == 50


class SlowReadStore(InMemoryStore):
    """In-memory store whose reads yield, widening any read-modify-write window."""

    def get(self, key):
        value = super().get(key)
        time.sleep(0.001)
        return value


class TestConcurrentAppends:
    """Appends from several threads must not overwrite each other."""

    def test_parallel_history_and_feedback_appends_are_all_kept(self, clock):
        persistence = DataPersistence(SlowReadStore(), clock=clock)

        def worker(n):
            for i in range(20):
                persistence.save_selection_history({"worker": n, "i": i})
                persistence.save_feedback({"worker": n, "i": i})

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(persistence.get_selection_history()) == 80
        assert len(persistence.get_feedback_data()) == 80
