"""Tests for the MongoDB store, run against mongomock.

Tests cover:
- camelCase documents without Mongo's ``_id`` leaking out
- counters that resume above ids already stored
- created records equal their stored copies (millisecond timestamps)
- steps persisted in legacy shapes come back as ordered lists
- list reads degrade to [] when the server is unreachable; other calls raise
- the documented two-call featured write and how it heals
"""

import logging
from datetime import datetime, timezone

import pytest
from pymongo.errors import PyMongoError

from errors import StorageError
from mongo_storage import CHALLENGES, COUNTERS, QUOTES, MongoStorage


class _Unreachable:
    """Stands in for a database whose server cannot be reached."""

    def __getitem__(self, name):
        return self

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise PyMongoError("No servers found yet")

        return fail


@pytest.fixture
def offline_store(mongo_store, monkeypatch):
    monkeypatch.setattr(mongo_store, "db", _Unreachable())
    return mongo_store


class TestDocuments:
    """What ends up in the collections."""

    def test_documents_use_camel_case(self, mongo_store, mongo_db, video_data):
        media = mongo_store.create_media(video_data)
        doc = mongo_db["media"].find_one({"id": media.id})

        assert doc["durationSeconds"] == 245
        assert "addedDate" in doc
        assert "duration_seconds" not in doc

    def test_records_do_not_expose_object_id(self, mongo_store, quote_data):
        quote = mongo_store.create_quote(quote_data)
        fetched = mongo_store.get_quote_by_id(quote.id)
        assert "_id" not in fetched.model_dump()

    def test_created_record_matches_stored(self, mongo_store, quote_data):
        """Test the record handed back by a create equals the one read back later."""
        created = mongo_store.create_quote(quote_data)
        assert created.added_date.microsecond % 1000 == 0
        assert mongo_store.get_quote_by_id(created.id) == created

    def test_subscriber_matches_stored(self, mongo_store):
        created = mongo_store.add_subscriber({"email": "reader@example.com"})
        assert mongo_store.get_all_subscribers() == [created]

    def test_counter_resumes_above_existing_ids(self, mongo_db, quote_data):
        """Test a store opened over existing data never reissues a stored id."""
        mongo_db[QUOTES].insert_one({
            "id": 41, "text": "Imported", "author": "Someone", "featured": False,
            "addedDate": datetime(2024, 1, 1, tzinfo=timezone.utc),
        })
        store = MongoStorage(mongo_db)

        assert store.create_quote(quote_data).id == 42
        assert mongo_db[COUNTERS].find_one({"_id": QUOTES})["seq"] == 42


class TestLegacySteps:
    """Steps written by older clients."""

    def _insert_challenge(self, mongo_db, steps):
        mongo_db[CHALLENGES].insert_one({
            "id": 500, "title": "Legacy", "description": "Imported challenge",
            "category": "Mindset", "difficulty": "Easy", "duration": 3,
            "steps": steps, "addedDate": datetime(2024, 1, 1, tzinfo=timezone.utc),
        })

    def test_indexed_object(self, mongo_store, mongo_db):
        self._insert_challenge(mongo_db, {"1": "Breathe", "0": "Sit down", "2": "Notice"})
        assert mongo_store.get_challenge_by_id(500).steps == ["Sit down", "Breathe", "Notice"]

    def test_json_string(self, mongo_store, mongo_db):
        self._insert_challenge(mongo_db, '["Sit down", "Breathe"]')
        assert mongo_store.get_challenge_by_id(500).steps == ["Sit down", "Breathe"]

    def test_missing_steps(self, mongo_store, mongo_db):
        self._insert_challenge(mongo_db, None)
        assert mongo_store.get_challenge_by_id(500).steps == []


class TestBackendFailures:
    """Server unreachable."""

    def test_list_reads_return_empty(self, offline_store, caplog):
        with caplog.at_level(logging.WARNING):
            assert offline_store.get_all_quotes() == []
            assert offline_store.get_tips_by_category("Health") == []
            assert offline_store.get_media_by_type("video") == []
            assert offline_store.get_all_challenges() == []
        assert "get_all_quotes returned no results" in caplog.text

    def test_lookup_raises(self, offline_store):
        with pytest.raises(StorageError) as excinfo:
            offline_store.get_quote_by_id(1)
        assert excinfo.value.entity == "quote"
        assert isinstance(excinfo.value.__cause__, PyMongoError)

    def test_writes_raise(self, offline_store, quote_data):
        with pytest.raises(StorageError):
            offline_store.create_quote(quote_data)
        with pytest.raises(StorageError):
            offline_store.delete_quote(1)
        with pytest.raises(StorageError):
            offline_store.add_subscriber({"email": "reader@example.com"})

    def test_failure_is_logged(self, offline_store, quote_data, caplog):
        with caplog.at_level(logging.ERROR):
            with pytest.raises(StorageError):
                offline_store.create_quote({**quote_data, "featured": True})
        assert "Backend failure" in caplog.text


class TestFeaturedRace:
    """Un-featuring and writing are two calls, so writers can interleave."""

    def test_interleaved_writers_then_heal(self, mongo_store, quote_data, monkeypatch):
        """Test two interleaved featured creates can both stick until the next featured write."""
        mongo_store.create_quote({**quote_data, "featured": True})

        # Both writers clear the flag before either inserts.
        mongo_store._unfeature(QUOTES, {})
        mongo_store._unfeature(QUOTES, {})
        monkeypatch.setattr(mongo_store, "_unfeature", lambda *args, **kwargs: None)
        mongo_store.create_quote({**quote_data, "text": "Writer A", "featured": True})
        mongo_store.create_quote({**quote_data, "text": "Writer B", "featured": True})
        monkeypatch.undo()

        assert len([q for q in mongo_store.get_all_quotes() if q.featured]) == 2
        assert mongo_store.get_featured_quote().text == "Writer B"

        last = mongo_store.create_quote({**quote_data, "text": "Writer C", "featured": True})
        featured = [q.id for q in mongo_store.get_all_quotes() if q.featured]
        assert featured == [last.id]
