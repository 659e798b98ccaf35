"""Behaviour every store shares.

Each test runs against the in-memory, MongoDB (mongomock) and SQL (SQLite)
stores through the parametrized ``store`` fixture.

Tests cover:
- id and timestamp assignment, ids never reused after a delete
- absent lookups, updates and deletes
- partial updates
- one featured quote, one featured media item per type, and the newest-record fallback
- newest-first lists and category/type filters
- idempotent newsletter subscription
- challenge steps kept in order
- users and unique usernames
"""

from datetime import datetime

import pytest
from pydantic import ValidationError

from errors import StorageError


def featured_ids(records):
    return [r.id for r in records if r.featured]


class TestIdentity:
    """Ids and timestamps are assigned by the store."""

    def test_create_assigns_id_and_added_date(self, store, quote_data):
        """Test a created record comes back with an id and a UTC timestamp."""
        quote = store.create_quote(quote_data)
        assert quote.id >= 1
        assert isinstance(quote.added_date, datetime)
        assert quote.added_date.utcoffset().total_seconds() == 0
        assert quote.text == quote_data["text"]
        assert quote.featured is False

    def test_ids_are_distinct(self, store, tip_data):
        """Test consecutive creates never share an id."""
        ids = [store.create_tip(tip_data).id for _ in range(5)]
        assert len(set(ids)) == 5

    def test_deleted_id_is_not_reused(self, store, quote_data):
        """Test an id freed by a delete is not handed out again."""
        store.create_quote(quote_data)
        second = store.create_quote(quote_data)
        assert store.delete_quote(second.id)
        third = store.create_quote(quote_data)
        assert third.id > second.id

    def test_invalid_input_is_rejected_before_storing(self, store):
        """Test a malformed record raises and leaves the store untouched."""
        with pytest.raises(ValidationError):
            store.create_quote({"text": "", "author": "Nobody"})
        assert store.get_all_quotes() == []


class TestAbsentRecords:
    """Lookups, updates and deletes of ids that do not exist."""

    def test_get_missing_returns_none(self, store):
        """Test every by-id lookup returns None for an unknown id."""
        assert store.get_quote_by_id(999) is None
        assert store.get_tip_by_id(999) is None
        assert store.get_media_by_id(999) is None
        assert store.get_challenge_by_id(999) is None
        assert store.get_user(999) is None

    def test_update_missing_returns_none_without_side_effects(self, store, tip_data):
        """Test updating an unknown id writes nothing."""
        store.create_tip(tip_data)
        before = store.get_all_tips()

        assert store.update_tip(999, {"title": "Ghost"}) is None

        after = store.get_all_tips()
        assert len(after) == len(before)
        assert [t.title for t in after] == [t.title for t in before]

    def test_featured_update_of_missing_id_keeps_featured(self, store, quote_data):
        """Test a featured update on an unknown id does not un-feature anything."""
        featured = store.create_quote({**quote_data, "featured": True})
        assert store.update_quote(999, {"featured": True}) is None
        assert store.get_featured_quote().id == featured.id

    def test_delete_then_get(self, store, quote_data):
        """Test a deleted record is gone and a second delete reports False."""
        quote = store.create_quote(quote_data)
        assert store.delete_quote(quote.id) is True
        assert store.get_quote_by_id(quote.id) is None
        assert store.delete_quote(quote.id) is False

    def test_delete_each_entity(self, store, tip_data, video_data, challenge_data):
        """Test delete works for tips, media and challenges."""
        tip = store.create_tip(tip_data)
        media = store.create_media(video_data)
        challenge = store.create_challenge(challenge_data)

        assert store.delete_tip(tip.id)
        assert store.delete_media(media.id)
        assert store.delete_challenge(challenge.id)
        assert store.get_tip_by_id(tip.id) is None
        assert store.get_media_by_id(media.id) is None
        assert store.get_challenge_by_id(challenge.id) is None


class TestPartialUpdate:
    """Updates merge only the supplied fields."""

    def test_update_keeps_unsupplied_fields(self, store, quote_data):
        quote = store.create_quote(quote_data)
        updated = store.update_quote(quote.id, {"author": "Aristotle (attributed)"})

        assert updated.id == quote.id
        assert updated.author == "Aristotle (attributed)"
        assert updated.text == quote_data["text"]
        assert store.get_quote_by_id(quote.id).author == "Aristotle (attributed)"

    def test_update_with_nothing_to_change(self, store, tip_data):
        """Test an empty update returns the record unchanged."""
        tip = store.create_tip(tip_data)
        same = store.update_tip(tip.id, {})
        assert same.title == tip.title
        assert same.content == tip.content

    def test_update_rejects_invalid_values(self, store, tip_data):
        """Test an update outside the allowed categories raises."""
        tip = store.create_tip(tip_data)
        with pytest.raises(ValidationError):
            store.update_tip(tip.id, {"category": "Cooking"})
        assert store.get_tip_by_id(tip.id).category == "Productivity"

    def test_update_media_fields(self, store, video_data):
        media = store.create_media(video_data)
        updated = store.update_media(media.id, {"duration": "6:00", "duration_seconds": 360})
        assert updated.duration == "6:00"
        assert updated.duration_seconds == 360
        assert updated.title == video_data["title"]


class TestFeaturedQuote:
    """At most one quote is featured."""

    def test_featured_create_unfeatures_the_rest(self, store, quote_data):
        first = store.create_quote({**quote_data, "featured": True})
        second = store.create_quote({**quote_data, "text": "Second", "featured": True})

        assert featured_ids(store.get_all_quotes()) == [second.id]
        assert store.get_featured_quote().id == second.id
        assert store.get_quote_by_id(first.id).featured is False

    def test_featured_update_unfeatures_the_rest(self, store, quote_data):
        first = store.create_quote({**quote_data, "featured": True})
        second = store.create_quote({**quote_data, "text": "Second"})

        store.update_quote(second.id, {"featured": True})

        assert featured_ids(store.get_all_quotes()) == [second.id]
        assert store.get_quote_by_id(first.id).featured is False

    def test_unfeaturing_leaves_none_flagged(self, store, quote_data):
        quote = store.create_quote({**quote_data, "featured": True})
        store.update_quote(quote.id, {"featured": False})
        assert featured_ids(store.get_all_quotes()) == []

    def test_falls_back_to_newest(self, store, quote_data):
        """Test the newest quote stands in when none is flagged."""
        store.create_quote(quote_data)
        newest = store.create_quote({**quote_data, "text": "Newest"})
        assert store.get_featured_quote().id == newest.id

    def test_no_quotes_no_featured(self, store):
        assert store.get_featured_quote() is None


class TestFeaturedMedia:
    """At most one featured media item per type."""

    def test_one_featured_per_type(self, store, video_data, audio_data):
        video = store.create_media({**video_data, "featured": True})
        audio = store.create_media({**audio_data, "featured": True})

        assert store.get_featured_media("video").id == video.id
        assert store.get_featured_media("audio").id == audio.id

    def test_featured_video_leaves_audio_alone(self, store, video_data, audio_data):
        first_video = store.create_media({**video_data, "featured": True})
        audio = store.create_media({**audio_data, "featured": True})
        second_video = store.create_media({**video_data, "title": "Second", "featured": True})

        assert featured_ids(store.get_media_by_type("video")) == [second_video.id]
        assert featured_ids(store.get_media_by_type("audio")) == [audio.id]
        assert store.get_media_by_id(first_video.id).featured is False

    def test_type_change_moves_featured_scope(self, store, video_data, audio_data):
        """Test a featured item switched to another type takes over that type's slot."""
        video = store.create_media({**video_data, "featured": True})
        audio = store.create_media({**audio_data, "featured": True})

        moved = store.update_media(audio.id, {"type": "video", "thumbnail": "https://example.com/t.jpg"})

        assert moved.type == "video"
        assert featured_ids(store.get_media_by_type("video")) == [audio.id]
        assert store.get_media_by_id(video.id).featured is False
        assert store.get_featured_media("audio") is None

    def test_featured_media_falls_back_to_newest_of_type(self, store, video_data, audio_data):
        store.create_media(video_data)
        newest_video = store.create_media({**video_data, "title": "Newest"})
        store.create_media(audio_data)
        assert store.get_featured_media("video").id == newest_video.id


class TestListing:
    """Lists come back newest first and filters match exactly."""

    def test_newest_first(self, store, quote_data):
        created = [store.create_quote({**quote_data, "text": f"Quote {i}"}) for i in range(4)]
        listed = store.get_all_quotes()
        assert [q.id for q in listed] == [q.id for q in reversed(created)]

    def test_tips_by_category(self, store, tip_data):
        store.create_tip(tip_data)
        health = store.create_tip({**tip_data, "title": "Sleep", "category": "Health"})

        tips = store.get_tips_by_category("Health")
        assert [t.id for t in tips] == [health.id]
        assert store.get_tips_by_category("Unknown") == []
        assert len(store.get_all_tips()) == 2

    def test_media_by_type(self, store, video_data, audio_data):
        store.create_media(video_data)
        audio = store.create_media(audio_data)
        assert [m.id for m in store.get_media_by_type("audio")] == [audio.id]
        assert len(store.get_all_media()) == 2

    def test_challenges_by_category(self, store, challenge_data):
        health = store.create_challenge(challenge_data)
        store.create_challenge({**challenge_data, "category": "Mindset"})
        assert [c.id for c in store.get_challenges_by_category("Health")] == [health.id]

    def test_empty_store_lists_are_empty(self, store):
        assert store.get_all_quotes() == []
        assert store.get_all_media() == []
        assert store.get_all_challenges() == []
        assert store.get_all_subscribers() == []
        assert store.get_all_contact_messages() == []


class TestContactMessages:
    def test_create_and_list(self, store):
        first = store.create_contact_message(
            {"name": "Ada", "email": "ada@example.com", "message": "Hello"}
        )
        second = store.create_contact_message(
            {"name": "Grace", "email": "grace@example.com", "message": "Hi again"}
        )
        assert [m.id for m in store.get_all_contact_messages()] == [second.id, first.id]
        assert first.added_date is not None

    def test_rejects_bad_email(self, store):
        with pytest.raises(ValidationError):
            store.create_contact_message({"name": "Ada", "email": "not-an-email", "message": "Hello"})


class TestSubscribers:
    """Subscribing is idempotent per email address."""

    def test_subscribe_twice_returns_same_record(self, store):
        first = store.add_subscriber({"email": "reader@example.com"})
        second = store.add_subscriber({"email": "reader@example.com"})

        assert second.id == first.id
        assert len(store.get_all_subscribers()) == 1

    def test_email_match_ignores_case(self, store):
        first = store.add_subscriber({"email": "Reader@Example.com"})
        second = store.add_subscriber({"email": "reader@example.com"})
        assert first.email == "reader@example.com"
        assert second.id == first.id

    def test_subscription_date_set(self, store):
        subscriber = store.add_subscriber({"email": "reader@example.com"})
        assert isinstance(subscriber.subscription_date, datetime)


class TestChallenges:
    def test_steps_keep_their_order(self, store, challenge_data):
        challenge = store.create_challenge(challenge_data)
        assert store.get_challenge_by_id(challenge.id).steps == challenge_data["steps"]

    def test_steps_given_as_indexed_object(self, store, challenge_data):
        """Test steps keyed by position are stored as an ordered list."""
        steps = {"2": "third", "0": "first", "10": "eleventh", "1": "second"}
        challenge = store.create_challenge({**challenge_data, "steps": steps})
        stored = store.get_challenge_by_id(challenge.id)
        assert stored.steps == ["first", "second", "third", "eleventh"]

    def test_update_steps(self, store, challenge_data):
        challenge = store.create_challenge(challenge_data)
        updated = store.update_challenge(challenge.id, {"steps": ["Only step"], "duration": 3})
        assert updated.steps == ["Only step"]
        assert store.get_challenge_by_id(challenge.id).duration == 3

    def test_generate_stores_the_challenge(self, store, challenge_input):
        """Test a generated challenge is persisted like any other."""
        challenge = store.generate_personalized_challenge(challenge_input)

        assert challenge.id >= 1
        assert challenge.title == "5-Day Finish a Novel Productivity Challenge"
        assert len(challenge.steps) == 9
        assert store.get_challenge_by_id(challenge.id).steps == challenge.steps

    def test_generate_rejects_empty_interests(self, store, challenge_input):
        with pytest.raises(ValidationError):
            store.generate_personalized_challenge({**challenge_input, "interests": []})
        assert store.get_all_challenges() == []


class TestUsers:
    def test_create_and_lookup(self, store):
        user = store.create_user({"username": "ada", "password": "hunter2"})
        assert store.get_user(user.id).username == "ada"
        assert store.get_user_by_username("ada").id == user.id
        assert store.get_user_by_username("grace") is None

    def test_duplicate_username_raises(self, store):
        store.create_user({"username": "ada", "password": "one"})
        with pytest.raises(StorageError):
            store.create_user({"username": "ada", "password": "two"})
