"""
Document store (MongoDB)

One collection per entity, camelCase field names (``addedDate``,
``durationSeconds``). Integer ids come from a per-collection counter document
incremented atomically with ``$inc``.

Known limitation: MongoDB without a replica set has no multi-document
transaction, so "un-feature the others, then write this one" is two calls.
Two concurrent featured writes in the same scope can both succeed and leave
two records featured until the next featured write.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic.alias_generators import to_camel
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import NO_OBJECT_ID, create_document, get_document, get_documents
from schemas import (
    Challenge,
    ChallengeCreate,
    ChallengeUpdate,
    ContactMessage,
    ContactMessageCreate,
    Media,
    MediaCreate,
    MediaUpdate,
    Quote,
    QuoteCreate,
    QuoteUpdate,
    Subscriber,
    SubscriberCreate,
    Tip,
    TipCreate,
    TipUpdate,
    User,
    UserCreate,
    utcnow,
)
from storage import Storage, backend_call, changes_of, coerce, list_read, merge

logger = logging.getLogger(__name__)

USERS = "users"
QUOTES = "quotes"
TIPS = "tips"
MEDIA = "media"
CONTACT_MESSAGES = "contact_messages"
SUBSCRIBERS = "subscribers"
CHALLENGES = "challenges"
COUNTERS = "counters"

DUPLICATE_KEY = 11000

ENTITY = {
    USERS: "user",
    QUOTES: "quote",
    TIPS: "tip",
    MEDIA: "media",
    CONTACT_MESSAGES: "contact message",
    SUBSCRIBERS: "subscriber",
    CHALLENGES: "challenge",
}


def newest(key: str = "addedDate"):
    return [(key, DESCENDING), ("id", DESCENDING)]


def is_duplicate_key(exc: PyMongoError) -> bool:
    return getattr(exc, "code", None) == DUPLICATE_KEY


def bson_now():
    """Current UTC time at the millisecond precision BSON dates keep."""
    now = utcnow()
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class MongoStorage(Storage):
    name = "MongoDB"

    def __init__(self, db: Database):
        self.db = db
        self.ensure_indexes()

    def ensure_indexes(self) -> None:
        """Unique keys, plus counters that start above any id already stored."""
        with backend_call("prepare", "collections", errors=PyMongoError):
            for collection in ENTITY:
                self.db[collection].create_index("id", unique=True)
                top = get_document(self.db, collection, {}, sort=[("id", DESCENDING)])
                counter = self.db[COUNTERS].find_one({"_id": collection}) or {}
                if top is not None and counter.get("seq", 0) < top["id"]:
                    self.db[COUNTERS].update_one(
                        {"_id": collection}, {"$set": {"seq": top["id"]}}, upsert=True
                    )
            self.db[SUBSCRIBERS].create_index("email", unique=True)
            self.db[USERS].create_index("username", unique=True)

    def close(self) -> None:
        self.db.client.close()

    # -------- Internals ---------

    def _next_id(self, collection: str) -> int:
        counter = self.db[COUNTERS].find_one_and_update(
            {"_id": collection},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return counter["seq"]

    def _one(self, collection: str, model_cls, filter_dict: Dict[str, Any], sort=None):
        with backend_call("get", ENTITY[collection], filter_dict.get("id"), errors=PyMongoError):
            doc = get_document(self.db, collection, filter_dict, sort=sort)
        return model_cls.model_validate(doc) if doc is not None else None

    def _many(self, collection: str, model_cls, filter_dict=None, key: str = "addedDate") -> List:
        with backend_call("list", ENTITY[collection], errors=PyMongoError):
            docs = get_documents(self.db, collection, filter_dict, sort=newest(key))
        return [model_cls.model_validate(doc) for doc in docs]

    def _insert(self, collection: str, model_cls, data: dict, stamp: Optional[str] = "added_date"):
        with backend_call("create", ENTITY[collection], errors=PyMongoError):
            fields = {**data, "id": self._next_id(collection)}
            if stamp:
                fields[stamp] = bson_now()
            record = model_cls.model_validate(fields)
            create_document(self.db, collection, record)
        return record

    def _unfeature(self, collection: str, scope: Dict[str, Any], keep_id: Optional[int] = None) -> None:
        flt = {**scope, "featured": True}
        if keep_id is not None:
            flt["id"] = {"$ne": keep_id}
        self.db[collection].update_many(flt, {"$set": {"featured": False}})

    def _update(self, collection: str, model_cls, id: int, changes: Dict[str, Any], scope_of=None):
        existing = self._one(collection, model_cls, {"id": id})
        if existing is None:
            return None
        updated = merge(existing, changes)
        if not changes:
            return updated
        entity = ENTITY[collection]
        with backend_call("update", entity, id, errors=PyMongoError):
            scope = scope_of(existing, updated, changes) if scope_of else None
            if scope is not None:
                self._unfeature(collection, scope, keep_id=id)
            doc = self.db[collection].find_one_and_update(
                {"id": id},
                {"$set": {to_camel(k): v for k, v in updated.model_dump().items() if k in changes}},
                projection=NO_OBJECT_ID,
                return_document=ReturnDocument.AFTER,
            )
        # Deleted between the read and the write.
        if doc is None:
            return None
        return model_cls.model_validate(doc)

    def _delete(self, collection: str, id: int) -> bool:
        with backend_call("delete", ENTITY[collection], id, errors=PyMongoError):
            return self.db[collection].delete_one({"id": id}).deleted_count == 1

    def _featured(self, collection: str, model_cls, scope: Dict[str, Any]):
        record = self._one(collection, model_cls, {**scope, "featured": True}, sort=newest())
        if record is None:
            # Nothing flagged: fall back to the newest record in scope.
            record = self._one(collection, model_cls, scope, sort=newest())
        return record

    # -------- Users ---------

    def get_user(self, id: int) -> Optional[User]:
        return self._one(USERS, User, {"id": id})

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._one(USERS, User, {"username": username})

    def create_user(self, user: UserCreate) -> User:
        return self._insert(USERS, User, coerce(UserCreate, user).model_dump(), stamp=None)

    # -------- Quotes ---------

    @list_read
    def get_all_quotes(self) -> List[Quote]:
        return self._many(QUOTES, Quote)

    def get_quote_by_id(self, id: int) -> Optional[Quote]:
        return self._one(QUOTES, Quote, {"id": id})

    def get_featured_quote(self) -> Optional[Quote]:
        return self._featured(QUOTES, Quote, {})

    def create_quote(self, quote: QuoteCreate) -> Quote:
        data = coerce(QuoteCreate, quote).model_dump()
        if data["featured"]:
            with backend_call("unfeature", "quote", errors=PyMongoError):
                self._unfeature(QUOTES, {})
        return self._insert(QUOTES, Quote, data)

    def update_quote(self, id: int, quote: QuoteUpdate) -> Optional[Quote]:
        return self._update(
            QUOTES, Quote, id, changes_of(QuoteUpdate, quote),
            scope_of=lambda old, new, changes: {} if changes.get("featured") else None,
        )

    def delete_quote(self, id: int) -> bool:
        return self._delete(QUOTES, id)

    # -------- Tips ---------

    @list_read
    def get_all_tips(self) -> List[Tip]:
        return self._many(TIPS, Tip)

    def get_tip_by_id(self, id: int) -> Optional[Tip]:
        return self._one(TIPS, Tip, {"id": id})

    @list_read
    def get_tips_by_category(self, category: str) -> List[Tip]:
        return self._many(TIPS, Tip, {"category": category})

    def create_tip(self, tip: TipCreate) -> Tip:
        return self._insert(TIPS, Tip, coerce(TipCreate, tip).model_dump())

    def update_tip(self, id: int, tip: TipUpdate) -> Optional[Tip]:
        return self._update(TIPS, Tip, id, changes_of(TipUpdate, tip))

    def delete_tip(self, id: int) -> bool:
        return self._delete(TIPS, id)

    # -------- Media ---------

    @list_read
    def get_all_media(self) -> List[Media]:
        return self._many(MEDIA, Media)

    @list_read
    def get_media_by_type(self, type: str) -> List[Media]:
        return self._many(MEDIA, Media, {"type": type})

    def get_media_by_id(self, id: int) -> Optional[Media]:
        return self._one(MEDIA, Media, {"id": id})

    def get_featured_media(self, type: str) -> Optional[Media]:
        return self._featured(MEDIA, Media, {"type": type})

    def create_media(self, media: MediaCreate) -> Media:
        data = coerce(MediaCreate, media).model_dump()
        if data["featured"]:
            with backend_call("unfeature", "media", errors=PyMongoError):
                self._unfeature(MEDIA, {"type": data["type"]})
        return self._insert(MEDIA, Media, data)

    def update_media(self, id: int, media: MediaUpdate) -> Optional[Media]:
        def scope_of(old, new, changes):
            if new.featured and (changes.get("featured") or new.type != old.type):
                return {"type": new.type}
            return None

        return self._update(MEDIA, Media, id, changes_of(MediaUpdate, media), scope_of=scope_of)

    def delete_media(self, id: int) -> bool:
        return self._delete(MEDIA, id)

    # -------- Contact messages ---------

    def create_contact_message(self, message: ContactMessageCreate) -> ContactMessage:
        data = coerce(ContactMessageCreate, message).model_dump()
        return self._insert(CONTACT_MESSAGES, ContactMessage, data)

    @list_read
    def get_all_contact_messages(self) -> List[ContactMessage]:
        return self._many(CONTACT_MESSAGES, ContactMessage)

    # -------- Newsletter subscribers ---------

    def add_subscriber(self, subscriber: SubscriberCreate) -> Subscriber:
        data = coerce(SubscriberCreate, subscriber).model_dump()
        existing = self._one(SUBSCRIBERS, Subscriber, {"email": data["email"]})
        if existing is not None:
            return existing
        with backend_call("create", "subscriber", errors=PyMongoError):
            record = Subscriber.model_validate(
                {**data, "id": self._next_id(SUBSCRIBERS), "subscription_date": bson_now()}
            )
            try:
                create_document(self.db, SUBSCRIBERS, record)
            except PyMongoError as exc:
                if not is_duplicate_key(exc):
                    raise
                # Same address subscribed concurrently; hand back that record.
                doc = get_document(self.db, SUBSCRIBERS, {"email": data["email"]})
                if doc is None:
                    raise
                logger.info("Subscriber %s was added concurrently", data["email"])
                return Subscriber.model_validate(doc)
        return record

    @list_read
    def get_all_subscribers(self) -> List[Subscriber]:
        return self._many(SUBSCRIBERS, Subscriber, key="subscriptionDate")

    # -------- Challenges ---------

    @list_read
    def get_all_challenges(self) -> List[Challenge]:
        return self._many(CHALLENGES, Challenge)

    def get_challenge_by_id(self, id: int) -> Optional[Challenge]:
        return self._one(CHALLENGES, Challenge, {"id": id})

    @list_read
    def get_challenges_by_category(self, category: str) -> List[Challenge]:
        return self._many(CHALLENGES, Challenge, {"category": category})

    def create_challenge(self, challenge: ChallengeCreate) -> Challenge:
        return self._insert(CHALLENGES, Challenge, coerce(ChallengeCreate, challenge).model_dump())

    def update_challenge(self, id: int, challenge: ChallengeUpdate) -> Optional[Challenge]:
        return self._update(CHALLENGES, Challenge, id, changes_of(ChallengeUpdate, challenge))

    def delete_challenge(self, id: int) -> bool:
        return self._delete(CHALLENGES, id)
