"""In-process store: one dict per entity, one id counter per entity."""

import threading
from typing import Callable, Dict, List, Optional

from errors import StorageError
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
from seed import seed_storage
from storage import Storage, changes_of, coerce, merge, newest_first

TABLES = ("users", "quotes", "tips", "media", "contact_messages", "subscribers", "challenges")


class MemStorage(Storage):
    name = "in-memory"

    def __init__(self, seed: bool = True):
        # Guards the counters and every read-modify-write on the tables.
        self._lock = threading.RLock()
        self._tables: Dict[str, Dict[int, object]] = {name: {} for name in TABLES}
        self._counters: Dict[str, int] = {name: 0 for name in TABLES}
        if seed:
            seed_storage(self)

    # -------- Internals ---------

    def _next_id(self, table: str) -> int:
        with self._lock:
            self._counters[table] += 1
            return self._counters[table]

    def _get(self, table: str, id: int):
        with self._lock:
            record = self._tables[table].get(id)
            return record.model_copy(deep=True) if record is not None else None

    def _select(self, table: str, where: Optional[Callable] = None, key: str = "added_date") -> List:
        with self._lock:
            records = [r.model_copy(deep=True) for r in self._tables[table].values()
                       if where is None or where(r)]
        return newest_first(records, key=key)

    def _insert(self, table: str, record_cls, data: dict, stamp: str = "added_date"):
        with self._lock:
            record = record_cls.model_validate({**data, "id": self._next_id(table), stamp: utcnow()})
            self._tables[table][record.id] = record
            return record.model_copy(deep=True)

    def _delete(self, table: str, id: int) -> bool:
        with self._lock:
            return self._tables[table].pop(id, None) is not None

    def _unfeature(self, table: str, keep_id: Optional[int], where: Callable = lambda r: True) -> None:
        rows = self._tables[table]
        for rid, record in list(rows.items()):
            if rid != keep_id and record.featured and where(record):
                rows[rid] = record.model_copy(update={"featured": False})

    def _featured(self, table: str, where: Callable = lambda r: True):
        with self._lock:
            in_scope = [r for r in self._tables[table].values() if where(r)]
            # Nothing flagged: fall back to the newest record in scope.
            pool = [r for r in in_scope if r.featured] or in_scope
            return newest_first(pool)[0].model_copy(deep=True) if pool else None

    # -------- Users ---------

    def get_user(self, id: int) -> Optional[User]:
        return self._get("users", id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            for user in self._tables["users"].values():
                if user.username == username:
                    return user.model_copy()
        return None

    def create_user(self, user: UserCreate) -> User:
        data = coerce(UserCreate, user).model_dump()
        with self._lock:
            if self.get_user_by_username(data["username"]) is not None:
                raise StorageError("create", "user", detail=f"username {data['username']!r} already exists")
            record = User.model_validate({**data, "id": self._next_id("users")})
            self._tables["users"][record.id] = record
            return record.model_copy()

    # -------- Quotes ---------

    def get_all_quotes(self) -> List[Quote]:
        return self._select("quotes")

    def get_quote_by_id(self, id: int) -> Optional[Quote]:
        return self._get("quotes", id)

    def get_featured_quote(self) -> Optional[Quote]:
        return self._featured("quotes")

    def create_quote(self, quote: QuoteCreate) -> Quote:
        data = coerce(QuoteCreate, quote).model_dump()
        with self._lock:
            if data["featured"]:
                self._unfeature("quotes", keep_id=None)
            return self._insert("quotes", Quote, data)

    def update_quote(self, id: int, quote: QuoteUpdate) -> Optional[Quote]:
        changes = changes_of(QuoteUpdate, quote)
        with self._lock:
            existing = self._tables["quotes"].get(id)
            if existing is None:
                return None
            updated = merge(existing, changes)
            if changes.get("featured"):
                self._unfeature("quotes", keep_id=id)
            self._tables["quotes"][id] = updated
            return updated.model_copy()

    def delete_quote(self, id: int) -> bool:
        return self._delete("quotes", id)

    # -------- Tips ---------

    def get_all_tips(self) -> List[Tip]:
        return self._select("tips")

    def get_tip_by_id(self, id: int) -> Optional[Tip]:
        return self._get("tips", id)

    def get_tips_by_category(self, category: str) -> List[Tip]:
        return self._select("tips", lambda t: t.category == category)

    def create_tip(self, tip: TipCreate) -> Tip:
        return self._insert("tips", Tip, coerce(TipCreate, tip).model_dump())

    def update_tip(self, id: int, tip: TipUpdate) -> Optional[Tip]:
        changes = changes_of(TipUpdate, tip)
        with self._lock:
            existing = self._tables["tips"].get(id)
            if existing is None:
                return None
            updated = merge(existing, changes)
            self._tables["tips"][id] = updated
            return updated.model_copy()

    def delete_tip(self, id: int) -> bool:
        return self._delete("tips", id)

    # -------- Media ---------

    def get_all_media(self) -> List[Media]:
        return self._select("media")

    def get_media_by_type(self, type: str) -> List[Media]:
        return self._select("media", lambda m: m.type == type)

    def get_media_by_id(self, id: int) -> Optional[Media]:
        return self._get("media", id)

    def get_featured_media(self, type: str) -> Optional[Media]:
        return self._featured("media", lambda m: m.type == type)

    def create_media(self, media: MediaCreate) -> Media:
        data = coerce(MediaCreate, media).model_dump()
        with self._lock:
            if data["featured"]:
                self._unfeature("media", keep_id=None, where=lambda m: m.type == data["type"])
            return self._insert("media", Media, data)

    def update_media(self, id: int, media: MediaUpdate) -> Optional[Media]:
        changes = changes_of(MediaUpdate, media)
        with self._lock:
            existing = self._tables["media"].get(id)
            if existing is None:
                return None
            updated = merge(existing, changes)
            if updated.featured and (changes.get("featured") or updated.type != existing.type):
                self._unfeature("media", keep_id=id, where=lambda m: m.type == updated.type)
            self._tables["media"][id] = updated
            return updated.model_copy()

    def delete_media(self, id: int) -> bool:
        return self._delete("media", id)

    # -------- Contact messages ---------

    def create_contact_message(self, message: ContactMessageCreate) -> ContactMessage:
        data = coerce(ContactMessageCreate, message).model_dump()
        return self._insert("contact_messages", ContactMessage, data)

    def get_all_contact_messages(self) -> List[ContactMessage]:
        return self._select("contact_messages")

    # -------- Newsletter subscribers ---------

    def add_subscriber(self, subscriber: SubscriberCreate) -> Subscriber:
        data = coerce(SubscriberCreate, subscriber).model_dump()
        with self._lock:
            for existing in self._tables["subscribers"].values():
                if existing.email == data["email"]:
                    return existing.model_copy()
            return self._insert("subscribers", Subscriber, data, stamp="subscription_date")

    def get_all_subscribers(self) -> List[Subscriber]:
        return self._select("subscribers", key="subscription_date")

    # -------- Challenges ---------

    def get_all_challenges(self) -> List[Challenge]:
        return self._select("challenges")

    def get_challenge_by_id(self, id: int) -> Optional[Challenge]:
        return self._get("challenges", id)

    def get_challenges_by_category(self, category: str) -> List[Challenge]:
        return self._select("challenges", lambda c: c.category == category)

    def create_challenge(self, challenge: ChallengeCreate) -> Challenge:
        data = coerce(ChallengeCreate, challenge).model_dump()
        return self._insert("challenges", Challenge, data)

    def update_challenge(self, id: int, challenge: ChallengeUpdate) -> Optional[Challenge]:
        changes = changes_of(ChallengeUpdate, challenge)
        with self._lock:
            existing = self._tables["challenges"].get(id)
            if existing is None:
                return None
            updated = merge(existing, changes)
            self._tables["challenges"][id] = updated
            return updated.model_copy(deep=True)

    def delete_challenge(self, id: int) -> bool:
        return self._delete("challenges", id)
