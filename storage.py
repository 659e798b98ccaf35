"""
Storage interface

Every store (in-memory, MongoDB, SQL) implements ``Storage``. Callers hold one
instance for the life of the process, built by ``create_storage`` from the
configured backend and carried around in an ``AppContext``.

Contract shared by all stores:
- lookups return ``None`` when nothing matches, they never raise for it
- ``update_*`` on a missing id returns ``None`` and writes nothing
- ``delete_*`` returns True only if a record was removed
- lists come back newest first (``added_date``, ``subscription_date`` for subscribers)
- after a create/update with ``featured=True`` exactly one quote (or one media
  item of that type) is featured. The MongoDB store does the un-feature and the
  write as two calls, and the SQL store on a READ COMMITTED server (PostgreSQL,
  MySQL) cannot see another process's uncommitted featured insert, so
  concurrent writers there can briefly leave two featured records until the
  next featured write
- ``get_featured_*`` returns the newest flagged record, or the newest record in
  scope when none is flagged
- backend failures raise ``StorageError``; list reads of external stores
  log a warning and return ``[]`` instead
"""

import abc
import functools
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel

from config import Settings, get_settings
from errors import StorageError
from personalization import build_challenge
from schemas import (
    Challenge,
    ChallengeCreate,
    ChallengeInput,
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
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


# -------- Helpers shared by the stores ---------

def coerce(model_cls: Type[M], data: Any) -> M:
    """Validate a dict (or pass through an already-built model)."""
    if isinstance(data, model_cls):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    return model_cls.model_validate(data)


def changes_of(update_cls: Type[BaseModel], data: Any) -> Dict[str, Any]:
    """Fields the caller actually supplied for a partial update; None leaves a field as is."""
    return coerce(update_cls, data).model_dump(exclude_unset=True, exclude_none=True)


def merge(record: M, changes: Dict[str, Any]) -> M:
    """Apply a partial update and re-validate the result against the full schema."""
    merged = {**record.model_dump(), **changes}
    return type(record).model_validate(merged)


def newest_first(records: Iterable[M], key: str = "added_date") -> List[M]:
    return sorted(
        records,
        key=lambda r: (getattr(r, key) or _EPOCH, r.id),
        reverse=True,
    )


@contextmanager
def backend_call(operation: str, entity: str, entity_id: Optional[int] = None, errors=(Exception,)):
    """Turn driver exceptions into ``StorageError`` after logging them with context."""
    try:
        yield
    except errors as exc:
        logger.error(
            "Backend failure: operation=%s entity=%s id=%s error=%s",
            operation, entity, entity_id, exc,
        )
        raise StorageError(operation, entity, entity_id, str(exc)) from exc


def list_read(func):
    """List reads favour availability: a backend failure yields an empty list."""

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except StorageError as exc:
            logger.warning("%s returned no results: %s", func.__name__, exc)
            return []

    return wrapper


# -------- Interface ---------

class Storage(abc.ABC):
    """Uniform CRUD surface over the content records."""

    name = "abstract"

    # Users
    @abc.abstractmethod
    def get_user(self, id: int) -> Optional[User]: ...

    @abc.abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abc.abstractmethod
    def create_user(self, user: UserCreate) -> User: ...

    # Quotes
    @abc.abstractmethod
    def get_all_quotes(self) -> List[Quote]: ...

    @abc.abstractmethod
    def get_quote_by_id(self, id: int) -> Optional[Quote]: ...

    @abc.abstractmethod
    def get_featured_quote(self) -> Optional[Quote]: ...

    @abc.abstractmethod
    def create_quote(self, quote: QuoteCreate) -> Quote: ...

    @abc.abstractmethod
    def update_quote(self, id: int, quote: QuoteUpdate) -> Optional[Quote]: ...

    @abc.abstractmethod
    def delete_quote(self, id: int) -> bool: ...

    # Tips
    @abc.abstractmethod
    def get_all_tips(self) -> List[Tip]: ...

    @abc.abstractmethod
    def get_tip_by_id(self, id: int) -> Optional[Tip]: ...

    @abc.abstractmethod
    def get_tips_by_category(self, category: str) -> List[Tip]: ...

    @abc.abstractmethod
    def create_tip(self, tip: TipCreate) -> Tip: ...

    @abc.abstractmethod
    def update_tip(self, id: int, tip: TipUpdate) -> Optional[Tip]: ...

    @abc.abstractmethod
    def delete_tip(self, id: int) -> bool: ...

    # Media
    @abc.abstractmethod
    def get_all_media(self) -> List[Media]: ...

    @abc.abstractmethod
    def get_media_by_type(self, type: str) -> List[Media]: ...

    @abc.abstractmethod
    def get_media_by_id(self, id: int) -> Optional[Media]: ...

    @abc.abstractmethod
    def get_featured_media(self, type: str) -> Optional[Media]: ...

    @abc.abstractmethod
    def create_media(self, media: MediaCreate) -> Media: ...

    @abc.abstractmethod
    def update_media(self, id: int, media: MediaUpdate) -> Optional[Media]: ...

    @abc.abstractmethod
    def delete_media(self, id: int) -> bool: ...

    # Contact messages
    @abc.abstractmethod
    def create_contact_message(self, message: ContactMessageCreate) -> ContactMessage: ...

    @abc.abstractmethod
    def get_all_contact_messages(self) -> List[ContactMessage]: ...

    # Newsletter subscribers
    @abc.abstractmethod
    def add_subscriber(self, subscriber: SubscriberCreate) -> Subscriber: ...

    @abc.abstractmethod
    def get_all_subscribers(self) -> List[Subscriber]: ...

    # Challenges
    @abc.abstractmethod
    def get_all_challenges(self) -> List[Challenge]: ...

    @abc.abstractmethod
    def get_challenge_by_id(self, id: int) -> Optional[Challenge]: ...

    @abc.abstractmethod
    def get_challenges_by_category(self, category: str) -> List[Challenge]: ...

    @abc.abstractmethod
    def create_challenge(self, challenge: ChallengeCreate) -> Challenge: ...

    @abc.abstractmethod
    def update_challenge(self, id: int, challenge: ChallengeUpdate) -> Optional[Challenge]: ...

    @abc.abstractmethod
    def delete_challenge(self, id: int) -> bool: ...

    def generate_personalized_challenge(self, data) -> Challenge:
        """Fill a challenge from the visitor's input and store it like any other."""
        challenge_input = coerce(ChallengeInput, data)
        return self.create_challenge(build_challenge(challenge_input))

    def close(self) -> None:
        pass


# -------- Backend selection ---------

def create_storage(settings: Settings) -> Storage:
    """Build the one store this process will use."""
    backend = settings.storage_backend
    if backend == "memory":
        from mem_storage import MemStorage

        store = MemStorage(seed=settings.seed_data)
    elif backend == "mongo":
        from database import connect
        from mongo_storage import MongoStorage

        store = MongoStorage(connect(settings.database_url, settings.database_name))
    elif backend == "sql":
        from sqlalchemy import create_engine

        from sql_storage import SqlStorage

        store = SqlStorage(create_engine(settings.sql_database_url))
    else:
        raise ValueError(f"Unknown storage backend: {backend!r}")

    logger.info("Using %s storage for data persistence", store.name)
    return store


@dataclass
class AppContext:
    """What request handlers need, built once at startup."""

    settings: Settings
    storage: Storage

    def close(self) -> None:
        self.storage.close()


def build_context(settings: Optional[Settings] = None) -> AppContext:
    settings = settings or get_settings()
    return AppContext(settings=settings, storage=create_storage(settings))
