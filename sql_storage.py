"""
Relational store (SQLAlchemy)

One table per entity, snake_case column names matching the model attributes.
Ids come from each table's autoincrement key; on SQLite the tables are created
with AUTOINCREMENT so a deleted id is never handed out again.

Un-featuring other rows and writing the featured one happen in a single
transaction, and featured writes from this process are serialized by a lock.
SQLite serializes writers itself. On servers running READ COMMITTED
(PostgreSQL, MySQL) two processes sharing one database can still both commit a
featured row, since neither UPDATE sees the other's uncommitted insert; reads
then return the newest flagged row and the next featured write clears the rest.
"""

import logging
import threading
from contextlib import nullcontext
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

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
from storage import Storage, backend_call, changes_of, coerce, list_read, merge

logger = logging.getLogger(__name__)

_KEEP_IDS = {"sqlite_autoincrement": True}


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"
    __table_args__ = _KEEP_IDS

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(Text, nullable=False)


class QuoteRow(Base):
    __tablename__ = "quotes"
    __table_args__ = _KEEP_IDS

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(Text, nullable=False)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    added_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class TipRow(Base):
    __tablename__ = "tips"
    __table_args__ = _KEEP_IDS

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    added_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class MediaRow(Base):
    __tablename__ = "media"
    __table_args__ = _KEEP_IDS

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    duration: Mapped[str] = mapped_column(String(16), nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    thumbnail: Mapped[str] = mapped_column(Text, nullable=False, default="")
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    added_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class ContactMessageRow(Base):
    __tablename__ = "contact_messages"
    __table_args__ = _KEEP_IDS

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    added_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class SubscriberRow(Base):
    __tablename__ = "subscribers"
    __table_args__ = _KEEP_IDS

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    subscription_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


class ChallengeRow(Base):
    __tablename__ = "challenges"
    __table_args__ = _KEEP_IDS

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    steps: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    added_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)


ENTITY = {
    UserRow: "user",
    QuoteRow: "quote",
    TipRow: "tip",
    MediaRow: "media",
    ContactMessageRow: "contact message",
    SubscriberRow: "subscriber",
    ChallengeRow: "challenge",
}


def to_record(model_cls, row):
    return model_cls.model_validate({c.key: getattr(row, c.key) for c in row.__table__.columns})


class SqlStorage(Storage):
    name = "SQL"

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session = sessionmaker(engine, expire_on_commit=False)
        self._featured_lock = threading.Lock()
        with backend_call("prepare", "tables", errors=SQLAlchemyError):
            Base.metadata.create_all(engine)

    def close(self) -> None:
        self.engine.dispose()

    # -------- Internals ---------

    def _get(self, row_cls, model_cls, *where, id: Optional[int] = None):
        criteria = where if id is None else (row_cls.id == id, *where)
        with backend_call("get", ENTITY[row_cls], id, errors=SQLAlchemyError), self._session() as session:
            row = session.scalars(select(row_cls).where(*criteria).limit(1)).first()
            return to_record(model_cls, row) if row is not None else None

    def _newest(self, row_cls, model_cls, *where, limit: Optional[int] = None) -> List:
        stamp = row_cls.subscription_date if row_cls is SubscriberRow else row_cls.added_date
        stmt = select(row_cls).where(*where).order_by(stamp.desc(), row_cls.id.desc())
        if limit:
            stmt = stmt.limit(limit)
        with backend_call("list", ENTITY[row_cls], errors=SQLAlchemyError), self._session() as session:
            return [to_record(model_cls, row) for row in session.scalars(stmt)]

    def _insert(self, row_cls, model_cls, data: Dict[str, Any], stamp: Optional[str] = "added_date",
                unfeature: Optional[tuple] = None):
        if stamp:
            data = {**data, stamp: utcnow()}
        guard = self._featured_lock if unfeature is not None else nullcontext()
        with guard, backend_call("create", ENTITY[row_cls], errors=SQLAlchemyError), \
                self._session.begin() as session:
            if unfeature is not None:
                self._unfeature(session, row_cls, *unfeature)
            row = row_cls(**data)
            session.add(row)
            session.flush()
            return to_record(model_cls, row)

    @staticmethod
    def _unfeature(session, row_cls, *where) -> None:
        session.execute(
            update(row_cls)
            .where(row_cls.featured.is_(True), *where)
            .values(featured=False)
            .execution_options(synchronize_session=False)
        )

    def _update(self, row_cls, model_cls, id: int, changes: Dict[str, Any],
                scope_of: Optional[Callable] = None):
        guard = self._featured_lock if scope_of is not None else nullcontext()
        with guard, backend_call("update", ENTITY[row_cls], id, errors=SQLAlchemyError), \
                self._session.begin() as session:
            row = session.get(row_cls, id)
            if row is None:
                return None
            existing = to_record(model_cls, row)
            updated = merge(existing, changes)
            scope = scope_of(existing, updated, changes) if scope_of else None
            if scope is not None:
                self._unfeature(session, row_cls, row_cls.id != id, *scope)
            for field in changes:
                setattr(row, field, getattr(updated, field))
            session.flush()
            return to_record(model_cls, row)

    def _delete(self, row_cls, id: int) -> bool:
        with backend_call("delete", ENTITY[row_cls], id, errors=SQLAlchemyError), self._session.begin() as session:
            row = session.get(row_cls, id)
            if row is None:
                return False
            session.delete(row)
            return True

    def _featured(self, row_cls, model_cls, *scope):
        flagged = self._newest(row_cls, model_cls, row_cls.featured.is_(True), *scope, limit=1)
        if flagged:
            return flagged[0]
        # Nothing flagged: fall back to the newest record in scope.
        newest = self._newest(row_cls, model_cls, *scope, limit=1)
        return newest[0] if newest else None

    # -------- Users ---------

    def get_user(self, id: int) -> Optional[User]:
        return self._get(UserRow, User, id=id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._get(UserRow, User, UserRow.username == username)

    def create_user(self, user: UserCreate) -> User:
        return self._insert(UserRow, User, coerce(UserCreate, user).model_dump(), stamp=None)

    # -------- Quotes ---------

    @list_read
    def get_all_quotes(self) -> List[Quote]:
        return self._newest(QuoteRow, Quote)

    def get_quote_by_id(self, id: int) -> Optional[Quote]:
        return self._get(QuoteRow, Quote, id=id)

    def get_featured_quote(self) -> Optional[Quote]:
        return self._featured(QuoteRow, Quote)

    def create_quote(self, quote: QuoteCreate) -> Quote:
        data = coerce(QuoteCreate, quote).model_dump()
        return self._insert(QuoteRow, Quote, data, unfeature=() if data["featured"] else None)

    def update_quote(self, id: int, quote: QuoteUpdate) -> Optional[Quote]:
        return self._update(
            QuoteRow, Quote, id, changes_of(QuoteUpdate, quote),
            scope_of=lambda old, new, changes: () if changes.get("featured") else None,
        )

    def delete_quote(self, id: int) -> bool:
        return self._delete(QuoteRow, id)

    # -------- Tips ---------

    @list_read
    def get_all_tips(self) -> List[Tip]:
        return self._newest(TipRow, Tip)

    def get_tip_by_id(self, id: int) -> Optional[Tip]:
        return self._get(TipRow, Tip, id=id)

    @list_read
    def get_tips_by_category(self, category: str) -> List[Tip]:
        return self._newest(TipRow, Tip, TipRow.category == category)

    def create_tip(self, tip: TipCreate) -> Tip:
        return self._insert(TipRow, Tip, coerce(TipCreate, tip).model_dump())

    def update_tip(self, id: int, tip: TipUpdate) -> Optional[Tip]:
        return self._update(TipRow, Tip, id, changes_of(TipUpdate, tip))

    def delete_tip(self, id: int) -> bool:
        return self._delete(TipRow, id)

    # -------- Media ---------

    @list_read
    def get_all_media(self) -> List[Media]:
        return self._newest(MediaRow, Media)

    @list_read
    def get_media_by_type(self, type: str) -> List[Media]:
        return self._newest(MediaRow, Media, MediaRow.type == type)

    def get_media_by_id(self, id: int) -> Optional[Media]:
        return self._get(MediaRow, Media, id=id)

    def get_featured_media(self, type: str) -> Optional[Media]:
        return self._featured(MediaRow, Media, MediaRow.type == type)

    def create_media(self, media: MediaCreate) -> Media:
        data = coerce(MediaCreate, media).model_dump()
        scope = (MediaRow.type == data["type"],) if data["featured"] else None
        return self._insert(MediaRow, Media, data, unfeature=scope)

    def update_media(self, id: int, media: MediaUpdate) -> Optional[Media]:
        def scope_of(old, new, changes):
            if new.featured and (changes.get("featured") or new.type != old.type):
                return (MediaRow.type == new.type,)
            return None

        return self._update(MediaRow, Media, id, changes_of(MediaUpdate, media), scope_of=scope_of)

    def delete_media(self, id: int) -> bool:
        return self._delete(MediaRow, id)

    # -------- Contact messages ---------

    def create_contact_message(self, message: ContactMessageCreate) -> ContactMessage:
        data = coerce(ContactMessageCreate, message).model_dump()
        return self._insert(ContactMessageRow, ContactMessage, data)

    @list_read
    def get_all_contact_messages(self) -> List[ContactMessage]:
        return self._newest(ContactMessageRow, ContactMessage)

    # -------- Newsletter subscribers ---------

    def add_subscriber(self, subscriber: SubscriberCreate) -> Subscriber:
        data = coerce(SubscriberCreate, subscriber).model_dump()
        by_email = SubscriberRow.email == data["email"]
        existing = self._get(SubscriberRow, Subscriber, by_email)
        if existing is not None:
            return existing
        try:
            return self._insert(SubscriberRow, Subscriber, data, stamp="subscription_date")
        except StorageError as exc:
            if not isinstance(exc.__cause__, IntegrityError):
                raise
        # Same address subscribed concurrently; hand back that record.
        logger.info("Subscriber %s was added concurrently", data["email"])
        existing = self._get(SubscriberRow, Subscriber, by_email)
        if existing is None:
            raise StorageError("create", "subscriber", detail="unique constraint violated")
        return existing

    @list_read
    def get_all_subscribers(self) -> List[Subscriber]:
        return self._newest(SubscriberRow, Subscriber)

    # -------- Challenges ---------

    @list_read
    def get_all_challenges(self) -> List[Challenge]:
        return self._newest(ChallengeRow, Challenge)

    def get_challenge_by_id(self, id: int) -> Optional[Challenge]:
        return self._get(ChallengeRow, Challenge, id=id)

    @list_read
    def get_challenges_by_category(self, category: str) -> List[Challenge]:
        return self._newest(ChallengeRow, Challenge, ChallengeRow.category == category)

    def create_challenge(self, challenge: ChallengeCreate) -> Challenge:
        return self._insert(ChallengeRow, Challenge, coerce(ChallengeCreate, challenge).model_dump())

    def update_challenge(self, id: int, challenge: ChallengeUpdate) -> Optional[Challenge]:
        return self._update(ChallengeRow, Challenge, id, changes_of(ChallengeUpdate, challenge))

    def delete_challenge(self, id: int) -> bool:
        return self._delete(ChallengeRow, id)
