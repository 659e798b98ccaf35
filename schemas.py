"""
Database Schemas

Pydantic models for every record the content service stores.
These schemas validate input before it reaches a store and describe the
records every store hands back.

Each entity has three shapes:
- <Entity>Create -> fields accepted when creating a record
- <Entity>Update -> the same fields, all optional (partial merge)
- <Entity>       -> the stored record (id + timestamp assigned by the store)

Python attributes are snake_case. The camelCase aliases are the document
collection and JSON naming: added_date -> "addedDate".
"""

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

Category = Literal["Productivity", "Mindset", "Health", "Success"]
Difficulty = Literal["Easy", "Medium", "Hard"]
MediaType = Literal["video", "audio"]

CATEGORIES = ("Productivity", "Mindset", "Health", "Success")

DURATION_PATTERN = r"^\d+:[0-5]\d$"


def normalize_steps(value: Any) -> List[str]:
    """Coerce a persisted "steps" value into an ordered list of strings.

    Backends have been seen handing back an object keyed by index
    ({"0": "...", "1": "..."}) or a JSON string instead of an array.
    """
    if value is None:
        return []
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            return [value]
        if isinstance(decoded, (list, tuple, Mapping)):
            return normalize_steps(decoded)
        return [value]
    if isinstance(value, Mapping):
        keys = list(value.keys())
        if all(str(k).lstrip("-").isdigit() for k in keys):
            keys.sort(key=lambda k: int(k))
        return [str(value[k]) for k in keys]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [str(value)]


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StoredRecord(Record):
    id: int

    @field_validator("added_date", "subscription_date", mode="after", check_fields=False)
    @classmethod
    def _utc(cls, v):
        return as_utc(v)


# -------- Users ---------

class UserCreate(Record):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class User(StoredRecord, UserCreate):
    pass


# -------- Quotes ---------

class QuoteCreate(Record):
    """
    Quotes collection schema
    At most one quote is featured at any time.
    """
    text: str = Field(..., min_length=1, description="Quote text")
    author: str = Field(..., min_length=1, description="Who said it")
    featured: bool = Field(False, description="Shown as the quote of the day")


class QuoteUpdate(Record):
    text: Optional[str] = Field(None, min_length=1)
    author: Optional[str] = Field(None, min_length=1)
    featured: Optional[bool] = None


class Quote(StoredRecord, QuoteCreate):
    added_date: datetime


# -------- Tips ---------

class TipCreate(Record):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    category: Category


class TipUpdate(Record):
    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[Category] = None


class Tip(StoredRecord, TipCreate):
    added_date: datetime


# -------- Media ---------

class MediaCreate(Record):
    """
    Videos and audio tracks
    Featured is scoped per type: one featured video, one featured audio.
    """
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    type: MediaType
    url: str = Field(..., min_length=1)
    duration: str = Field(..., pattern=DURATION_PATTERN, description='Display duration, "M:SS"')
    duration_seconds: int = Field(..., ge=0, description="Duration in seconds")
    thumbnail: str = Field("", description="Thumbnail URL, empty for audio")
    featured: bool = False
    category: str = Field(..., min_length=1)


class MediaUpdate(Record):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    type: Optional[MediaType] = None
    url: Optional[str] = Field(None, min_length=1)
    duration: Optional[str] = Field(None, pattern=DURATION_PATTERN)
    duration_seconds: Optional[int] = Field(None, ge=0)
    thumbnail: Optional[str] = None
    featured: Optional[bool] = None
    category: Optional[str] = Field(None, min_length=1)


class Media(StoredRecord, MediaCreate):
    added_date: datetime


# -------- Contact messages ---------

class ContactMessageCreate(Record):
    name: str = Field(..., min_length=1)
    email: EmailStr
    message: str = Field(..., min_length=1)


class ContactMessage(StoredRecord, ContactMessageCreate):
    added_date: datetime


# -------- Newsletter subscribers ---------

class SubscriberCreate(Record):
    email: EmailStr

    @field_validator("email", mode="after")
    @classmethod
    def _lower(cls, v):
        return v.lower()


class Subscriber(StoredRecord, SubscriberCreate):
    subscription_date: datetime


# -------- Challenges ---------

class ChallengeCreate(Record):
    """
    Personal challenges
    steps is always an ordered list of strings, whatever the backend returned.
    """
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    category: Category
    difficulty: Difficulty
    duration: int = Field(..., ge=1, le=30, description="Length in days")
    steps: List[str] = Field(default_factory=list, description="Ordered step descriptions")

    @field_validator("steps", mode="before")
    @classmethod
    def _steps(cls, v):
        return normalize_steps(v)


class ChallengeUpdate(Record):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[Category] = None
    difficulty: Optional[Difficulty] = None
    duration: Optional[int] = Field(None, ge=1, le=30)
    steps: Optional[List[str]] = None

    @field_validator("steps", mode="before")
    @classmethod
    def _steps(cls, v):
        return None if v is None else normalize_steps(v)


class Challenge(StoredRecord, ChallengeCreate):
    added_date: datetime


class ChallengeInput(Record):
    """What a visitor tells the challenge generator. Never stored."""
    interests: List[str] = Field(..., min_length=1, description="At least one interest is required")
    goals: List[str] = Field(..., min_length=1, description="At least one goal is required")
    difficulty: Difficulty
    duration: int = Field(..., ge=1, le=30)
    category: Category
