"""
MongoDB helpers

Thin wrappers around pymongo used by the document store. Documents carry the
integer ``id`` assigned by the store; Mongo's own ``_id`` never leaves this
module.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

NO_OBJECT_ID = {"_id": 0}


def connect(database_url: str, database_name: str) -> Database:
    client = MongoClient(database_url, tz_aware=True, serverSelectionTimeoutMS=5000)
    return client[database_name]


def serialize_doc(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    """Model -> document, using the camelCase field aliases."""
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True)
    return dict(data)


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    doc = serialize_doc(data)
    # insert_one adds _id to the dict it is given
    db[collection_name].insert_one(dict(doc))
    return doc


def get_document(
    db: Database,
    collection_name: str,
    filter_dict: Dict[str, Any],
    sort: Optional[Sequence[Tuple[str, int]]] = None,
) -> Optional[Dict[str, Any]]:
    return db[collection_name].find_one(filter_dict, NO_OBJECT_ID, sort=sort)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    sort: Optional[Sequence[Tuple[str, int]]] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {}, NO_OBJECT_ID)
    if sort:
        cursor = cursor.sort(list(sort))
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
