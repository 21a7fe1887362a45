"""Shared MongoDB helpers for the audit stores."""

import re
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import (
    ConnectionFailure,
    NetworkTimeout,
    PyMongoError,
    ServerSelectionTimeoutError,
)

from ..errors import BuildLensError, StoreUnavailable, WriteFailure
from ..models.config import LensSettings, MongoSettings

__all__ = [
    "OBJECT_ID_LENGTH",
    "connect",
    "translate_write_error",
    "reading",
    "id_filter",
    "find_by_id",
]

OBJECT_ID_LENGTH = 24


def connect(mongo: MongoSettings, lens: LensSettings) -> MongoClient:
    """Create a client whose calls fail fast instead of hanging the caller."""
    return MongoClient(
        mongo.connection_string,
        serverSelectionTimeoutMS=lens.timeout_ms,
        socketTimeoutMS=lens.timeout_ms,
        connectTimeoutMS=lens.timeout_ms,
    )


def translate_write_error(exc: PyMongoError) -> BuildLensError:
    """
    Map a driver error raised by a write onto the engine taxonomy.

    A store that cannot be reached at all is StoreUnavailable. A timeout on an
    in-flight request or a rejected write is a WriteFailure.
    """
    if isinstance(exc, NetworkTimeout):
        return WriteFailure(f"Write timed out: {exc}")
    if isinstance(exc, (ServerSelectionTimeoutError, ConnectionFailure)):
        return StoreUnavailable(f"Document store unavailable: {exc}")
    return WriteFailure(f"Write rejected: {exc}")


@contextmanager
def reading() -> Iterator[None]:
    """Translate connection-level failures during reads into StoreUnavailable."""
    try:
        yield
    except ConnectionFailure as e:
        raise StoreUnavailable(f"Document store unavailable: {e}") from e


def id_filter(record_id: str) -> Optional[dict[str, Any]]:
    """Exact-match filter on the document id, or None if it is not an ObjectId."""
    try:
        return {"_id": ObjectId(record_id)}
    except (InvalidId, TypeError):
        return None


def find_by_id(
    collection: Collection, record_id: str, *, prefix_lookup: bool
) -> Optional[dict[str, Any]]:
    """
    Find a document by full id, or by id prefix when enabled.

    The primary key cannot be prefix-matched by query, so short ids are
    matched against the separately indexed ``record_id`` copy. With prefix
    lookups disabled a short id is simply not found.
    """
    record_id = record_id.strip()
    if not record_id:
        return None

    with reading():
        exact = id_filter(record_id)
        if exact is not None:
            document = collection.find_one(exact)
            if document is not None:
                return document

        if not prefix_lookup or len(record_id) >= OBJECT_ID_LENGTH:
            return None

        return collection.find_one(
            {"record_id": {"$regex": f"^{re.escape(record_id.lower())}"}},
            sort=[("created_at", -1)],
        )
