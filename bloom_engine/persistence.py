"""
Persistence Collaborators

The engine writes whole JSON documents keyed by (user, category, filename)
and never reads them back, so no read-modify-write atomicity is needed.

- MongoPersistence: one MongoDB collection per category (motor, async)
- InMemoryPersistence: local runs and demos
"""

from typing import Any, Dict, List, Optional, Protocol, Tuple
from datetime import datetime, timezone
import logging

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from . import config
from .errors import ExternalServiceError

logger = logging.getLogger(__name__)


class Persistence(Protocol):
    """Durable write of one JSON document."""

    async def save(
        self,
        user_id: str,
        category: str,
        filename: str,
        payload: Dict[str, Any]
    ) -> None:
        ...


class MongoPersistence:
    """Upserts documents into `<database>.<category>`."""

    def __init__(
        self,
        uri: Optional[str] = None,
        database: Optional[str] = None,
        client: Optional[AsyncIOMotorClient] = None
    ):
        self.client = client or AsyncIOMotorClient(uri or config.MONGODB_URI)
        self.db = self.client[database or config.DATABASE_NAME]

    async def save(
        self,
        user_id: str,
        category: str,
        filename: str,
        payload: Dict[str, Any]
    ) -> None:
        doc = {
            "userId": user_id,
            "filename": filename,
            "payload": payload,
            "savedAt": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await self.db[category].update_one(
                {"userId": user_id, "filename": filename},
                {"$set": doc},
                upsert=True,
            )
        except PyMongoError as e:
            logger.error(f"MongoDB write error ({category}/{filename}): {e}")
            raise ExternalServiceError("persistence", str(e)) from e

    def close(self):
        self.client.close()


class InMemoryPersistence:
    """Keeps saved documents in a dict; later saves overwrite earlier ones."""

    def __init__(self):
        self.documents: Dict[Tuple[str, str, str], Dict[str, Any]] = {}

    async def save(
        self,
        user_id: str,
        category: str,
        filename: str,
        payload: Dict[str, Any]
    ) -> None:
        self.documents[(user_id, category, filename)] = payload

    def find(self, user_id: str, category: str) -> List[Dict[str, Any]]:
        """All documents of a category for one user, in save order."""
        return [
            payload for (uid, cat, _), payload in self.documents.items()
            if uid == user_id and cat == category
        ]
