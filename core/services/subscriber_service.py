import logging
from typing import Optional
from datetime import datetime, timezone
from pymongo.errors import PyMongoError
from core.base.models import Subscriber, SubscriberStatus
from core.repositories.subscriber_repository import SubscriberRepository
from core.base.exception import ServiceLevelError
from core.utils.str import normalize_email

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "community-join"

class SubscriberService:
    def __init__(self, repository: SubscriberRepository):
        self.repository = repository

    async def subscribe(self, email: str, name: Optional[str] = None, source: Optional[str] = None) -> Subscriber:
        """Add or re-activate a subscriber."""
        fields = {
            "subscribed_at": datetime.now(timezone.utc),
            "last_source": source or DEFAULT_SOURCE,
        }
        if name:
            fields["name"] = name
        return await self._set_status(normalize_email(email), SubscriberStatus.Subscribed, fields)

    async def unsubscribe(self, email: str) -> Subscriber:
        """Mark the subscriber with this email as unsubscribed, creating the record if needed."""
        fields = {"unsubscribed_at": datetime.now(timezone.utc)}
        return await self._set_status(normalize_email(email), SubscriberStatus.Unsubscribed, fields)

    async def resubscribe(self, email: str) -> Subscriber:
        fields = {"subscribed_at": datetime.now(timezone.utc)}
        return await self._set_status(normalize_email(email), SubscriberStatus.Subscribed, fields)
    async def unsubscribe_by_public_id(self, public_id: str) -> bool:
        """Returns whether a subscriber matched. Callers answer the same either way."""
        fields = {"unsubscribed_at": datetime.now(timezone.utc)}
        return await self._set_status_by_public_id(public_id, SubscriberStatus.Unsubscribed, fields)

    async def resubscribe_by_public_id(self, public_id: str) -> bool:
        fields = {"subscribed_at": datetime.now(timezone.utc)}
        return await self._set_status_by_public_id(public_id, SubscriberStatus.Subscribed, fields)

    async def _set_status(self, email: str, status: SubscriberStatus, fields: dict) -> Subscriber:
        try:
            subscriber = await self.repository._upsert_status(email, status, fields)
        except PyMongoError as e:
            logger.error("Upsert of %s to %s failed: %s", email, status.value, e)
            raise ServiceLevelError(message=f"set_status: {e}")
        if not subscriber:
            raise ServiceLevelError(message=f"Subscriber {email} missing after upsert")
        return subscriber

    async def _set_status_by_public_id(self, public_id: str, status: SubscriberStatus, fields: dict) -> bool:
        try:
            matched = await self.repository._update_status_by_public_id(public_id, status, fields)
        except PyMongoError as e:
            logger.error("Update of %s to %s failed: %s", public_id, status.value, e)
            raise ServiceLevelError(message=f"set_status_by_public_id: {e}")
        if not matched:
            logger.info("No subscriber with public id %s", public_id)
        return matched

def new_subscriber_service(repository: SubscriberRepository) -> SubscriberService:
    return SubscriberService(repository)
