from motor.motor_asyncio import AsyncIOMotorCollection
from typing import Optional
from core.base.models import Subscriber, SubscriberStatus
from core.utils.str import random_id
from datetime import datetime, timezone

class SubscriberRepository:
    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def _get_by_email(self, email: str) -> Optional[Subscriber]:
        """Retrieve a subscriber by email."""
        data = await self.collection.find_one({"email": email})
        if data:
            return Subscriber(**data)
        return None

    async def _upsert_status(self, email: str, status: SubscriberStatus, fields: dict) -> Optional[Subscriber]:
        """Set status on the subscriber with this email, creating it if needed."""
        now = datetime.now(timezone.utc)
        update_data = {**fields, "status": SubscriberStatus(status).value, "updated_at": now}
        await self.collection.update_one(
            {"email": email},
            {
                "$set": update_data,
                "$setOnInsert": {"public_id": random_id(), "created_at": now},
            },
            upsert=True,
        )
        return await self._get_by_email(email)

    async def _update_status_by_public_id(self, public_id: str, status: SubscriberStatus, fields: dict) -> bool:
        """Set status on an existing subscriber. Returns False if none matched."""
        update_data = {**fields, "status": SubscriberStatus(status).value, "updated_at": datetime.now(timezone.utc)}
        result = await self.collection.update_one(
            {"public_id": public_id}, {"$set": update_data}
        )
        return result.matched_count > 0
