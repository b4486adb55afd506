"""
Disponibilidad de habitaciones del centro de un evento.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from evacuation_api.models import EvacuationCenterRoom, EvacuationRegistration
from evacuation_api.schemas import RoomAvailability
from evacuation_api.services.lookups import get_event_or_404

logger = logging.getLogger(__name__)


class RoomService:

    @staticmethod
    async def rooms_for_event(db: AsyncSession, event_id: int, only_available: bool = True) -> Dict[str, Any]:
        event = await get_event_or_404(db, event_id)

        rooms = (await db.scalars(
            select(EvacuationCenterRoom)
            .where(EvacuationCenterRoom.evacuation_center_id == event.evacuation_center_id)
            .order_by(EvacuationCenterRoom.room_name)
        )).all()

        occupied = dict((await db.execute(
            select(EvacuationRegistration.ec_rooms_id, func.count(EvacuationRegistration.id))
            .where(
                EvacuationRegistration.disaster_evacuation_event_id == event_id,
                EvacuationRegistration.decampment_timestamp.is_(None),
                EvacuationRegistration.ec_rooms_id.is_not(None),
            )
            .group_by(EvacuationRegistration.ec_rooms_id)
        )).all())

        data = []
        for room in rooms:
            capacity = room.individual_room_capacity or 0
            available = max(capacity - occupied.get(room.id, 0), 0)
            if only_available and available <= 0:
                continue
            data.append(RoomAvailability(
                id=room.id, room_name=room.room_name, capacity=capacity, available=available,
            ))

        logger.debug("rooms fetched", extra={"event_id": event_id, "rooms": len(data)})
        return {
            "message": "Rooms fetched successfully.",
            "count": len(data),
            "data": data,
            "all_full": only_available and len(data) == 0,
        }
