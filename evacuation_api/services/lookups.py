"""
Consultas compartidas por los servicios de evacuados (get-or-404 y similares).
"""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from evacuation_api.exceptions import BadRequestError, NotFoundError
from evacuation_api.models import (
    DisasterEvacuationEvent, EvacuationCenter, EvacuationCenterRoom,
    EvacuationRegistration, EvacueeResident, FamilyHead, Resident,
)

logger = logging.getLogger(__name__)


async def get_event_or_404(db: AsyncSession, event_id: int) -> DisasterEvacuationEvent:
    event = await db.get(DisasterEvacuationEvent, event_id)
    if event is None:
        logger.warning("Evacuation event not found", extra={"event_id": event_id})
        raise NotFoundError("Disaster evacuation event not found.")
    return event


async def get_room_for_event(
    db: AsyncSession, event: DisasterEvacuationEvent, room_id: int
) -> EvacuationCenterRoom:
    """La habitación debe existir y pertenecer al centro del evento."""
    room = await db.get(EvacuationCenterRoom, room_id)
    if room is None:
        logger.warning("Room not found", extra={"ec_rooms_id": room_id})
        raise NotFoundError("Evacuation center room not found.")
    if room.evacuation_center_id != event.evacuation_center_id:
        logger.warning(
            "Room does not belong to the event's evacuation center",
            extra={"ec_rooms_id": room_id, "event_id": event.id},
        )
        raise BadRequestError("The selected room does not belong to this event's evacuation center.")
    return room


async def get_evacuee_or_404(db: AsyncSession, evacuee_id: int) -> Tuple[EvacueeResident, Resident]:
    row = (await db.execute(
        select(EvacueeResident, Resident)
        .join(Resident, EvacueeResident.resident_id == Resident.id)
        .where(EvacueeResident.id == evacuee_id)
    )).first()
    if row is None:
        logger.warning("Evacuee not found", extra={"evacuee_id": evacuee_id})
        raise NotFoundError("Evacuee not found.")
    return row[0], row[1]


async def get_family_head_or_404(db: AsyncSession, family_head_id: int) -> FamilyHead:
    head = await db.get(FamilyHead, family_head_id)
    if head is None:
        logger.warning("Family head not found", extra={"family_head_id": family_head_id})
        raise NotFoundError("Family head not found.")
    return head


async def active_registrations(
    db: AsyncSession, evacuee_id: int
) -> List[Tuple[EvacuationRegistration, Optional[str]]]:
    """Registros activos (sin decampment) del evacuado en cualquier evento, con el nombre del centro."""
    rows = await db.execute(
        select(EvacuationRegistration, EvacuationCenter.name)
        .join(
            DisasterEvacuationEvent,
            EvacuationRegistration.disaster_evacuation_event_id == DisasterEvacuationEvent.id,
        )
        .join(EvacuationCenter, DisasterEvacuationEvent.evacuation_center_id == EvacuationCenter.id, isouter=True)
        .where(
            EvacuationRegistration.evacuee_resident_id == evacuee_id,
            EvacuationRegistration.decampment_timestamp.is_(None),
        )
        .order_by(EvacuationRegistration.arrival_timestamp.desc())
    )
    return [(reg, ec_name) for reg, ec_name in rows.all()]


async def latest_registration(
    db: AsyncSession, evacuee_id: int, event_id: int
) -> Optional[EvacuationRegistration]:
    """Último registro (por llegada) del evacuado en el evento, activo o no."""
    return await db.scalar(
        select(EvacuationRegistration)
        .where(
            EvacuationRegistration.evacuee_resident_id == evacuee_id,
            EvacuationRegistration.disaster_evacuation_event_id == event_id,
        )
        .order_by(EvacuationRegistration.arrival_timestamp.desc(), EvacuationRegistration.id.desc())
        .limit(1)
    )
