"""
Transferencia del rol de jefe de familia.

El cambio es global (identidad del evacuado y todos los registros que
apuntaban al jefe anterior) y además se parchea el snapshot del evento
actual para que la vista de edición lo refleje de inmediato.
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from evacuation_api.exceptions import BadRequestError, NotFoundError
from evacuation_api.models import EvacuationRegistration, EvacueeResident, utcnow
from evacuation_api.schemas import HEAD, DEFAULT_OLD_HEAD_RELATIONSHIP, TransferHeadRequest, normalize_relationship
from evacuation_api.services.lookups import get_event_or_404, get_evacuee_or_404, get_family_head_or_404
from evacuation_api.services.registration_service import RegistrationService
from evacuation_api.services.search_cache import SearchCache

logger = logging.getLogger(__name__)


class TransferService:

    @staticmethod
    async def transfer_head(
        db: AsyncSession, cache: SearchCache, event_id: int, data: TransferHeadRequest
    ) -> Dict[str, Any]:
        from_id = data.from_family_head_id
        to_evacuee_id = data.to_evacuee_resident_id
        old_head_rel = normalize_relationship(data.old_head_new_relationship) or DEFAULT_OLD_HEAD_RELATIONSHIP
        if old_head_rel == HEAD:
            raise BadRequestError("old_head_new_relationship cannot be 'Head'.")

        mutated = False
        try:
            await get_event_or_404(db, event_id)

            membership = await db.scalar(
                select(EvacuationRegistration.id).where(
                    EvacuationRegistration.evacuee_resident_id == to_evacuee_id,
                    EvacuationRegistration.family_head_id == from_id,
                    EvacuationRegistration.disaster_evacuation_event_id == event_id,
                ).limit(1)
            )
            if membership is None:
                logger.warning("Transfer target is not a member of the family in this event", extra={
                    "event_id": event_id, "from_family_head_id": from_id, "to_evacuee_id": to_evacuee_id,
                })
                raise BadRequestError("The selected member does not belong to this family in this event.")

            promotee, _ = await get_evacuee_or_404(db, to_evacuee_id)
            old_head = await get_family_head_or_404(db, from_id)
            if promotee.resident_id == old_head.resident_id:
                raise BadRequestError("The selected member is already the family head.")

            old_head_evacuees = (await db.scalars(
                select(EvacueeResident).where(EvacueeResident.resident_id == old_head.resident_id)
            )).all()
            if not old_head_evacuees:
                logger.warning("Old head evacuee record not found", extra={"family_head_id": from_id})
                raise NotFoundError("Evacuee record of the current family head not found.")

            new_head_id = await RegistrationService.lookup_or_create_family_head(db, promotee.resident_id)
            now = utcnow()

            # Repunte global (todas las familias y eventos)
            promotee.relationship_to_family_head = HEAD
            promotee.family_head_id = new_head_id
            promotee.updated_at = now
            for ev in old_head_evacuees:
                if (ev.relationship_to_family_head or HEAD) == HEAD:
                    ev.relationship_to_family_head = old_head_rel
                ev.family_head_id = new_head_id
                ev.updated_at = now
            await db.flush()

            await db.execute(
                update(EvacueeResident)
                .where(EvacueeResident.family_head_id == from_id)
                .values(family_head_id=new_head_id, updated_at=now)
            )
            await db.execute(
                update(EvacuationRegistration)
                .where(EvacuationRegistration.family_head_id == from_id)
                .values(family_head_id=new_head_id, updated_at=now)
            )

            # Parche del snapshot solo en este evento
            roles = {promotee.id: HEAD}
            roles.update({ev.id: old_head_rel for ev in old_head_evacuees})
            regs = (await db.scalars(
                select(EvacuationRegistration).where(
                    EvacuationRegistration.disaster_evacuation_event_id == event_id,
                    EvacuationRegistration.evacuee_resident_id.in_(list(roles)),
                )
            )).all()
            for reg in regs:
                reg.profile_snapshot = {
                    **(reg.profile_snapshot or {}),
                    "relationship_to_family_head": roles[reg.evacuee_resident_id],
                }
                reg.updated_at = now

            await db.commit()
            mutated = True
        except Exception:
            await db.rollback()
            raise
        finally:
            if mutated:
                cache.invalidate()

        logger.info("Family head transferred", extra={
            "event_id": event_id,
            "from_family_head_id": from_id,
            "new_family_head_id": new_head_id,
            "to_evacuee_id": to_evacuee_id,
        })
        return {
            "message": "Family head transferred successfully.",
            "data": {"new_family_head_id": new_head_id},
        }
