"""
Salida (decampment) de familias de un evento y cierre de la operación.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from evacuation_api.exceptions import BadRequestError, ConflictError, NotFoundError
from evacuation_api.models import (
    Disaster, DisasterEvacuationEvent, EvacuationCenter, EvacuationRegistration, as_utc, utcnow,
)
from evacuation_api.schemas import RegistrationOut
from evacuation_api.services.lookups import get_event_or_404
from evacuation_api.services.search_cache import SearchCache

logger = logging.getLogger(__name__)


def parse_timestamp(raw: str, field: str = "decampment_timestamp") -> datetime:
    """ISO 8601 -> datetime UTC aware (los valores naive se consideran UTC)."""
    try:
        value = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        raise BadRequestError(f"Invalid {field} (must be ISO 8601).")
    return as_utc(value)


def _serialize(regs: List[EvacuationRegistration]) -> List[Dict[str, Any]]:
    return [RegistrationOut.model_validate(r).model_dump(mode="json") for r in regs]


async def _ensure_event_open(db: AsyncSession, event_id: int) -> DisasterEvacuationEvent:
    event = await get_event_or_404(db, event_id)
    if event.is_ended:
        logger.warning("Write attempted on ended evacuation event", extra={"event_id": event_id})
        raise ConflictError("Evacuation operation already ended.")
    return event


async def count_active(db: AsyncSession, event_id: int) -> int:
    return await db.scalar(
        select(func.count(EvacuationRegistration.id)).where(
            EvacuationRegistration.disaster_evacuation_event_id == event_id,
            EvacuationRegistration.decampment_timestamp.is_(None),
        )
    ) or 0


class DecampService:

    @staticmethod
    async def decamp_family(
        db: AsyncSession,
        cache: SearchCache,
        event_id: int,
        family_head_id: int,
        raw_timestamp: Optional[str],
        dry_run: bool = False,
    ) -> Dict[str, Any]:
        """
        Marca (o deshace) la salida de toda la familia en el evento.
        ``raw_timestamp`` null o vacío deshace la salida.
        """
        mutated = False
        try:
            event = await _ensure_event_open(db, event_id)

            if raw_timestamp is None or not raw_timestamp.strip():
                result = await DecampService._clear(db, event, family_head_id, dry_run)
            else:
                result = await DecampService._set(db, event, family_head_id, raw_timestamp, dry_run)

            if dry_run:
                await db.rollback()
            else:
                await db.commit()
                mutated = True
        except Exception:
            await db.rollback()
            raise
        finally:
            if mutated:
                cache.invalidate()

        return result

    @staticmethod
    async def _clear(
        db: AsyncSession, event: DisasterEvacuationEvent, family_head_id: int, dry_run: bool
    ) -> Dict[str, Any]:
        family_regs = (await db.scalars(
            select(EvacuationRegistration)
            .where(
                EvacuationRegistration.disaster_evacuation_event_id == event.id,
                EvacuationRegistration.family_head_id == family_head_id,
            )
            .order_by(EvacuationRegistration.arrival_timestamp.desc(), EvacuationRegistration.id.desc())
        )).all()
        member_ids = {r.evacuee_resident_id for r in family_regs}
        family_reg_ids = [r.id for r in family_regs]

        # Ningún miembro puede volver si sigue activo fuera de esta familia (otro evento u otra familia)
        if member_ids:
            other = (await db.execute(
                select(EvacuationRegistration, DisasterEvacuationEvent, EvacuationCenter.name, Disaster)
                .join(
                    DisasterEvacuationEvent,
                    EvacuationRegistration.disaster_evacuation_event_id == DisasterEvacuationEvent.id,
                )
                .join(EvacuationCenter, DisasterEvacuationEvent.evacuation_center_id == EvacuationCenter.id, isouter=True)
                .join(Disaster, DisasterEvacuationEvent.disaster_id == Disaster.id, isouter=True)
                .where(
                    EvacuationRegistration.evacuee_resident_id.in_(member_ids),
                    EvacuationRegistration.decampment_timestamp.is_(None),
                    EvacuationRegistration.id.not_in(family_reg_ids),
                )
                .limit(1)
            )).first()
            if other is not None:
                _, other_event, ec_name, disaster = other
                payload = {
                    "allowed": False,
                    "code": "UndecampConflict",
                    "ec_name": ec_name,
                    "event_id": other_event.id,
                    "disaster_id": disaster.id if disaster else None,
                    "disaster_name": disaster.disaster_name if disaster else None,
                    "disaster_type_name": disaster.disaster_type if disaster else None,
                }
                message = (
                    f"This family is already active{f' in {ec_name}' if ec_name else ''}. "
                    "Only one active event is allowed."
                )
                logger.warning("Undecamp blocked: member active outside this family", extra={
                    "event_id": event.id, "family_head_id": family_head_id, "other_event_id": other_event.id,
                })
                if dry_run:
                    return {**payload, "message": message}
                raise ConflictError(message, extra=payload)

        if dry_run:
            return {"allowed": True}

        # Reactivar el último registro cerrado de cada miembro que no esté ya activo
        already_active = {r.evacuee_resident_id for r in family_regs if r.decampment_timestamp is None}
        latest_by_member: Dict[int, EvacuationRegistration] = {}
        for reg in family_regs:
            if reg.evacuee_resident_id not in already_active:
                latest_by_member.setdefault(reg.evacuee_resident_id, reg)

        now = utcnow()
        cleared = []
        for reg in latest_by_member.values():
            if reg.decampment_timestamp is not None:
                reg.decampment_timestamp = None
                reg.updated_at = now
                cleared.append(reg)
        await db.flush()

        logger.info("Decampment cleared", extra={
            "event_id": event.id, "family_head_id": family_head_id, "updated": len(cleared),
        })
        return {
            "message": "Decampment cleared for the family.",
            "updated": len(cleared),
            "rows": _serialize(cleared),
        }

    @staticmethod
    async def _set(
        db: AsyncSession,
        event: DisasterEvacuationEvent,
        family_head_id: int,
        raw_timestamp: str,
        dry_run: bool,
    ) -> Dict[str, Any]:
        ts = parse_timestamp(raw_timestamp)

        disaster = await db.get(Disaster, event.disaster_id)
        if disaster is None:
            raise NotFoundError("Disaster not found for the event.")
        if ts <= as_utc(disaster.disaster_start_date):
            logger.warning("Decampment before disaster start", extra={"event_id": event.id, "family_head_id": family_head_id})
            raise BadRequestError("Decampment must be after the disaster_start_date.")

        family_filter = (
            EvacuationRegistration.disaster_evacuation_event_id == event.id,
            EvacuationRegistration.family_head_id == family_head_id,
        )
        earliest = await db.scalar(
            select(func.min(EvacuationRegistration.arrival_timestamp)).where(
                *family_filter, EvacuationRegistration.decampment_timestamp.is_(None)
            )
        )
        if earliest is None:
            earliest = await db.scalar(
                select(func.min(EvacuationRegistration.arrival_timestamp)).where(*family_filter)
            )
        if earliest is None:
            logger.warning("No registrations for family in event", extra={"event_id": event.id, "family_head_id": family_head_id})
            raise NotFoundError("No registrations for this family in the event.")

        if ts <= as_utc(earliest):
            logger.warning("Decampment before earliest arrival", extra={"event_id": event.id, "family_head_id": family_head_id})
            raise BadRequestError("Decampment must be later than the family's earliest arrival.")

        if dry_run:
            return {"allowed": True}

        regs = (await db.scalars(select(EvacuationRegistration).where(*family_filter))).all()
        now = utcnow()
        for reg in regs:
            reg.decampment_timestamp = ts
            reg.updated_at = now
        await db.flush()

        logger.info("Decampment saved", extra={
            "event_id": event.id, "family_head_id": family_head_id, "updated": len(regs),
        })
        return {
            "message": "Decampment saved for the family.",
            "updated": len(regs),
            "rows": _serialize(list(regs)),
        }

    # -------------------- Operaciones sobre el evento --------------------

    @staticmethod
    async def undecamped_count(db: AsyncSession, event_id: int) -> Dict[str, int]:
        return {"count": await count_active(db, event_id)}

    @staticmethod
    async def decamp_all(
        db: AsyncSession, cache: SearchCache, event_id: int, raw_timestamp: str
    ) -> Dict[str, Any]:
        """Cierra todos los registros activos cuya llegada es anterior al timestamp."""
        if not raw_timestamp or not raw_timestamp.strip():
            raise BadRequestError("decampment_timestamp (ISO) is required.")
        ts = parse_timestamp(raw_timestamp)

        mutated = False
        try:
            event = await _ensure_event_open(db, event_id)
            start = as_utc(event.evacuation_start_date)
            if start is not None and ts <= start:
                raise BadRequestError("Decampment must be later than the evacuation_start_date.")

            regs = (await db.scalars(
                select(EvacuationRegistration).where(
                    EvacuationRegistration.disaster_evacuation_event_id == event_id,
                    EvacuationRegistration.decampment_timestamp.is_(None),
                )
            )).all()
            now = utcnow()
            updated = 0
            for reg in regs:
                if as_utc(reg.arrival_timestamp) < ts:
                    reg.decampment_timestamp = ts
                    reg.updated_at = now
                    updated += 1
            await db.flush()
            remaining = await count_active(db, event_id)

            await db.commit()
            mutated = True
        except Exception:
            await db.rollback()
            raise
        finally:
            if mutated:
                cache.invalidate()

        logger.info("Decamped all eligible families", extra={
            "event_id": event_id, "updated": updated, "remaining": remaining,
        })
        return {
            "message": "Decamped all eligible families.",
            "updated": updated,
            "remaining_undecamped": remaining,
        }

    @staticmethod
    async def end_operation(
        db: AsyncSession, cache: SearchCache, event_id: int, end_date: Optional[datetime]
    ) -> Dict[str, Any]:
        ts = as_utc(end_date) if end_date else utcnow()
        mutated = False
        try:
            event = await _ensure_event_open(db, event_id)
            if await count_active(db, event_id) > 0:
                logger.warning("Cannot end operation with active registrations", extra={"event_id": event_id})
                raise ConflictError("Cannot end operation: there are still undecamped families.")

            event.evacuation_end_date = ts
            await db.commit()
            mutated = True
        except Exception:
            await db.rollback()
            raise
        finally:
            if mutated:
                cache.invalidate()

        logger.info("Evacuation operation ended", extra={"event_id": event_id})
        return {
            "message": "Evacuation operation ended.",
            "event": {"id": event.id, "evacuation_end_date": ts.isoformat()},
        }
