"""
Registro y actualización de evacuados en eventos de evacuación.

Cada operación corre en una única transacción: si algo falla se hace
rollback completo y no queda ninguna fila a medias. La caché de búsqueda
se invalida solo después del commit.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from evacuation_api.exceptions import BadRequestError, ConflictError
from evacuation_api.models import (
    EvacuationRegistration, EvacueeResident, FamilyHead, Resident, utcnow,
)
from evacuation_api.schemas import (
    HEAD, EvacueeRegister, EvacueeUpdate, RegistrationOut,
    build_snapshot, normalize_relationship, normalize_suffix,
)
from evacuation_api.services.lookups import (
    active_registrations, get_event_or_404, get_evacuee_or_404,
    get_family_head_or_404, get_room_for_event, latest_registration,
)
from evacuation_api.services.search_cache import SearchCache

logger = logging.getLogger(__name__)

# Campos obligatorios cuando se crea una persona nueva
CREATE_REQUIRED_FIELDS = ("first_name", "last_name", "birthdate", "sex", "barangay_of_origin")


def compute_age(birthdate: Optional[date], on: Optional[date] = None) -> int:
    """
    Años cumplidos en la fecha ``on`` (hoy por defecto).
    Tiene en cuenta mes y día; nunca negativo; 0 si no hay fecha de nacimiento.
    """
    if birthdate is None:
        return 0
    if isinstance(birthdate, str):
        birthdate = date.fromisoformat(birthdate[:10])
    if on is None:
        on = utcnow().date()
    elif isinstance(on, datetime):
        on = on.date()
    age = on.year - birthdate.year
    if (on.month, on.day) < (birthdate.month, birthdate.day):
        age -= 1
    return max(0, age)


def global_profile(evacuee: EvacueeResident, resident: Resident) -> Dict[str, Any]:
    """Valores globales (residente + evacuado) usados como base del snapshot."""
    return {
        "first_name": resident.first_name,
        "middle_name": resident.middle_name,
        "last_name": resident.last_name,
        "suffix": resident.suffix,
        "sex": resident.sex,
        "birthdate": resident.birthdate,
        "barangay_of_origin": resident.barangay_of_origin,
        "marital_status": evacuee.marital_status,
        "purok": evacuee.purok,
        "educational_attainment": evacuee.educational_attainment,
        "occupation": evacuee.occupation,
        "school_of_origin": evacuee.school_of_origin,
        "relationship_to_family_head": evacuee.relationship_to_family_head,
    }


class RegistrationService:
    """Alta y edición de registros de evacuados (por evento)"""

    # -------------------- Jefe de familia --------------------

    @staticmethod
    async def lookup_or_create_family_head(db: AsyncSession, resident_id: int) -> int:
        """Nunca crea un segundo FamilyHead para el mismo residente."""
        head_id = await db.scalar(select(FamilyHead.id).where(FamilyHead.resident_id == resident_id))
        if head_id is not None:
            return head_id
        head = FamilyHead(resident_id=resident_id)
        db.add(head)
        await db.flush()
        logger.info("Family head created", extra={"family_head_id": head.id, "resident_id": resident_id})
        return head.id

    @staticmethod
    async def resolve_family_head_id(
        db: AsyncSession,
        *,
        desired_rel: str,
        resident_id: int,
        requested_family_head_id: Optional[int],
        evacuee: Optional[EvacueeResident] = None,
    ) -> int:
        """
        family_head_id que se guardará en el registro:
          - jefe: reutiliza el de casa si ya era jefe, si no busca o crea uno;
          - miembro: exige ``family_head_id`` existente.
        """
        if desired_rel == HEAD:
            if evacuee is not None and evacuee.is_head and evacuee.family_head_id:
                return evacuee.family_head_id
            return await RegistrationService.lookup_or_create_family_head(db, resident_id)

        if not requested_family_head_id:
            logger.warning("Missing family_head_id for non-head member", extra={"resident_id": resident_id})
            raise BadRequestError(
                "Missing family_head_id. When the evacuee is not the head, "
                "a valid family_head_id must be provided."
            )
        await get_family_head_or_404(db, requested_family_head_id)
        return requested_family_head_id

    # -------------------- Exclusión mutua --------------------

    @staticmethod
    async def ensure_not_active(db: AsyncSession, evacuee_id: int, event_id: int) -> None:
        """Un evacuado no puede tener dos registros activos a la vez."""
        active = await active_registrations(db, evacuee_id)
        if not active:
            return

        for reg, ec_name in active:
            if reg.disaster_evacuation_event_id == event_id:
                logger.warning(
                    "Evacuee already active in this event",
                    extra={"evacuee_id": evacuee_id, "event_id": event_id},
                )
                raise ConflictError(
                    f"This evacuee is already actively registered in this event "
                    f"({ec_name or 'this evacuation center'}). Use Edit to update the existing record."
                )

        reg, ec_name = active[0]
        logger.warning(
            "Evacuee active in another event",
            extra={"evacuee_id": evacuee_id, "event_id": event_id, "other_event_id": reg.disaster_evacuation_event_id},
        )
        raise ConflictError(
            f"This evacuee is still actively registered in another event "
            f"({ec_name or 'another evacuation center'}). Please decamp them first before registering here."
        )

    # -------------------- Registro --------------------

    @staticmethod
    async def register(db: AsyncSession, cache: SearchCache, data: EvacueeRegister) -> Dict[str, Any]:
        try:
            event = await get_event_or_404(db, data.disaster_evacuation_event_id)
            if data.ec_rooms_id is not None:
                await get_room_for_event(db, event, data.ec_rooms_id)

            if data.existing_evacuee_resident_id:
                result = await RegistrationService._register_existing(db, data)
                message = "Evacuee registered successfully (existing person reused)."
            else:
                result = await RegistrationService._register_new(db, data)
                message = "Evacuee registered successfully."

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        cache.invalidate()
        evacuee, registration = result
        logger.info(message, extra={
            "evacuee_id": evacuee.id,
            "registration_id": registration.id,
            "event_id": registration.disaster_evacuation_event_id,
        })
        logger.debug("Registration snapshot", extra={"snapshot": registration.profile_snapshot})

        return {
            "message": message,
            "data": {
                "evacuee": {
                    "id": evacuee.id,
                    "resident_id": evacuee.resident_id,
                    "family_head_id": registration.family_head_id,
                    "relationship_to_family_head": evacuee.relationship_to_family_head,
                },
                "evacuation_registration": RegistrationOut.model_validate(registration).model_dump(mode="json"),
            },
        }

    @staticmethod
    async def _register_existing(
        db: AsyncSession, data: EvacueeRegister
    ) -> Tuple[EvacueeResident, EvacuationRegistration]:
        evacuee, resident = await get_evacuee_or_404(db, data.existing_evacuee_resident_id)
        await RegistrationService.ensure_not_active(db, evacuee.id, data.disaster_evacuation_event_id)

        desired_rel = (
            normalize_relationship(data.relationship_to_family_head)
            or evacuee.relationship_to_family_head
            or HEAD
        )
        family_head_id = await RegistrationService.resolve_family_head_id(
            db,
            desired_rel=desired_rel,
            resident_id=resident.id,
            requested_family_head_id=data.family_head_id,
            evacuee=evacuee,
        )

        snapshot = build_snapshot(
            data.present_fields(), global_profile(evacuee, resident), relationship=desired_rel
        )
        registration = await RegistrationService._insert_registration(
            db, evacuee.id, data.disaster_evacuation_event_id, family_head_id,
            data.ec_rooms_id, snapshot, data.vulnerability_ids(),
        )
        return evacuee, registration

    @staticmethod
    async def _register_new(
        db: AsyncSession, data: EvacueeRegister
    ) -> Tuple[EvacueeResident, EvacuationRegistration]:
        missing = [f for f in CREATE_REQUIRED_FIELDS if getattr(data, f) in (None, "")]
        if missing:
            logger.warning("Missing required fields for new evacuee", extra={"missing": missing})
            raise BadRequestError(f"Missing required fields: {', '.join(missing)}.")

        desired_rel = normalize_relationship(data.relationship_to_family_head) or HEAD

        resident = Resident(
            first_name=data.first_name,
            middle_name=data.middle_name,
            last_name=data.last_name,
            suffix=normalize_suffix(data.suffix),
            birthdate=data.birthdate,
            sex=data.sex,
            barangay_of_origin=data.barangay_of_origin,
        )
        db.add(resident)
        await db.flush()

        family_head_id = await RegistrationService.resolve_family_head_id(
            db,
            desired_rel=desired_rel,
            resident_id=resident.id,
            requested_family_head_id=data.family_head_id,
        )

        evacuee = EvacueeResident(
            resident_id=resident.id,
            marital_status=data.marital_status,
            educational_attainment=data.educational_attainment,
            school_of_origin=data.school_of_origin,
            occupation=data.occupation,
            purok=data.purok,
            family_head_id=family_head_id,
            relationship_to_family_head=desired_rel,
            date_registered=data.date_registered or utcnow(),
        )
        db.add(evacuee)
        await db.flush()

        snapshot = build_snapshot(data.present_fields(), relationship=desired_rel)
        registration = await RegistrationService._insert_registration(
            db, evacuee.id, data.disaster_evacuation_event_id, family_head_id,
            data.ec_rooms_id, snapshot, data.vulnerability_ids(),
        )
        return evacuee, registration

    @staticmethod
    async def _insert_registration(
        db: AsyncSession,
        evacuee_id: int,
        event_id: int,
        family_head_id: int,
        room_id: Optional[int],
        snapshot: Dict[str, Any],
        vulnerability_ids: list,
    ) -> EvacuationRegistration:
        now = utcnow()
        registration = EvacuationRegistration(
            evacuee_resident_id=evacuee_id,
            disaster_evacuation_event_id=event_id,
            family_head_id=family_head_id,
            ec_rooms_id=room_id,
            arrival_timestamp=now,
            decampment_timestamp=None,
            reported_age_at_arrival=compute_age(snapshot.get("birthdate"), now),
            profile_snapshot=snapshot,
            vulnerability_type_ids=vulnerability_ids,
            created_at=now,
            updated_at=now,
        )
        db.add(registration)
        await db.flush()
        return registration

    # -------------------- Actualización --------------------

    @staticmethod
    async def update(
        db: AsyncSession, cache: SearchCache, evacuee_id: int, data: EvacueeUpdate
    ) -> Dict[str, Any]:
        event_id = data.disaster_evacuation_event_id
        mutated = False
        try:
            evacuee, resident = await get_evacuee_or_404(db, evacuee_id)
            event = await get_event_or_404(db, event_id)
            if data.ec_rooms_id is not None:
                await get_room_for_event(db, event, data.ec_rooms_id)

            registration = await latest_registration(db, evacuee_id, event_id)
            snapshot_before = (registration.profile_snapshot if registration is not None else None) or {}

            # El rol del evento manda; el global solo es el valor por defecto
            current_rel = (
                normalize_relationship(snapshot_before.get("relationship_to_family_head"))
                or evacuee.relationship_to_family_head
                or HEAD
            )
            current_head_id = registration.family_head_id if registration is not None else evacuee.family_head_id
            desired_rel = normalize_relationship(data.relationship_to_family_head) or current_rel
            is_demoting = current_rel == HEAD and desired_rel != HEAD

            if is_demoting and current_head_id:
                active_members = await db.scalar(
                    select(func.count(EvacuationRegistration.id)).where(
                        EvacuationRegistration.family_head_id == current_head_id,
                        EvacuationRegistration.disaster_evacuation_event_id == event_id,
                        EvacuationRegistration.decampment_timestamp.is_(None),
                    )
                )
                if (active_members or 0) > 1:
                    logger.warning("Attempt to demote head with active family members", extra={
                        "evacuee_id": evacuee_id,
                        "family_head_id": current_head_id,
                        "event_id": event_id,
                    })
                    raise ConflictError(
                        "Cannot demote the family head while other family members are still assigned "
                        "in this event. Please transfer the head role to another member first."
                    )

            if registration is not None and desired_rel == current_rel and not data.family_head_id:
                # Mismo rol en el evento: el miembro sigue en su familia del evento
                family_head_id = registration.family_head_id
            else:
                family_head_id = await RegistrationService.resolve_family_head_id(
                    db,
                    desired_rel=desired_rel,
                    resident_id=resident.id,
                    requested_family_head_id=data.family_head_id,
                    evacuee=evacuee,
                )

            payload_fields = data.present_fields()
            base = global_profile(evacuee, resident)

            if registration is not None:
                snapshot = build_snapshot(
                    payload_fields, registration.profile_snapshot, base, relationship=desired_rel
                )
                registration.family_head_id = family_head_id
                registration.profile_snapshot = snapshot
                if data.any_flag_sent():
                    registration.vulnerability_type_ids = data.vulnerability_ids()
                if "ec_rooms_id" in data.model_fields_set:
                    registration.ec_rooms_id = data.ec_rooms_id
                registration.updated_at = utcnow()
                await db.flush()
                logger.debug("Updated evacuation registration", extra={"registration_id": registration.id})
            else:
                await RegistrationService.ensure_not_active(db, evacuee_id, event_id)
                snapshot = build_snapshot(payload_fields, base, relationship=desired_rel)
                registration = await RegistrationService._insert_registration(
                    db, evacuee_id, event_id, family_head_id,
                    data.ec_rooms_id, snapshot, data.vulnerability_ids(),
                )
                logger.debug("Inserted evacuation registration", extra={"registration_id": registration.id})

            await db.commit()
            mutated = True
        except Exception:
            await db.rollback()
            raise
        finally:
            if mutated:
                cache.invalidate()

        logger.info("Evacuee updated successfully (event-scoped)", extra={
            "evacuee_id": evacuee_id,
            "family_head_id": family_head_id,
            "event_id": event_id,
        })
        return {
            "message": "Evacuee updated successfully (event-scoped).",
            "data": {"evacuee_id": evacuee_id, "family_head_id": family_head_id},
        }
