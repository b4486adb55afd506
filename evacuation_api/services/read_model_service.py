"""
Vistas de lectura por evento: listado por familias, estadísticas,
formulario de edición, detalles del evento, barangays y servicios.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from evacuation_api.exceptions import NotFoundError
from evacuation_api.models import (
    Barangay, Disaster, DisasterEvacuationEvent, EvacuationCenter, EvacuationCenterRoom, EvacuationRegistration,
    EvacueeResident, FamilyHead, FamilyService, Resident, utcnow,
)
from evacuation_api.schemas import (
    HEAD, ServiceCreate, VulnerabilityType, display_name, flags_from_vulnerability_ids, merge_profile,
    vulnerability_names,
)
from evacuation_api.services.lookups import (
    get_event_or_404, get_evacuee_or_404, get_family_head_or_404, latest_registration,
)
from evacuation_api.services.registration_service import global_profile

logger = logging.getLogger(__name__)


# ---------- Edad y resumen demográfico ----------

def age_in_months(birthdate: date, on: date) -> int:
    months = (on.year - birthdate.year) * 12 + (on.month - birthdate.month)
    if on.day < birthdate.day:
        months -= 1
    return max(0, months)


def age_bucket(birthdate: Optional[date], on: Optional[date] = None) -> Tuple[Optional[str], str]:
    """
    Grupo de edad y texto de edad para los listados.
    Lactante hasta 12 meses; niño hasta 12 años; joven hasta 17; adulto hasta 59.
    """
    if birthdate is None:
        return None, "N/A"
    on = on or utcnow().date()
    months = age_in_months(birthdate, on)
    if months <= 12:
        return "infant", f"{months} month{'' if months == 1 else 's'}"
    years = months // 12
    if years <= 12:
        return "children", str(years)
    if years <= 17:
        return "youth", str(years)
    if years <= 59:
        return "adult", str(years)
    return "seniors", str(years)


def empty_summary() -> Dict[str, int]:
    return {
        "total_no_of_male": 0,
        "total_no_of_female": 0,
        "total_no_of_infant": 0,
        "total_no_of_children": 0,
        "total_no_of_youth": 0,
        "total_no_of_adult": 0,
        "total_no_of_seniors": 0,
        "total_no_of_pwd": 0,
        "total_no_of_pregnant": 0,
        "total_no_of_lactating_women": 0,
    }


def add_to_summary(summary: Dict[str, int], profile: Dict[str, Any], vulnerability_ids: Iterable[int]) -> str:
    """Suma una persona al resumen y devuelve su texto de edad."""
    birthdate = profile.get("birthdate")
    if isinstance(birthdate, str):
        birthdate = date.fromisoformat(birthdate[:10])
    bucket, age_str = age_bucket(birthdate)
    if bucket:
        summary[f"total_no_of_{bucket}"] += 1

    sex = profile.get("sex")
    if sex == "Male":
        summary["total_no_of_male"] += 1
    elif sex == "Female":
        summary["total_no_of_female"] += 1

    ids = {int(i) for i in vulnerability_ids or []}
    if VulnerabilityType.PWD in ids:
        summary["total_no_of_pwd"] += 1
    if VulnerabilityType.PREGNANT in ids:
        summary["total_no_of_pregnant"] += 1
    if VulnerabilityType.LACTATING in ids:
        summary["total_no_of_lactating_women"] += 1
    return age_str


async def _barangay_names(db: AsyncSession) -> Dict[int, str]:
    return dict((await db.execute(select(Barangay.id, Barangay.name))).all())


class ReadModelService:

    @staticmethod
    async def evacuees_information(db: AsyncSession, event_id: int) -> List[Dict[str, Any]]:
        """Registros del evento agrupados por familia."""
        rows = (await db.execute(
            select(EvacuationRegistration, EvacueeResident, Resident, EvacuationCenterRoom.room_name)
            .join(EvacueeResident, EvacuationRegistration.evacuee_resident_id == EvacueeResident.id)
            .join(Resident, EvacueeResident.resident_id == Resident.id)
            .join(EvacuationCenterRoom, EvacuationRegistration.ec_rooms_id == EvacuationCenterRoom.id, isouter=True)
            .where(EvacuationRegistration.disaster_evacuation_event_id == event_id)
            .order_by(EvacuationRegistration.arrival_timestamp, EvacuationRegistration.id)
        )).all()
        if not rows:
            logger.info("No registrations for evacuation event", extra={"event_id": event_id})
            return []

        center_name = await ReadModelService._center_name_for_event(db, event_id)
        barangays = await _barangay_names(db)

        families: Dict[int, List[Tuple]] = {}
        for row in rows:
            families.setdefault(row[0].family_head_id, []).append(row)

        services: Dict[int, List[Dict[str, Any]]] = {}
        service_rows = (await db.scalars(
            select(FamilyService)
            .where(
                FamilyService.disaster_evacuation_event_id == event_id,
                FamilyService.family_id.in_(list(families)),
            )
            .order_by(FamilyService.created_at.desc(), FamilyService.id.desc())
        )).all()
        for svc in service_rows:
            services.setdefault(svc.family_id, []).append({
                "service_received": svc.service_received,
                "created_at": svc.created_at,
            })

        response = []
        for family_head_id, members in families.items():
            summary = {**empty_summary(), "total_no_of_individuals": len(members), "total_no_of_family": 1}
            family_members = []
            head_profile = None
            for reg, evacuee, resident, room_name in members:
                profile = merge_profile(reg.profile_snapshot, global_profile(evacuee, resident))
                age_str = add_to_summary(summary, profile, reg.vulnerability_type_ids)
                if head_profile is None and profile.get("relationship_to_family_head") == HEAD:
                    head_profile = profile
                family_members.append({
                    "evacuee_id": evacuee.id,
                    "resident_id": resident.id,
                    "full_name": display_name(profile) or "Unknown",
                    "age": age_str,
                    "barangay_of_origin": barangays.get(profile.get("barangay_of_origin"), "Unknown"),
                    "sex": profile.get("sex") or "Unknown",
                    "vulnerability_types": vulnerability_names(reg.vulnerability_type_ids),
                    "room_name": room_name or "Unknown",
                    "arrival_timestamp": reg.arrival_timestamp,
                    "relationship_to_family_head": profile.get("relationship_to_family_head"),
                })
            if head_profile is None:
                first_reg, first_evacuee, first_resident, _ = members[0]
                head_profile = merge_profile(first_reg.profile_snapshot, global_profile(first_evacuee, first_resident))

            first_reg, _, _, first_room = members[0]
            head_name = display_name(head_profile) or "Unknown"
            response.append({
                "id": family_head_id,
                "disaster_evacuation_event_id": event_id,
                "family_head_full_name": head_name,
                "barangay": barangays.get(head_profile.get("barangay_of_origin"), "Unknown"),
                "total_individuals": len(members),
                "room_name": first_room or "Unknown",
                "decampment_timestamp": first_reg.decampment_timestamp,
                "view_family": {
                    "evacuation_center_name": center_name or "Unknown",
                    "head_of_family": head_name,
                    "decampment": first_reg.decampment_timestamp,
                    "summary_per_family": summary,
                },
                "list_of_family_members": {"family_members": family_members},
                "relief_goods_and_services": services.get(family_head_id, []),
            })

        logger.info("Evacuees information retrieved", extra={
            "event_id": event_id,
            "families": len(response),
            "individuals": len(rows),
        })
        return response

    @staticmethod
    async def _center_name_for_event(db: AsyncSession, event_id: int) -> Optional[str]:
        return await db.scalar(
            select(EvacuationCenter.name)
            .join(DisasterEvacuationEvent, DisasterEvacuationEvent.evacuation_center_id == EvacuationCenter.id)
            .where(DisasterEvacuationEvent.id == event_id)
        )

    @staticmethod
    async def statistics(db: AsyncSession, event_id: int) -> Dict[str, Any]:
        """Resumen demográfico de los evacuados presentes (registros activos)."""
        rows = (await db.execute(
            select(EvacuationRegistration, EvacueeResident, Resident)
            .join(EvacueeResident, EvacuationRegistration.evacuee_resident_id == EvacueeResident.id)
            .join(Resident, EvacueeResident.resident_id == Resident.id)
            .where(
                EvacuationRegistration.disaster_evacuation_event_id == event_id,
                EvacuationRegistration.decampment_timestamp.is_(None),
            )
        )).all()

        summary = empty_summary()
        for reg, evacuee, resident in rows:
            profile = merge_profile(reg.profile_snapshot, global_profile(evacuee, resident))
            add_to_summary(summary, profile, reg.vulnerability_type_ids)
        return {"title": "Evacuees Statistics", "summary": summary}

    @staticmethod
    async def edit_view(db: AsyncSession, event_id: int, evacuee_id: int) -> Dict[str, Any]:
        """Datos para el formulario de edición: snapshot del evento primero, luego global."""
        evacuee, resident = await get_evacuee_or_404(db, evacuee_id)
        registration = await latest_registration(db, evacuee_id, event_id)

        snapshot = registration.profile_snapshot if registration is not None else None
        merged = merge_profile(snapshot, global_profile(evacuee, resident))
        # Una relación null en el snapshot cae a la relación global
        if merged.get("relationship_to_family_head") is None:
            merged["relationship_to_family_head"] = evacuee.relationship_to_family_head
        if isinstance(merged.get("birthdate"), date):
            merged["birthdate"] = merged["birthdate"].isoformat()

        vulnerability_ids = list(registration.vulnerability_type_ids or []) if registration else []

        head_name = None
        if evacuee.family_head_id:
            head_resident = await db.scalar(
                select(Resident)
                .join(FamilyHead, FamilyHead.resident_id == Resident.id)
                .where(FamilyHead.id == evacuee.family_head_id)
            )
            head_name = head_resident.full_name if head_resident is not None else None

        return {
            "id": evacuee.id,
            **merged,
            "family_head_id": evacuee.family_head_id,
            "family_head_full_name": head_name,
            "date_registered": evacuee.date_registered,
            "ec_rooms_id": registration.ec_rooms_id if registration else None,
            "arrival_timestamp": registration.arrival_timestamp if registration else None,
            "decampment_timestamp": registration.decampment_timestamp if registration else None,
            "reported_age_at_arrival": registration.reported_age_at_arrival if registration else None,
            "vulnerability_type_ids": vulnerability_ids,
            **flags_from_vulnerability_ids(vulnerability_ids),
            "profile_snapshot": dict(merged),
        }

    @staticmethod
    async def event_details(db: AsyncSession, event_id: int) -> Dict[str, Any]:
        event = await get_event_or_404(db, event_id)
        disaster = await db.get(Disaster, event.disaster_id)
        center = await db.get(EvacuationCenter, event.evacuation_center_id)
        center_barangay = await db.get(Barangay, center.barangay_id) if center and center.barangay_id else None

        active = (await db.execute(
            select(EvacuationRegistration.family_head_id).where(
                EvacuationRegistration.disaster_evacuation_event_id == event_id,
                EvacuationRegistration.decampment_timestamp.is_(None),
            )
        )).scalars().all()

        return {
            "evacuation_event": {
                "id": event.id,
                "evacuation_start_date": event.evacuation_start_date,
                "evacuation_end_date": event.evacuation_end_date,
                "is_event_ended": event.is_ended,
            },
            "disaster": {
                "disasters_id": disaster.id if disaster else None,
                "disaster_name": disaster.disaster_name if disaster else "Unknown",
                "disaster_type_name": (disaster.disaster_type if disaster else None) or "Unknown",
                "disaster_start_date": disaster.disaster_start_date if disaster else None,
                "disaster_end_date": disaster.disaster_end_date if disaster else None,
            },
            "evacuation_center": {
                "evacuation_center_id": center.id if center else None,
                "evacuation_center_name": center.name if center else "Unknown",
                "evacuation_center_barangay_id": center.barangay_id if center else None,
                "evacuation_center_barangay_name": center_barangay.name if center_barangay else "Unknown",
            },
            "evacuation_summary": {
                "total_no_of_family": len(set(active)),
                "total_no_of_individuals": len(active),
                "evacuation_center_capacity": center.total_capacity if center else 0,
            },
        }

    @staticmethod
    async def barangays(db: AsyncSession) -> Dict[str, Any]:
        rows = (await db.scalars(select(Barangay).order_by(Barangay.name))).all()
        if not rows:
            return {"message": "No barangay entries found.", "count": 0, "data": []}
        return {"message": "Successfully retrieved barangays.", "count": len(rows), "data": rows}

    @staticmethod
    async def add_service(db: AsyncSession, data: ServiceCreate, added_by: Optional[str]) -> Dict[str, Any]:
        try:
            await get_event_or_404(db, data.disaster_evacuation_event_id)
            await get_family_head_or_404(db, data.family_id)

            service = FamilyService(
                disaster_evacuation_event_id=data.disaster_evacuation_event_id,
                family_id=data.family_id,
                service_received=data.service_received.strip(),
                added_by=added_by,
                created_at=utcnow(),
            )
            db.add(service)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Service record created", extra={
            "service_id": service.id,
            "family_id": service.family_id,
            "event_id": service.disaster_evacuation_event_id,
        })
        return {
            "message": "Service record created successfully.",
            "data": {
                "id": service.id,
                "disaster_evacuation_event_id": service.disaster_evacuation_event_id,
                "family_id": service.family_id,
                "service_received": service.service_received,
                "added_by": service.added_by,
                "created_at": service.created_at,
            },
        }
