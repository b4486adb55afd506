"""
Búsqueda de evacuados por nombre y de jefes de familia dentro de un evento.

La búsqueda por nombre lee de la caché (tabla de registros completa ya
unida); solo los flags de "activo" se consultan siempre en caliente.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from evacuation_api.exceptions import BadRequestError
from evacuation_api.models import (
    Barangay, DisasterEvacuationEvent, EvacuationCenter, EvacuationCenterRoom,
    EvacuationRegistration, EvacueeResident, FamilyHead, Resident,
)
from evacuation_api.schemas import EvacueeSearchResult, display_name, merge_profile
from evacuation_api.services.lookups import get_event_or_404
from evacuation_api.services.registration_service import global_profile
from evacuation_api.services.search_cache import SearchCache

logger = logging.getLogger(__name__)

NAME_FIELDS = ("first_name", "middle_name", "last_name", "suffix")


async def fetch_search_rows(db: AsyncSession) -> List[Dict[str, Any]]:
    """Carga completa de registros con su identidad resuelta (contenido de la caché)."""
    HeadResident = aliased(Resident)
    rows = await db.execute(
        select(EvacuationRegistration, EvacueeResident, Resident, HeadResident)
        .join(EvacueeResident, EvacuationRegistration.evacuee_resident_id == EvacueeResident.id)
        .join(Resident, EvacueeResident.resident_id == Resident.id)
        .join(FamilyHead, EvacuationRegistration.family_head_id == FamilyHead.id, isouter=True)
        .join(HeadResident, FamilyHead.resident_id == HeadResident.id, isouter=True)
    )
    barangays = dict((await db.execute(select(Barangay.id, Barangay.name))).all())

    result = []
    for reg, evacuee, resident, head in rows.all():
        profile = merge_profile(reg.profile_snapshot, global_profile(evacuee, resident))
        result.append({
            "evacuee_resident_id": evacuee.id,
            "profile": profile,
            "full_name": display_name(profile),
            "barangay_name": barangays.get(profile["barangay_of_origin"]),
            "arrival_timestamp": reg.arrival_timestamp,
            "decampment_timestamp": reg.decampment_timestamp,
            "reported_age_at_arrival": reg.reported_age_at_arrival,
            "disaster_evacuation_event_id": reg.disaster_evacuation_event_id,
            "ec_rooms_id": reg.ec_rooms_id,
            "family_head_id": reg.family_head_id,
            "family_head_full_name": head.full_name if head is not None else None,
            "vulnerability_type_ids": list(reg.vulnerability_type_ids or []),
        })
    logger.debug("search rows loaded", extra={"rows": len(result)})
    return result


def row_matches(row: Dict[str, Any], needle: str) -> bool:
    """Coincidencia parcial sin distinguir mayúsculas en cada parte del nombre o en el nombre completo."""
    profile = row["profile"]
    candidates = [profile.get(f) for f in NAME_FIELDS] + [row["full_name"]]
    return any(isinstance(c, str) and needle in c.lower() for c in candidates)


class SearchService:

    @staticmethod
    async def search_by_name(db: AsyncSession, cache: SearchCache, name: Optional[str]) -> List[Dict[str, Any]]:
        needle = (name or "").strip().lower()
        if not needle:
            raise BadRequestError("Query parameter 'name' is required.")

        rows = cache.get()
        if rows is None:
            rows = await fetch_search_rows(db)
            cache.set(rows)

        # Último registro por evacuado
        latest: Dict[int, Dict[str, Any]] = {}
        matched = set()
        for row in rows:
            eid = row["evacuee_resident_id"]
            current = latest.get(eid)
            if current is None or row["arrival_timestamp"] > current["arrival_timestamp"]:
                latest[eid] = row
            if row_matches(row, needle):
                matched.add(eid)

        if not matched:
            return []

        active_rows = await db.execute(
            select(
                EvacuationRegistration.evacuee_resident_id,
                DisasterEvacuationEvent.id,
                DisasterEvacuationEvent.disaster_id,
                EvacuationCenter.id,
                EvacuationCenter.name,
            )
            .join(
                DisasterEvacuationEvent,
                EvacuationRegistration.disaster_evacuation_event_id == DisasterEvacuationEvent.id,
            )
            .join(EvacuationCenter, DisasterEvacuationEvent.evacuation_center_id == EvacuationCenter.id, isouter=True)
            .where(
                EvacuationRegistration.evacuee_resident_id.in_(matched),
                EvacuationRegistration.decampment_timestamp.is_(None),
            )
        )
        active = {r[0]: r for r in active_rows.all()}

        results = []
        for eid in sorted(matched, key=lambda i: latest[i]["full_name"].lower()):
            row = latest[eid]
            act = active.get(eid)
            results.append(EvacueeSearchResult(
                **{k: v for k, v in row["profile"].items() if k != "relationship_to_family_head"},
                evacuee_resident_id=eid,
                barangay_name=row["barangay_name"],
                arrival_timestamp=row["arrival_timestamp"],
                decampment_timestamp=row["decampment_timestamp"],
                reported_age_at_arrival=row["reported_age_at_arrival"],
                disaster_evacuation_event_id=row["disaster_evacuation_event_id"],
                ec_rooms_id=row["ec_rooms_id"],
                family_head_id=row["family_head_id"],
                family_head_full_name=row["family_head_full_name"],
                vulnerability_type_ids=row["vulnerability_type_ids"],
                is_active=act is not None,
                active_event_id=act[1] if act else None,
                active_disaster_id=act[2] if act else None,
                active_ec_id=act[3] if act else None,
                active_ec_name=act[4] if act else None,
            ).model_dump(mode="json"))

        logger.debug("evacuee search", extra={"q": needle, "results": len(results)})
        return results

    @staticmethod
    async def search_family_heads(db: AsyncSession, event_id: int, q: Optional[str]) -> Dict[str, Any]:
        await get_event_or_404(db, event_id)

        HeadEvacuee = aliased(EvacueeResident)
        rows = await db.execute(
            select(
                EvacuationRegistration.family_head_id,
                Resident,
                Barangay,
                EvacuationCenterRoom.room_name,
                HeadEvacuee.purok,
            )
            .join(FamilyHead, EvacuationRegistration.family_head_id == FamilyHead.id)
            .join(Resident, FamilyHead.resident_id == Resident.id)
            .join(Barangay, Resident.barangay_of_origin == Barangay.id, isouter=True)
            .join(EvacuationCenterRoom, EvacuationRegistration.ec_rooms_id == EvacuationCenterRoom.id, isouter=True)
            .join(HeadEvacuee, HeadEvacuee.resident_id == Resident.id, isouter=True)
            .where(EvacuationRegistration.disaster_evacuation_event_id == event_id)
            .order_by(EvacuationRegistration.arrival_timestamp, EvacuationRegistration.id)
        )

        heads: Dict[int, Dict[str, Any]] = {}
        for head_id, resident, barangay, room_name, purok in rows.all():
            if head_id in heads:
                continue
            heads[head_id] = {
                "family_head_id": head_id,
                "family_head_full_name": resident.full_name,
                "barangay": barangay.name if barangay else "Unknown",
                "barangay_id": barangay.id if barangay else None,
                "evacuation_room": room_name,
                "purok": purok,
            }

        result = list(heads.values())
        needle = (q or "").strip().lower()
        if needle:
            result = [
                h for h in result
                if needle in h["family_head_full_name"].lower()
                or needle in h["barangay"].lower()
                or needle in (h["purok"] or "").lower()
                or needle in (h["evacuation_room"] or "").lower()
            ]
        return {"count": len(result), "data": result}
