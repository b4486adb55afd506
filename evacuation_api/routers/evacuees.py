from __future__ import annotations

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from evacuation_api.deps import get_db, get_current_user, get_search_cache, SearchCache
from evacuation_api.schemas import (
    EvacueeRegister, EvacueeUpdate, TransferHeadRequest, DecampRequest, DecampAllRequest,
    EndOperationRequest, ServiceCreate, RoomListResponse, BarangayListResponse,
)
from evacuation_api.services.registration_service import RegistrationService
from evacuation_api.services.transfer_service import TransferService
from evacuation_api.services.decamp_service import DecampService
from evacuation_api.services.search_service import SearchService
from evacuation_api.services.room_service import RoomService
from evacuation_api.services.read_model_service import ReadModelService

router = APIRouter(prefix="/api/v1/evacuees", tags=["evacuees"])

# -------------------- Static routes (before path params) --------------------

@router.get("/search")
async def search_evacuees(
    name: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    cache: SearchCache = Depends(get_search_cache),
):
    """Search evacuees by name (event snapshot first)"""
    return await SearchService.search_by_name(db, cache, name)


@router.get("/barangays", response_model=BarangayListResponse)
async def list_barangays(db: AsyncSession = Depends(get_db)):
    return await ReadModelService.barangays(db)


@router.post("/services", status_code=201)
async def add_service(
    data: ServiceCreate,
    db: AsyncSession = Depends(get_db),
    current = Depends(get_current_user),
):
    """Record a relief good / service received by a family"""
    return await ReadModelService.add_service(db, data, added_by=str(current["id"]))

# -------------------- Registration --------------------

@router.post("", status_code=201)
async def register_evacuee(
    data: EvacueeRegister,
    db: AsyncSession = Depends(get_db),
    cache: SearchCache = Depends(get_search_cache),
    current = Depends(get_current_user),
):
    """Register an evacuee into an event (new person or reuse an existing evacuee)"""
    return await RegistrationService.register(db, cache, data)


@router.put("/{evacuee_resident_id}")
async def update_evacuee(
    evacuee_resident_id: int,
    data: EvacueeUpdate,
    db: AsyncSession = Depends(get_db),
    cache: SearchCache = Depends(get_search_cache),
    current = Depends(get_current_user),
):
    """Update the event-scoped registration of an evacuee"""
    return await RegistrationService.update(db, cache, evacuee_resident_id, data)

# -------------------- Event read models --------------------

@router.get("/{event_id}/evacuees-information")
async def evacuees_information(event_id: int, db: AsyncSession = Depends(get_db)):
    return await ReadModelService.evacuees_information(db, event_id)


@router.get("/{event_id}/evacuee-statistics")
async def evacuee_statistics(event_id: int, db: AsyncSession = Depends(get_db)):
    return await ReadModelService.statistics(db, event_id)


@router.get("/{event_id}/details")
async def event_details(event_id: int, db: AsyncSession = Depends(get_db)):
    return await ReadModelService.event_details(db, event_id)


@router.get("/{event_id}/rooms", response_model=RoomListResponse)
async def event_rooms(
    event_id: int,
    only_available: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """Rooms of the event's evacuation center with remaining capacity"""
    return await RoomService.rooms_for_event(db, event_id, only_available)


@router.get("/{event_id}/family-heads")
async def search_family_heads(
    event_id: int,
    q: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current = Depends(get_current_user),
):
    return await SearchService.search_family_heads(db, event_id, q)


@router.get("/{event_id}/undecamped-count")
async def undecamped_count(event_id: int, db: AsyncSession = Depends(get_db)):
    return await DecampService.undecamped_count(db, event_id)


@router.get("/{event_id}/{evacuee_resident_id}/edit")
async def edit_view(
    event_id: int,
    evacuee_resident_id: int,
    db: AsyncSession = Depends(get_db),
    current = Depends(get_current_user),
):
    """Merged edit view (event snapshot first, global fallback)"""
    return await ReadModelService.edit_view(db, event_id, evacuee_resident_id)

# -------------------- Family / event mutations --------------------

@router.post("/{event_id}/transfer-head")
async def transfer_head(
    event_id: int,
    data: TransferHeadRequest,
    db: AsyncSession = Depends(get_db),
    cache: SearchCache = Depends(get_search_cache),
    current = Depends(get_current_user),
):
    return await TransferService.transfer_head(db, cache, event_id, data)


@router.post("/{event_id}/families/{family_head_id}/decamp")
async def decamp_family(
    event_id: int,
    family_head_id: int,
    data: DecampRequest,
    dry_run: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    cache: SearchCache = Depends(get_search_cache),
    current = Depends(get_current_user),
):
    """Set or clear the decampment of a whole family (null clears)"""
    return await DecampService.decamp_family(
        db, cache, event_id, family_head_id, data.decampment_timestamp, dry_run=dry_run
    )


@router.post("/{event_id}/decamp-all")
async def decamp_all(
    event_id: int,
    data: DecampAllRequest,
    db: AsyncSession = Depends(get_db),
    cache: SearchCache = Depends(get_search_cache),
    current = Depends(get_current_user),
):
    return await DecampService.decamp_all(db, cache, event_id, data.decampment_timestamp)


@router.post("/{event_id}/end")
async def end_operation(
    event_id: int,
    data: Optional[EndOperationRequest] = None,
    db: AsyncSession = Depends(get_db),
    cache: SearchCache = Depends(get_search_cache),
    current = Depends(get_current_user),
):
    """Close the evacuation operation (requires no active registrations)"""
    end_date = data.evacuation_end_date if data else None
    return await DecampService.end_operation(db, cache, event_id, end_date)
