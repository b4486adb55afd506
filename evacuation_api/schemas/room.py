# =====================================================================
# ESQUEMAS DE HABITACIONES Y BARANGAYS
# =====================================================================

from __future__ import annotations

from typing import List
from pydantic import BaseModel, ConfigDict


class RoomAvailability(BaseModel):
    """
    Disponibilidad de una habitación del centro en un evento.

    Attributes:
        id (int): ID de la habitación
        room_name (str): Nombre
        capacity (int): Capacidad total
        available (int): Plazas libres (nunca negativo)
    """
    id: int
    room_name: str
    capacity: int
    available: int


class RoomListResponse(BaseModel):
    message: str
    count: int
    data: List[RoomAvailability]
    all_full: bool


class BarangayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class BarangayListResponse(BaseModel):
    message: str
    count: int
    data: List[BarangayOut]
