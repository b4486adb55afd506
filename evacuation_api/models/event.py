# =====================================================================
# MODELOS DE DESASTRES, CENTROS DE EVACUACIÓN Y EVENTOS
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, Text, ForeignKey, DateTime
from datetime import datetime
from typing import Optional

from .base import Base
from .resident import Barangay


class Disaster(Base):
    """
    Desastre (tifón, inundación, ...) que origina uno o más eventos de evacuación.
    """
    __tablename__ = "disasters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    disaster_name: Mapped[str] = mapped_column(Text, nullable=False)
    disaster_type: Mapped[Optional[str]] = mapped_column(Text)
    disaster_start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    disaster_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<Disaster(id={self.id}, name={self.disaster_name})>"


class EvacuationCenter(Base):
    """
    Centro de evacuación (escuela, gimnasio, casa particular...).
    """
    __tablename__ = "evacuation_centers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    barangay_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("barangays.id", ondelete="RESTRICT")
    )
    category: Mapped[Optional[str]] = mapped_column(Text)
    total_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    barangay: Mapped[Optional[Barangay]] = relationship(lazy="raise")

    def __repr__(self) -> str:
        return f"<EvacuationCenter(id={self.id}, name={self.name})>"


class EvacuationCenterRoom(Base):
    """
    Habitación de un centro de evacuación con su capacidad individual.
    """
    __tablename__ = "evacuation_center_rooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    evacuation_center_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("evacuation_centers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    room_name: Mapped[str] = mapped_column(Text, nullable=False)
    individual_room_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<EvacuationCenterRoom(id={self.id}, name={self.room_name})>"


class DisasterEvacuationEvent(Base):
    """
    Evento de evacuación: un desastre atendido en un centro concreto.
    ``evacuation_end_date`` no nulo indica operación finalizada.
    """
    __tablename__ = "disaster_evacuation_event"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    disaster_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("disasters.id", ondelete="RESTRICT"),
        nullable=False
    )
    evacuation_center_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("evacuation_centers.id", ondelete="RESTRICT"),
        nullable=False
    )
    evacuation_start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    evacuation_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    disaster: Mapped[Disaster] = relationship(lazy="raise")
    evacuation_center: Mapped[EvacuationCenter] = relationship(lazy="raise")

    def __repr__(self) -> str:
        return f"<DisasterEvacuationEvent(id={self.id}, disaster_id={self.disaster_id}, center_id={self.evacuation_center_id})>"

    @property
    def is_ended(self) -> bool:
        """La operación de evacuación ya fue cerrada."""
        return self.evacuation_end_date is not None
