# =====================================================================
# MODELO DE REGISTRO DE EVACUACIÓN (POR EVENTO)
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, ForeignKey, DateTime, Index, func, text
from datetime import datetime
from typing import Optional, Dict, List

from .base import Base, JSONType
from .evacuee import EvacueeResident
from .family import FamilyHead
from .event import DisasterEvacuationEvent, EvacuationCenterRoom


class EvacuationRegistration(Base):
    """
    Pertenencia de un evacuado a un evento de evacuación.

    ``decampment_timestamp`` nulo significa que la persona sigue presente.
    ``profile_snapshot`` guarda la versión del perfil propia de este evento
    (correcciones de nombre, rol en la familia...) sin tocar la identidad global;
    ``vulnerability_type_ids`` guarda los códigos de vulnerabilidad del evento.
    """
    __tablename__ = "evacuation_registrations"
    __table_args__ = (
        # Un evacuado no puede estar presente en dos sitios a la vez
        Index(
            "uq_active_registration_per_evacuee",
            "evacuee_resident_id",
            unique=True,
            postgresql_where=text("decampment_timestamp IS NULL"),
            sqlite_where=text("decampment_timestamp IS NULL"),
        ),
        Index("ix_registration_event_family", "disaster_evacuation_event_id", "family_head_id"),
    )

    # ---------- Identificación ----------
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    evacuee_resident_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("evacuee_residents.id", ondelete="RESTRICT"),
        nullable=False
    )
    disaster_evacuation_event_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("disaster_evacuation_event.id", ondelete="RESTRICT"),
        nullable=False
    )
    family_head_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("family_head.id", ondelete="RESTRICT"),
        nullable=False
    )
    ec_rooms_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("evacuation_center_rooms.id", ondelete="SET NULL")
    )

    # ---------- Estancia ----------
    arrival_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    decampment_timestamp: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    reported_age_at_arrival: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ---------- Datos propios del evento ----------
    profile_snapshot: Mapped[Optional[Dict]] = mapped_column(JSONType)
    vulnerability_type_ids: Mapped[List[int]] = mapped_column(JSONType, nullable=False, default=list)

    # ---------- Auditoría ----------
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    evacuee: Mapped[EvacueeResident] = relationship(lazy="raise")
    family_head: Mapped[FamilyHead] = relationship(lazy="raise")
    event: Mapped[DisasterEvacuationEvent] = relationship(lazy="raise")
    room: Mapped[Optional[EvacuationCenterRoom]] = relationship(lazy="raise")

    def __repr__(self) -> str:
        return (
            f"<EvacuationRegistration(id={self.id}, evacuee={self.evacuee_resident_id}, "
            f"event={self.disaster_evacuation_event_id}, active={self.is_active})>"
        )

    @property
    def is_active(self) -> bool:
        """Sigue presente en el centro (sin decampment)."""
        return self.decampment_timestamp is None
