# =====================================================================
# MODELO DE EVACUADO (IDENTIDAD GLOBAL)
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, Text, ForeignKey, DateTime, func
from datetime import datetime
from typing import Optional

from .base import Base
from .resident import Resident
from .family import FamilyHead


class EvacueeResident(Base):
    """
    Envoltorio global de "evacuado" alrededor de un residente.

    Guarda atributos semi-estables (estado civil, educación, ocupación, purok)
    y la familia/relación "de casa" por defecto. Se crea la primera vez que el
    residente se registra en cualquier evento y se reutiliza en los siguientes.
    """
    __tablename__ = "evacuee_residents"

    # ---------- Identificación ----------
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    resident_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("residents.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    # ---------- Datos socioeconómicos ----------
    marital_status: Mapped[Optional[str]] = mapped_column(Text)
    educational_attainment: Mapped[Optional[str]] = mapped_column(Text)
    school_of_origin: Mapped[Optional[str]] = mapped_column(Text)
    occupation: Mapped[Optional[str]] = mapped_column(Text)
    purok: Mapped[Optional[str]] = mapped_column(Text)

    # ---------- Familia por defecto ----------
    family_head_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("family_head.id", ondelete="RESTRICT"),
        index=True
    )
    relationship_to_family_head: Mapped[Optional[str]] = mapped_column(Text)

    # ---------- Auditoría ----------
    date_registered: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    resident: Mapped[Resident] = relationship(lazy="raise")
    family_head: Mapped[Optional[FamilyHead]] = relationship(lazy="raise")

    def __repr__(self) -> str:
        return f"<EvacueeResident(id={self.id}, resident_id={self.resident_id}, family_head_id={self.family_head_id})>"

    @property
    def is_head(self) -> bool:
        """Jefe de familia por defecto (relación vacía cuenta como jefe)."""
        return (self.relationship_to_family_head or "Head") == "Head"
