# =====================================================================
# MODELOS DE IDENTIDAD GLOBAL (BARANGAYS Y RESIDENTES)
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, Text, ForeignKey, Date, DateTime, func
from datetime import datetime, date
from typing import Optional

from .base import Base


class Barangay(Base):
    """
    Barangay (unidad administrativa) de origen de los residentes
    y de ubicación de los centros de evacuación.
    """
    __tablename__ = "barangays"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Barangay(id={self.id}, name={self.name})>"


class Resident(Base):
    """
    Persona global, independiente de cualquier evento.
    Se crea una vez por persona real y nunca guarda datos propios de un evento.
    """
    __tablename__ = "residents"

    # ---------- Identificación ----------
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ---------- Datos personales ----------
    first_name: Mapped[str] = mapped_column(Text, nullable=False)
    middle_name: Mapped[Optional[str]] = mapped_column(Text)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    suffix: Mapped[Optional[str]] = mapped_column(Text)
    birthdate: Mapped[Optional[date]] = mapped_column(Date)
    sex: Mapped[Optional[str]] = mapped_column(Text)
    barangay_of_origin: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("barangays.id", ondelete="RESTRICT")
    )

    # ---------- Auditoría ----------
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    barangay: Mapped[Optional[Barangay]] = relationship(lazy="raise")

    def __repr__(self) -> str:
        return f"<Resident(id={self.id}, name={self.full_name})>"

    @property
    def full_name(self) -> str:
        """Nombre completo: nombre [segundo] apellido [sufijo]."""
        parts = [self.first_name, self.middle_name, self.last_name, self.suffix]
        return " ".join(p.strip() for p in parts if p and p.strip())
