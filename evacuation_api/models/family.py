# =====================================================================
# MODELO DE JEFE DE FAMILIA
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, ForeignKey, DateTime, func
from datetime import datetime

from .base import Base
from .resident import Resident


class FamilyHead(Base):
    """
    Indirección estable residente -> "jefe de familia".

    Permite que ``family_head_id`` sea una FK no nula en los registros aunque
    el jefe cambie con el tiempo. Como máximo una fila por residente
    (buscar antes de insertar). Nunca se borra: tras una transferencia de
    jefatura la fila anterior queda huérfana.
    """
    __tablename__ = "family_head"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    resident_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("residents.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    resident: Mapped[Resident] = relationship(lazy="raise")

    def __repr__(self) -> str:
        return f"<FamilyHead(id={self.id}, resident_id={self.resident_id})>"
