# =====================================================================
# MODELO DE SERVICIOS / AYUDA RECIBIDA POR FAMILIA
# =====================================================================

from __future__ import annotations

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, Text, ForeignKey, DateTime, func
from datetime import datetime
from typing import Optional

from .base import Base


class FamilyService(Base):
    """
    Bienes de socorro o servicios entregados a una familia durante un evento.
    """
    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    disaster_evacuation_event_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("disaster_evacuation_event.id", ondelete="RESTRICT"),
        nullable=False
    )
    family_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("family_head.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    service_received: Mapped[str] = mapped_column(Text, nullable=False)
    added_by: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<FamilyService(id={self.id}, family_id={self.family_id}, service={self.service_received})>"
