# =====================================================================
# PERFIL PARCIAL (SNAPSHOT POR EVENTO)
# =====================================================================

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

# Campos que puede sobrescribir un evento
PROFILE_FIELDS: Tuple[str, ...] = (
    "first_name",
    "middle_name",
    "last_name",
    "suffix",
    "sex",
    "marital_status",
    "birthdate",
    "barangay_of_origin",
    "purok",
    "educational_attainment",
    "occupation",
    "school_of_origin",
    "relationship_to_family_head",
)


def normalize_suffix(value: Any) -> Optional[str]:
    """Sufijo en blanco -> None; en otro caso recortado."""
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    return value


def normalize_relationship(value: Optional[str]) -> Optional[str]:
    """Relación en blanco cuenta como no enviada."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class PartialProfile(BaseModel):
    """
    Versión del perfil de una persona propia de un evento.

    Todos los campos son opcionales. Un campo *presente* (aunque sea null)
    sobrescribe el valor global; un campo ausente hereda el valor global.

    Attributes:
        first_name (Optional[str]): Nombre
        middle_name (Optional[str]): Segundo nombre
        last_name (Optional[str]): Apellido
        suffix (Optional[str]): Sufijo (Jr., III...), en blanco se guarda como null
        sex (Optional[str]): Sexo
        marital_status (Optional[str]): Estado civil
        birthdate (Optional[date]): Fecha de nacimiento
        barangay_of_origin (Optional[int]): ID del barangay de origen
        purok (Optional[str]): Purok
        educational_attainment (Optional[str]): Nivel educativo
        occupation (Optional[str]): Ocupación
        school_of_origin (Optional[str]): Escuela de origen
        relationship_to_family_head (Optional[str]): Rol en la familia para este evento
    """
    model_config = ConfigDict(extra="ignore")

    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    suffix: Optional[str] = None
    sex: Optional[str] = None
    marital_status: Optional[str] = None
    birthdate: Optional[date] = None
    barangay_of_origin: Optional[int] = None
    purok: Optional[str] = None
    educational_attainment: Optional[str] = None
    occupation: Optional[str] = None
    school_of_origin: Optional[str] = None
    relationship_to_family_head: Optional[str] = None

    @field_validator("suffix", mode="before")
    @classmethod
    def _normalize_suffix(cls, v):
        return normalize_suffix(v)

    def present_fields(self) -> Dict[str, Any]:
        """Solo los campos de perfil enviados explícitamente (incluidos los null)."""
        sent = self.model_fields_set & set(PROFILE_FIELDS)
        return self.model_dump(mode="json", include=sent)

    def to_snapshot(self) -> Dict[str, Any]:
        """Snapshot completo serializable a JSON (todas las claves presentes)."""
        return self.model_dump(mode="json", include=set(PROFILE_FIELDS))


def merge_profile(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Combina capas de perfil de mayor a menor prioridad.

    Para cada campo gana la primera capa que contiene la clave, aunque su
    valor sea None. Las capas None se ignoran.
    """
    merged: Dict[str, Any] = {}
    for field in PROFILE_FIELDS:
        value = None
        for layer in layers:
            if layer is not None and field in layer:
                value = layer[field]
                break
        merged[field] = value
    return merged


def build_snapshot(*layers: Optional[Mapping[str, Any]], relationship: Optional[str] = None) -> Dict[str, Any]:
    """
    Snapshot validado y normalizado a partir de las capas.
    Si se indica ``relationship`` prevalece sobre cualquier capa.
    """
    merged = merge_profile(*layers)
    if relationship is not None:
        merged["relationship_to_family_head"] = relationship
    return PartialProfile.model_validate(merged).to_snapshot()


def display_name(profile: Mapping[str, Any]) -> str:
    """Nombre completo a partir de un perfil (nombre, segundo, apellido, sufijo)."""
    parts = (profile.get(f) for f in ("first_name", "middle_name", "last_name", "suffix"))
    return " ".join(p.strip() for p in parts if isinstance(p, str) and p.strip())
