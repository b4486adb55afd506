# =====================================================================
# ESQUEMAS DE EVACUADOS Y REGISTROS
# =====================================================================

from __future__ import annotations

from typing import Optional, List, Dict, Any
from datetime import datetime, date
from pydantic import BaseModel, ConfigDict, Field

from .enums import DEFAULT_OLD_HEAD_RELATIONSHIP, FLAG_TO_VULNERABILITY, vulnerability_ids_from_flags
from .profile import PartialProfile

# =========================================================
# FLAGS DE VULNERABILIDAD
# =========================================================

class VulnerabilityFlags(BaseModel):
    """
    Flags booleanos de vulnerabilidad enviados por el formulario.

    Attributes:
        is_infant (Optional[bool]): Lactante
        is_children (Optional[bool]): Niño/a
        is_youth (Optional[bool]): Joven
        is_adult (Optional[bool]): Adulto
        is_senior (Optional[bool]): Persona mayor
        is_pwd (Optional[bool]): Persona con discapacidad
        is_pregnant (Optional[bool]): Embarazada
        is_lactating (Optional[bool]): En periodo de lactancia
    """
    is_infant: Optional[bool] = None
    is_children: Optional[bool] = None
    is_youth: Optional[bool] = None
    is_adult: Optional[bool] = None
    is_senior: Optional[bool] = None
    is_pwd: Optional[bool] = None
    is_pregnant: Optional[bool] = None
    is_lactating: Optional[bool] = None

    def any_flag_sent(self) -> bool:
        return bool(self.model_fields_set & set(FLAG_TO_VULNERABILITY))

    def vulnerability_ids(self) -> List[int]:
        return vulnerability_ids_from_flags(self.model_dump(include=set(FLAG_TO_VULNERABILITY)))


# =========================================================
# REGISTRO Y ACTUALIZACIÓN
# =========================================================

class EvacueeRegister(PartialProfile, VulnerabilityFlags):
    """
    Esquema para registrar un evacuado en un evento.

    Si viene ``existing_evacuee_resident_id`` se reutiliza la identidad global;
    si no, se crean residente, evacuado (y jefe de familia si corresponde).

    Attributes:
        disaster_evacuation_event_id (int): ID del evento de evacuación
        ec_rooms_id (Optional[int]): Habitación asignada
        family_head_id (Optional[int]): Jefe de familia (obligatorio si no es "Head")
        date_registered (Optional[datetime]): Fecha de alta global (default: ahora)
        existing_evacuee_resident_id (Optional[int]): Evacuado existente a reutilizar
    """
    disaster_evacuation_event_id: int
    ec_rooms_id: Optional[int] = None
    family_head_id: Optional[int] = None
    date_registered: Optional[datetime] = None
    existing_evacuee_resident_id: Optional[int] = None


class EvacueeUpdate(PartialProfile, VulnerabilityFlags):
    """
    Esquema para actualizar el registro de un evacuado en un evento concreto.
    Solo modifica datos del evento; la identidad global no se toca.

    Attributes:
        disaster_evacuation_event_id (int): ID del evento a modificar
        ec_rooms_id (Optional[int]): Nueva habitación (null explícito la libera)
        family_head_id (Optional[int]): Jefe de familia (obligatorio si no es "Head")
    """
    disaster_evacuation_event_id: int
    ec_rooms_id: Optional[int] = None
    family_head_id: Optional[int] = None


class TransferHeadRequest(BaseModel):
    """
    Transferencia del rol de jefe de familia.

    Attributes:
        from_family_head_id (int): Jefe de familia actual
        to_evacuee_resident_id (int): Miembro que pasa a ser jefe
        old_head_new_relationship (str): Nueva relación del jefe saliente
    """
    from_family_head_id: int
    to_evacuee_resident_id: int
    old_head_new_relationship: str = DEFAULT_OLD_HEAD_RELATIONSHIP


class DecampRequest(BaseModel):
    """
    Salida (o reingreso) de una familia del centro.

    Attributes:
        decampment_timestamp (Optional[str]): ISO 8601; null o vacío deshace la salida
    """
    decampment_timestamp: Optional[str] = None


class DecampAllRequest(BaseModel):
    """
    Salida masiva de todas las familias activas del evento.

    Attributes:
        decampment_timestamp (str): ISO 8601
    """
    decampment_timestamp: str


class EndOperationRequest(BaseModel):
    """
    Cierre de la operación de evacuación.

    Attributes:
        evacuation_end_date (Optional[datetime]): Fecha de cierre (default: ahora)
    """
    evacuation_end_date: Optional[datetime] = None


class ServiceCreate(BaseModel):
    """
    Servicio o ayuda entregada a una familia.

    Attributes:
        disaster_evacuation_event_id (int): Evento
        family_id (int): ID del jefe de familia
        service_received (str): Descripción del servicio
    """
    disaster_evacuation_event_id: int
    family_id: int
    service_received: str = Field(min_length=1)


# =========================================================
# RESPUESTAS
# =========================================================

class RegistrationOut(BaseModel):
    """Registro de evacuación tal y como se guarda."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    evacuee_resident_id: int
    disaster_evacuation_event_id: int
    family_head_id: int
    ec_rooms_id: Optional[int] = None
    arrival_timestamp: datetime
    decampment_timestamp: Optional[datetime] = None
    reported_age_at_arrival: int
    profile_snapshot: Optional[Dict[str, Any]] = None
    vulnerability_type_ids: List[int] = []


class EvacueeSearchResult(BaseModel):
    """
    Resultado de búsqueda por nombre: un evacuado con su último registro.
    Identidad y datos socioeconómicos priorizan el snapshot del evento.
    """
    evacuee_resident_id: int

    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    suffix: Optional[str] = None
    birthdate: Optional[date] = None
    sex: Optional[str] = None
    barangay_of_origin: Optional[int] = None
    barangay_name: Optional[str] = None

    marital_status: Optional[str] = None
    educational_attainment: Optional[str] = None
    school_of_origin: Optional[str] = None
    occupation: Optional[str] = None
    purok: Optional[str] = None

    arrival_timestamp: Optional[datetime] = None
    decampment_timestamp: Optional[datetime] = None
    reported_age_at_arrival: Optional[int] = None
    disaster_evacuation_event_id: Optional[int] = None
    ec_rooms_id: Optional[int] = None

    family_head_id: Optional[int] = None
    family_head_full_name: Optional[str] = None

    vulnerability_type_ids: List[int] = []

    is_active: bool = False
    active_event_id: Optional[int] = None
    active_disaster_id: Optional[int] = None
    active_ec_id: Optional[int] = None
    active_ec_name: Optional[str] = None
