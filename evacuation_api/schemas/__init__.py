# =====================================================================
# MÓDULO DE ESQUEMAS DE PYDANTIC
# =====================================================================

"""
Módulo que contiene los esquemas de Pydantic de la API de evacuación.
Cada grupo de esquemas está separado en su propio archivo.
"""

# Importar enumeraciones comunes
from .enums import (
    HEAD,
    DEFAULT_OLD_HEAD_RELATIONSHIP,
    VulnerabilityType,
    VULNERABILITY_FLAGS,
    VULNERABILITY_NAMES,
    vulnerability_ids_from_flags,
    flags_from_vulnerability_ids,
    vulnerability_names,
)

# Perfil parcial por evento
from .profile import (
    PROFILE_FIELDS,
    PartialProfile,
    merge_profile,
    build_snapshot,
    normalize_suffix,
    normalize_relationship,
    display_name,
)

# Esquemas por entidad
from .evacuee import (
    VulnerabilityFlags,
    EvacueeRegister,
    EvacueeUpdate,
    TransferHeadRequest,
    DecampRequest,
    DecampAllRequest,
    EndOperationRequest,
    ServiceCreate,
    RegistrationOut,
    EvacueeSearchResult,
)
from .room import RoomAvailability, RoomListResponse, BarangayOut, BarangayListResponse

__all__ = [
    # Enumeraciones
    "HEAD", "DEFAULT_OLD_HEAD_RELATIONSHIP", "VulnerabilityType",
    "VULNERABILITY_FLAGS", "VULNERABILITY_NAMES",
    "vulnerability_ids_from_flags", "flags_from_vulnerability_ids", "vulnerability_names",

    # Perfil
    "PROFILE_FIELDS", "PartialProfile", "merge_profile", "build_snapshot",
    "normalize_suffix", "normalize_relationship", "display_name",

    # Evacuados
    "VulnerabilityFlags", "EvacueeRegister", "EvacueeUpdate", "TransferHeadRequest",
    "DecampRequest", "DecampAllRequest", "EndOperationRequest", "ServiceCreate",
    "RegistrationOut", "EvacueeSearchResult",

    # Habitaciones
    "RoomAvailability", "RoomListResponse", "BarangayOut", "BarangayListResponse",
]
