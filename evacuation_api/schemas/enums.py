# =====================================================================
# ENUMERACIONES DEL SISTEMA
# =====================================================================

from __future__ import annotations

from enum import IntEnum
from typing import Dict, Iterable, List, Mapping

# =========================================================
# RELACIÓN CON EL JEFE DE FAMILIA
# =========================================================

# Valor de relación que identifica al jefe de familia
HEAD = "Head"

# Relación por defecto del antiguo jefe tras una transferencia
DEFAULT_OLD_HEAD_RELATIONSHIP = "Spouse"


# =========================================================
# TIPOS DE VULNERABILIDAD
# =========================================================

class VulnerabilityType(IntEnum):
    """
    Códigos de vulnerabilidad guardados en ``vulnerability_type_ids``.
    Los valores deben coincidir con los ids persistidos.
    """
    INFANT = 1
    CHILDREN = 2
    SENIORS = 3
    PWD = 4
    PREGNANT = 5
    LACTATING = 6
    YOUTH = 7
    ADULT = 8

    @property
    def display_name(self) -> str:
        return VULNERABILITY_NAMES[self]

    @property
    def flag(self) -> str:
        return VULNERABILITY_FLAGS[self]


# Tipo <-> flag booleano del payload (is_infant, is_children, ...)
VULNERABILITY_FLAGS: Dict[VulnerabilityType, str] = {
    VulnerabilityType.INFANT: "is_infant",
    VulnerabilityType.CHILDREN: "is_children",
    VulnerabilityType.SENIORS: "is_senior",
    VulnerabilityType.PWD: "is_pwd",
    VulnerabilityType.PREGNANT: "is_pregnant",
    VulnerabilityType.LACTATING: "is_lactating",
    VulnerabilityType.YOUTH: "is_youth",
    VulnerabilityType.ADULT: "is_adult",
}

FLAG_TO_VULNERABILITY: Dict[str, VulnerabilityType] = {v: k for k, v in VULNERABILITY_FLAGS.items()}

# Nombres legibles para los listados por evento
VULNERABILITY_NAMES: Dict[VulnerabilityType, str] = {
    VulnerabilityType.INFANT: "Infant",
    VulnerabilityType.CHILDREN: "Children",
    VulnerabilityType.SENIORS: "Senior Citizen",
    VulnerabilityType.PWD: "Person with Disability",
    VulnerabilityType.PREGNANT: "Pregnant Woman",
    VulnerabilityType.LACTATING: "Lactating Woman",
    VulnerabilityType.YOUTH: "Youth",
    VulnerabilityType.ADULT: "Adult",
}


def vulnerability_ids_from_flags(flags: Mapping[str, object]) -> List[int]:
    """Convierte los flags ``is_*`` verdaderos en la lista ordenada de ids."""
    return [int(vt) for vt in VulnerabilityType if flags.get(vt.flag)]


def flags_from_vulnerability_ids(ids: Iterable[int]) -> Dict[str, bool]:
    """Operación inversa: lista de ids -> diccionario completo de flags."""
    present = {int(i) for i in ids or []}
    return {vt.flag: int(vt) in present for vt in VulnerabilityType}


def vulnerability_names(ids: Iterable[int]) -> List[str]:
    """Nombres legibles; ignora ids desconocidos."""
    names = []
    for i in ids or []:
        try:
            names.append(VulnerabilityType(int(i)).display_name)
        except ValueError:
            continue
    return names
