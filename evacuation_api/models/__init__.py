# =====================================================================
# MÓDULO DE MODELOS DE BASE DE DATOS
# =====================================================================

"""
Módulo que contiene todos los modelos de la base de datos del sistema de evacuación.
Cada modelo está separado en su propio archivo por entidad.
"""

# Importar la clase base y utilidades
from .base import Base, JSONType, utcnow, as_utc

# Importar modelos por entidad
from .resident import Barangay, Resident
from .family import FamilyHead
from .evacuee import EvacueeResident
from .event import Disaster, EvacuationCenter, EvacuationCenterRoom, DisasterEvacuationEvent
from .registration import EvacuationRegistration
from .service import FamilyService

# Exportar todos los modelos para fácil importación
__all__ = [
    # Base y utilidades
    "Base",
    "JSONType",
    "utcnow",
    "as_utc",

    # Identidad global
    "Barangay",
    "Resident",
    "FamilyHead",
    "EvacueeResident",

    # Eventos
    "Disaster",
    "EvacuationCenter",
    "EvacuationCenterRoom",
    "DisasterEvacuationEvent",

    # Registro por evento
    "EvacuationRegistration",
    "FamilyService",
]
