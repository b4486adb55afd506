#!/usr/bin/env python3
"""
Script para crear las tablas de la base de datos
"""

import asyncio
from evacuation_api.db import engine
from evacuation_api.models import Base

async def main():
    """Crear todas las tablas en la base de datos (incluido el índice parcial de registros activos)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await engine.dispose()
    print("✅ Tablas creadas exitosamente")

if __name__ == "__main__":
    asyncio.run(main())
