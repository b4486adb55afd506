#!/usr/bin/env python3
"""
Script to seed the database with reference data (barangays, a disaster,
evacuation centers with rooms and their evacuation events)
"""

import asyncio
import random
from datetime import datetime, timedelta, timezone
from sqlalchemy import text

from evacuation_api.db import engine

BARANGAY_NAMES = [
    "Bagumbayan", "Bonot", "Cruzada", "Dap-dap", "Gogon", "Oro Site",
    "Rawis", "San Roque", "Tahao", "Victory Village",
]

CENTERS = [
    ("Gogon Central School", "School", ["Room 101", "Room 102", "Room 103", "Gym"]),
    ("Rawis Barangay Hall", "Barangay Hall", ["Hall A", "Hall B"]),
]

async def seed_database():
    async with engine.begin() as conn:
        print("Cleaning existing data...")
        await conn.execute(text(
            "TRUNCATE services, evacuation_registrations, evacuee_residents, family_head, residents, "
            "disaster_evacuation_event, evacuation_center_rooms, evacuation_centers, disasters, barangays "
            "RESTART IDENTITY CASCADE;"
        ))

        print("Creating barangays...")
        barangay_ids = []
        for name in BARANGAY_NAMES:
            bid = await conn.scalar(text(
                "INSERT INTO barangays (name) VALUES (:name) RETURNING id"
            ), {"name": name})
            barangay_ids.append(bid)

        print("Creating disaster...")
        start = datetime.now(timezone.utc) - timedelta(days=2)
        disaster_id = await conn.scalar(text(
            "INSERT INTO disasters (disaster_name, disaster_type, disaster_start_date) "
            "VALUES (:name, :type, :start) RETURNING id"
        ), {"name": "Typhoon Kristine", "type": "Typhoon", "start": start})

        print("Creating evacuation centers, rooms and events...")
        for center_name, category, rooms in CENTERS:
            capacities = [random.randint(10, 40) for _ in rooms]
            center_id = await conn.scalar(text(
                "INSERT INTO evacuation_centers (name, barangay_id, category, total_capacity) "
                "VALUES (:name, :barangay_id, :category, :capacity) RETURNING id"
            ), {
                "name": center_name,
                "barangay_id": random.choice(barangay_ids),
                "category": category,
                "capacity": sum(capacities),
            })
            for room_name, capacity in zip(rooms, capacities):
                await conn.execute(text(
                    "INSERT INTO evacuation_center_rooms (evacuation_center_id, room_name, individual_room_capacity) "
                    "VALUES (:center_id, :room_name, :capacity)"
                ), {"center_id": center_id, "room_name": room_name, "capacity": capacity})

            await conn.execute(text(
                "INSERT INTO disaster_evacuation_event (disaster_id, evacuation_center_id, evacuation_start_date) "
                "VALUES (:disaster_id, :center_id, :start)"
            ), {"disaster_id": disaster_id, "center_id": center_id, "start": start + timedelta(hours=6)})

    await engine.dispose()
    print("✅ Database seeded")

if __name__ == "__main__":
    asyncio.run(seed_database())
