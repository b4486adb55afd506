"""Register flow: create-new and reuse branches, mutual exclusion and validation."""

from __future__ import annotations

from sqlalchemy import select

from conftest import API
from evacuation_api.models import (
    EvacuationRegistration, EvacueeResident, FamilyHead, Resident,
)


class TestRegisterNew:

    async def test_creates_head_with_snapshot(self, register, seed):
        r = await register(suffix="  Jr. ", is_senior=False, is_pwd=True, ec_rooms_id=seed.room_1_id)
        assert r.status_code == 201
        body = r.json()
        assert body["message"] == "Evacuee registered successfully."

        reg = body["data"]["evacuation_registration"]
        assert reg["decampment_timestamp"] is None
        assert reg["ec_rooms_id"] == seed.room_1_id
        assert reg["vulnerability_type_ids"] == [4]
        assert reg["profile_snapshot"]["suffix"] == "Jr."
        assert reg["profile_snapshot"]["relationship_to_family_head"] == "Head"
        assert reg["profile_snapshot"]["birthdate"] == "1985-03-14"
        assert reg["reported_age_at_arrival"] >= 40

    async def test_blank_relationship_defaults_to_head(self, register, session_factory):
        r = await register(relationship_to_family_head="  ")
        assert r.status_code == 201
        evacuee_id = r.json()["data"]["evacuee"]["id"]

        async with session_factory() as db:
            evacuee = await db.get(EvacueeResident, evacuee_id)
            assert evacuee.relationship_to_family_head == "Head"
            head = await db.get(FamilyHead, evacuee.family_head_id)
            assert head.resident_id == evacuee.resident_id

    async def test_member_requires_family_head_id(self, register, count_rows):
        r = await register(first_name="Maria", relationship_to_family_head="Daughter")
        assert r.status_code == 400
        assert "family_head_id" in r.json()["message"]
        # Everything rolled back
        assert await count_rows(Resident) == 0
        assert await count_rows(EvacueeResident) == 0

    async def test_member_with_unknown_family_head(self, register, count_rows):
        r = await register(first_name="Maria", relationship_to_family_head="Daughter", family_head_id=999)
        assert r.status_code == 404
        assert await count_rows(Resident) == 0

    async def test_member_joins_head_family(self, register):
        head = await register()
        fh_id = head.json()["data"]["evacuation_registration"]["family_head_id"]

        r = await register(first_name="Maria", relationship_to_family_head="Daughter", family_head_id=fh_id)
        assert r.status_code == 201
        assert r.json()["data"]["evacuation_registration"]["family_head_id"] == fh_id

    async def test_missing_required_person_fields(self, register, count_rows):
        r = await register(birthdate=None, sex="")
        assert r.status_code == 400
        assert "birthdate" in r.json()["message"]
        assert await count_rows(Resident) == 0

    async def test_missing_event_id_is_bad_request(self, client, auth_headers):
        r = await client.post(API, json={"first_name": "Juan"}, headers=auth_headers)
        assert r.status_code == 400
        assert r.json()["type"] == "validation_error"

    async def test_unknown_event(self, register):
        r = await register(disaster_evacuation_event_id=999)
        assert r.status_code == 404

    async def test_room_from_another_center(self, register, seed):
        r = await register(ec_rooms_id=seed.hall_id)
        assert r.status_code == 400

    async def test_requires_token(self, client, seed):
        r = await client.post(API, json={"disaster_evacuation_event_id": seed.event_a})
        assert r.status_code == 401
        assert r.json()["error"] is True


class TestRegisterReuse:

    async def test_reuse_in_other_event_while_active_is_conflict(self, register, seed, count_rows):
        first = await register()
        evacuee_id = first.json()["data"]["evacuee"]["id"]

        r = await register(existing_evacuee_resident_id=evacuee_id, disaster_evacuation_event_id=seed.event_b)
        assert r.status_code == 409
        assert "Gogon Central School" in r.json()["message"]
        assert "decamp them first" in r.json()["message"]
        assert await count_rows(EvacuationRegistration) == 1

    async def test_reuse_same_event_twice_is_conflict_without_new_rows(self, register, seed, count_rows):
        first = await register()
        evacuee_id = first.json()["data"]["evacuee"]["id"]

        r = await register(existing_evacuee_resident_id=evacuee_id)
        assert r.status_code == 409
        assert "Use Edit" in r.json()["message"]
        assert await count_rows(Resident) == 1
        assert await count_rows(EvacueeResident) == 1
        assert await count_rows(EvacuationRegistration) == 1

    async def test_reuse_after_decamp(self, client, auth_headers, register, seed, count_rows):
        from conftest import future_iso

        first = await register()
        data = first.json()["data"]
        evacuee_id = data["evacuee"]["id"]
        fh_id = data["evacuation_registration"]["family_head_id"]

        r = await client.post(
            f"{API}/{seed.event_a}/families/{fh_id}/decamp",
            json={"decampment_timestamp": future_iso()},
            headers=auth_headers,
        )
        assert r.status_code == 200

        r = await client.post(API, json={
            "existing_evacuee_resident_id": evacuee_id,
            "disaster_evacuation_event_id": seed.event_b,
            "is_adult": True,
        }, headers=auth_headers)
        assert r.status_code == 201
        body = r.json()
        assert body["message"] == "Evacuee registered successfully (existing person reused)."
        reg = body["data"]["evacuation_registration"]
        # Head keeps the same family head identity across events
        assert reg["family_head_id"] == fh_id
        assert reg["vulnerability_type_ids"] == [8]
        assert reg["profile_snapshot"]["first_name"] == "Juan"
        assert await count_rows(Resident) == 1
        assert await count_rows(FamilyHead) == 1

    async def test_reuse_unknown_evacuee(self, register):
        r = await register(existing_evacuee_resident_id=12345)
        assert r.status_code == 404

    async def test_active_index_blocks_second_active_row(self, register, session_factory, seed):
        """The partial unique index rejects a second active registration at the database level."""
        import pytest
        from sqlalchemy.exc import IntegrityError
        from evacuation_api.models import utcnow

        first = await register()
        reg = first.json()["data"]["evacuation_registration"]

        async with session_factory() as db:
            db.add(EvacuationRegistration(
                evacuee_resident_id=reg["evacuee_resident_id"],
                disaster_evacuation_event_id=seed.event_b,
                family_head_id=reg["family_head_id"],
                arrival_timestamp=utcnow(),
                reported_age_at_arrival=0,
                vulnerability_type_ids=[],
            ))
            with pytest.raises(IntegrityError):
                await db.commit()
            await db.rollback()

            rows = (await db.scalars(select(EvacuationRegistration))).all()
            assert len(rows) == 1
