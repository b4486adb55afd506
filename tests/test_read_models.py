"""Rooms, event read models, barangays and family services."""

from __future__ import annotations

from datetime import date, timedelta

from conftest import API, future_iso


# ── Fixtures ─────────────────────────────────────────────────────────────

async def _household(register):
    """Head (PWD), lactating spouse and an infant in event A."""
    head = (await register(is_pwd=True)).json()["data"]
    fh_id = head["evacuation_registration"]["family_head_id"]
    await register(
        first_name="Ana", birthdate="1990-07-07", sex="Female",
        relationship_to_family_head="Spouse", family_head_id=fh_id, is_lactating=True,
    )
    await register(
        first_name="Bea", birthdate=(date.today() - timedelta(days=90)).isoformat(), sex="Female",
        relationship_to_family_head="Daughter", family_head_id=fh_id, is_infant=True,
    )
    return fh_id


class TestRooms:

    async def test_only_available_by_default(self, client, register, seed):
        await register(ec_rooms_id=seed.room_1_id)
        await register(first_name="Pedro", ec_rooms_id=seed.room_1_id)

        body = (await client.get(f"{API}/{seed.event_a}/rooms")).json()
        assert body["count"] == 1
        assert body["data"] == [{"id": seed.room_2_id, "room_name": "Room 2", "capacity": 3, "available": 3}]
        assert body["all_full"] is False

    async def test_all_rooms_with_remaining_capacity(self, client, register, seed):
        await register(ec_rooms_id=seed.room_1_id)

        body = (await client.get(f"{API}/{seed.event_a}/rooms", params={"only_available": "false"})).json()
        rooms = {r["room_name"]: r["available"] for r in body["data"]}
        assert rooms == {"Room 1": 1, "Room 2": 3}
        assert body["all_full"] is False

    async def test_decamped_evacuees_free_their_beds(self, client, auth_headers, register, seed):
        data = (await register(ec_rooms_id=seed.room_1_id)).json()["data"]
        await client.post(
            f"{API}/{seed.event_a}/families/{data['evacuation_registration']['family_head_id']}/decamp",
            json={"decampment_timestamp": future_iso()}, headers=auth_headers,
        )
        body = (await client.get(f"{API}/{seed.event_a}/rooms")).json()
        assert {r["room_name"]: r["available"] for r in body["data"]} == {"Room 1": 2, "Room 2": 3}

    async def test_all_full(self, client, register, seed):
        for i, room_id in enumerate([seed.room_1_id] * 2 + [seed.room_2_id] * 3):
            r = await register(first_name=f"Person {i}", ec_rooms_id=room_id)
            assert r.status_code == 201

        body = (await client.get(f"{API}/{seed.event_a}/rooms")).json()
        assert body["count"] == 0
        assert body["all_full"] is True

    async def test_unknown_event(self, client):
        assert (await client.get(f"{API}/999/rooms")).status_code == 404


class TestEventReadModels:

    async def test_evacuees_information_grouped_by_family(self, client, auth_headers, register, seed):
        fh_id = await _household(register)
        await register(first_name="Pedro", last_name="Reyes", barangay_of_origin=seed.rawis_id)
        await client.post(f"{API}/services", json={
            "disaster_evacuation_event_id": seed.event_a, "family_id": fh_id, "service_received": "Food pack",
        }, headers=auth_headers)

        families = (await client.get(f"{API}/{seed.event_a}/evacuees-information")).json()
        assert len(families) == 2
        family = next(f for f in families if f["id"] == fh_id)
        assert family["family_head_full_name"] == "Juan Santos Dela Cruz"
        assert family["barangay"] == "Gogon"
        assert family["total_individuals"] == 3
        assert family["view_family"]["evacuation_center_name"] == "Gogon Central School"

        summary = family["view_family"]["summary_per_family"]
        assert summary["total_no_of_individuals"] == 3
        assert summary["total_no_of_male"] == 1
        assert summary["total_no_of_female"] == 2
        assert summary["total_no_of_infant"] == 1
        assert summary["total_no_of_adult"] == 2
        assert summary["total_no_of_pwd"] == 1
        assert summary["total_no_of_lactating_women"] == 1

        members = family["list_of_family_members"]["family_members"]
        baby = next(m for m in members if m["full_name"].startswith("Bea"))
        assert baby["age"].endswith("months")
        assert baby["vulnerability_types"] == ["Infant"]
        assert [s["service_received"] for s in family["relief_goods_and_services"]] == ["Food pack"]

        other = next(f for f in families if f["id"] != fh_id)
        assert other["barangay"] == "Rawis"
        assert other["relief_goods_and_services"] == []

    async def test_evacuees_information_empty_event(self, client, seed):
        assert (await client.get(f"{API}/{seed.event_b}/evacuees-information")).json() == []

    async def test_statistics_count_active_only(self, client, auth_headers, register, seed):
        await _household(register)
        loner = (await register(first_name="Pedro", last_name="Reyes")).json()["data"]
        await client.post(
            f"{API}/{seed.event_a}/families/{loner['evacuation_registration']['family_head_id']}/decamp",
            json={"decampment_timestamp": future_iso()}, headers=auth_headers,
        )

        body = (await client.get(f"{API}/{seed.event_a}/evacuee-statistics")).json()
        assert body["title"] == "Evacuees Statistics"
        summary = body["summary"]
        assert summary["total_no_of_male"] == 1
        assert summary["total_no_of_female"] == 2
        assert summary["total_no_of_infant"] == 1
        assert summary["total_no_of_pregnant"] == 0

    async def test_details(self, client, register, seed):
        await _household(register)
        body = (await client.get(f"{API}/{seed.event_a}/details")).json()

        assert body["evacuation_event"]["is_event_ended"] is False
        assert body["disaster"]["disaster_name"] == "Typhoon Kristine"
        assert body["disaster"]["disaster_type_name"] == "Typhoon"
        assert body["evacuation_center"]["evacuation_center_name"] == "Gogon Central School"
        assert body["evacuation_center"]["evacuation_center_barangay_name"] == "Gogon"
        assert body["evacuation_summary"] == {
            "total_no_of_family": 1,
            "total_no_of_individuals": 3,
            "evacuation_center_capacity": 5,
        }

    async def test_details_unknown_event(self, client):
        assert (await client.get(f"{API}/999/details")).status_code == 404

    async def test_family_heads_search(self, client, auth_headers, register, seed):
        await _household(register)
        await register(first_name="Pedro", last_name="Reyes", ec_rooms_id=seed.room_2_id)

        body = (await client.get(f"{API}/{seed.event_a}/family-heads", headers=auth_headers)).json()
        assert body["count"] == 2

        body = (await client.get(
            f"{API}/{seed.event_a}/family-heads", params={"q": "room 2"}, headers=auth_headers,
        )).json()
        assert [h["family_head_full_name"] for h in body["data"]] == ["Pedro Santos Reyes"]

    async def test_edit_view_without_registration_uses_global(self, client, auth_headers, register, seed):
        evacuee_id = (await register(occupation="Fisherman")).json()["data"]["evacuee"]["id"]
        body = (await client.get(f"{API}/{seed.event_b}/{evacuee_id}/edit", headers=auth_headers)).json()
        assert body["occupation"] == "Fisherman"
        assert body["relationship_to_family_head"] == "Head"
        assert body["arrival_timestamp"] is None
        assert body["vulnerability_type_ids"] == []
        assert body["is_pwd"] is False

    async def test_edit_view_returns_event_vulnerability_flags(self, client, auth_headers, register, seed):
        evacuee_id = (await register(is_pwd=True, is_adult=True)).json()["data"]["evacuee"]["id"]
        body = (await client.get(f"{API}/{seed.event_a}/{evacuee_id}/edit", headers=auth_headers)).json()
        assert body["vulnerability_type_ids"] == [4, 8]
        assert body["is_pwd"] is True
        assert body["is_adult"] is True
        assert body["is_senior"] is False


class TestBarangaysAndServices:

    async def test_barangays(self, client, seed):
        body = (await client.get(f"{API}/barangays")).json()
        assert body["count"] == 2
        assert [b["name"] for b in body["data"]] == ["Gogon", "Rawis"]

    async def test_barangays_empty(self, client):
        body = (await client.get(f"{API}/barangays")).json()
        assert body == {"message": "No barangay entries found.", "count": 0, "data": []}

    async def test_add_service(self, client, auth_headers, register, seed):
        fh_id = (await register()).json()["data"]["evacuation_registration"]["family_head_id"]
        r = await client.post(f"{API}/services", json={
            "disaster_evacuation_event_id": seed.event_a, "family_id": fh_id, "service_received": "  Hygiene kit ",
        }, headers=auth_headers)
        assert r.status_code == 201
        data = r.json()["data"]
        assert data["service_received"] == "Hygiene kit"
        assert data["added_by"] == "1"

    async def test_add_service_unknown_family(self, client, auth_headers, seed):
        r = await client.post(f"{API}/services", json={
            "disaster_evacuation_event_id": seed.event_a, "family_id": 999, "service_received": "Water",
        }, headers=auth_headers)
        assert r.status_code == 404

    async def test_add_service_empty_description(self, client, auth_headers, seed):
        r = await client.post(f"{API}/services", json={
            "disaster_evacuation_event_id": seed.event_a, "family_id": 1, "service_received": "",
        }, headers=auth_headers)
        assert r.status_code == 400
