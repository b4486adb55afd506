"""Name search and its read cache."""

from __future__ import annotations

import pytest

from conftest import API, future_iso
from evacuation_api.models import EvacuationRegistration, EvacueeResident, FamilyHead, Resident, utcnow
from evacuation_api.services.search_cache import SearchCache, TTLSearchCache


class FakeClock:

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestTTLSearchCache:

    def test_empty_cache_misses(self):
        assert TTLSearchCache().get() is None

    def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = TTLSearchCache(ttl_seconds=60, clock=clock)
        cache.set([{"evacuee_resident_id": 1}])
        clock.now += 59
        assert cache.get() == [{"evacuee_resident_id": 1}]

    def test_expires_after_ttl(self):
        clock = FakeClock()
        cache = TTLSearchCache(ttl_seconds=60, clock=clock)
        cache.set([{"evacuee_resident_id": 1}])
        clock.now += 60
        assert cache.get() is None

    def test_invalidate(self):
        cache = TTLSearchCache()
        cache.set([])
        cache.invalidate()
        assert cache.get() is None

    def test_partial_cache_implementation_fails_on_creation(self):
        class GetOnlyCache(SearchCache):
            def get(self):
                return None

        with pytest.raises(TypeError):
            GetOnlyCache()


class TestSearchByName:

    async def test_blank_name_is_rejected(self, client):
        assert (await client.get(f"{API}/search", params={"name": "   "})).status_code == 400
        assert (await client.get(f"{API}/search")).status_code == 400

    async def test_partial_case_insensitive_match(self, client, register, seed):
        await register()
        await register(first_name="Pedro", last_name="Reyes")

        r = await client.get(f"{API}/search", params={"name": "DELA c"})
        assert r.status_code == 200
        data = r.json()
        assert len(data) == 1
        hit = data[0]
        assert hit["first_name"] == "Juan"
        assert hit["barangay_name"] == "Gogon"
        assert hit["is_active"] is True
        assert hit["active_event_id"] == seed.event_a
        assert hit["active_ec_name"] == "Gogon Central School"
        assert hit["family_head_full_name"] == "Juan Santos Dela Cruz"

    async def test_results_sorted_by_name(self, client, register):
        await register(first_name="Zeny", last_name="Santos", middle_name=None)
        await register(first_name="Ana", last_name="Santos", middle_name=None)

        data = (await client.get(f"{API}/search", params={"name": "santos"})).json()
        assert [d["first_name"] for d in data] == ["Ana", "Zeny"]

    async def test_cache_serves_until_invalidated(self, client, register, seed, session_factory, search_cache):
        await register()
        assert (await client.get(f"{API}/search", params={"name": "reyes"})).json() == []

        # Written behind the service's back: the cached rows are still served
        async with session_factory() as db:
            resident = Resident(first_name="Pedro", last_name="Reyes", sex="Male")
            db.add(resident)
            await db.flush()
            head = FamilyHead(resident_id=resident.id)
            db.add(head)
            await db.flush()
            evacuee = EvacueeResident(resident_id=resident.id, family_head_id=head.id, relationship_to_family_head="Head")
            db.add(evacuee)
            await db.flush()
            db.add(EvacuationRegistration(
                evacuee_resident_id=evacuee.id,
                disaster_evacuation_event_id=seed.event_b,
                family_head_id=head.id,
                arrival_timestamp=utcnow(),
            ))
            await db.commit()
        assert (await client.get(f"{API}/search", params={"name": "reyes"})).json() == []

        search_cache.invalidate()
        assert len((await client.get(f"{API}/search", params={"name": "reyes"})).json()) == 1


class TestSearchCoherence:
    """Every committed write is visible to the next search."""

    async def test_update_is_visible(self, client, auth_headers, register, seed):
        evacuee_id = (await register()).json()["data"]["evacuee"]["id"]
        assert len((await client.get(f"{API}/search", params={"name": "dela cruz"})).json()) == 1

        r = await client.put(f"{API}/{evacuee_id}", json={
            "disaster_evacuation_event_id": seed.event_a, "last_name": "Del Rosario",
        }, headers=auth_headers)
        assert r.status_code == 200

        assert (await client.get(f"{API}/search", params={"name": "dela cruz"})).json() == []
        hits = (await client.get(f"{API}/search", params={"name": "rosario"})).json()
        assert [h["evacuee_resident_id"] for h in hits] == [evacuee_id]

    async def test_decamp_is_visible(self, client, auth_headers, register, seed):
        data = (await register()).json()["data"]
        assert (await client.get(f"{API}/search", params={"name": "juan"})).json()[0]["is_active"] is True

        await client.post(
            f"{API}/{seed.event_a}/families/{data['evacuation_registration']['family_head_id']}/decamp",
            json={"decampment_timestamp": future_iso()}, headers=auth_headers,
        )

        hit = (await client.get(f"{API}/search", params={"name": "juan"})).json()[0]
        assert hit["is_active"] is False
        assert hit["active_event_id"] is None
        assert hit["decampment_timestamp"] is not None

    async def test_transfer_is_visible(self, client, auth_headers, register, seed):
        head = (await register()).json()["data"]
        fh_id = head["evacuation_registration"]["family_head_id"]
        daughter = (await register(
            first_name="Maria", sex="Female", birthdate="2001-06-02",
            relationship_to_family_head="Daughter", family_head_id=fh_id,
        )).json()["data"]
        hit = (await client.get(f"{API}/search", params={"name": "maria"})).json()[0]
        assert hit["family_head_full_name"] == "Juan Santos Dela Cruz"

        await client.post(f"{API}/{seed.event_a}/transfer-head", json={
            "from_family_head_id": fh_id, "to_evacuee_resident_id": daughter["evacuee"]["id"],
        }, headers=auth_headers)

        hit = (await client.get(f"{API}/search", params={"name": "juan"})).json()[0]
        assert hit["family_head_full_name"] == "Maria Santos Dela Cruz"

    async def test_latest_registration_wins(self, client, auth_headers, register, seed):
        data = (await register()).json()["data"]
        await client.post(
            f"{API}/{seed.event_a}/families/{data['evacuation_registration']['family_head_id']}/decamp",
            json={"decampment_timestamp": future_iso()}, headers=auth_headers,
        )
        r = await client.post(API, json={
            "existing_evacuee_resident_id": data["evacuee"]["id"],
            "disaster_evacuation_event_id": seed.event_b,
            "occupation": "Carpenter",
        }, headers=auth_headers)
        assert r.status_code == 201

        hits = (await client.get(f"{API}/search", params={"name": "juan"})).json()
        assert len(hits) == 1
        assert hits[0]["disaster_evacuation_event_id"] == seed.event_b
        assert hits[0]["occupation"] == "Carpenter"
        assert hits[0]["active_ec_name"] == "Rawis Barangay Hall"
