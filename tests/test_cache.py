"""Tests for the process-local layer, payload unwrapping and the Redis-backed layers."""

import json
from datetime import datetime, timezone

import pytest

from bestsellers.domain.models.bestsellers import BestsellersResult
from bestsellers.domain.models.order import DateWindow
from bestsellers.domain.repositories.bestsellers_cache_repo import BestsellersCacheRepo
from bestsellers.domain.services.segments import SegmentSet
from bestsellers.utils.cache import MemoryTTLCache, dump_payload, unwrap_payload

from conftest import FakeRedis


class Clock:
    def __init__(self, t=1000.0):
        self.t = t

    def __call__(self):
        return self.t


RESULT = BestsellersResult(handles=["polo-azul", "camisa-lino"], meta={"segments": ["man"]})
WINDOW = DateWindow(
    start=datetime(2024, 5, 1, tzinfo=timezone.utc),
    end=datetime(2024, 5, 31, 23, 59, 59, 999000, tzinfo=timezone.utc),
)


class TestMemoryTTLCache:

    def test_hit_within_ttl(self):
        clock = Clock()
        mem = MemoryTTLCache(ttl_s=60, clock=clock)
        mem.set("k", RESULT)
        clock.t += 59
        assert mem.get("k") == RESULT

    def test_never_read_past_ttl_but_kept_for_stale(self):
        clock = Clock()
        mem = MemoryTTLCache(ttl_s=60, clock=clock)
        mem.set("k", RESULT)
        clock.t += 60
        assert mem.get("k") is None
        assert mem.get_stale("k") == RESULT
        assert len(mem) == 1

    def test_backdated_entry_expires_early(self):
        clock = Clock()
        mem = MemoryTTLCache(ttl_s=60, clock=clock)
        mem.set("k", RESULT, age_s=50)
        clock.t += 9
        assert mem.get("k") == RESULT
        clock.t += 1
        assert mem.get("k") is None

    def test_miss(self):
        assert MemoryTTLCache(ttl_s=60).get("nope") is None


class TestUnwrapPayload:

    def test_plain_json(self):
        assert unwrap_payload(dump_payload(RESULT)) == RESULT

    def test_double_encoded(self):
        assert unwrap_payload(json.dumps(dump_payload(RESULT))) == RESULT

    def test_value_wrapper(self):
        wrapped = json.dumps({"value": dump_payload(RESULT), "EX": 900})
        assert unwrap_payload(wrapped) == RESULT

    def test_double_encoded_value_wrapper(self):
        wrapped = json.dumps(json.dumps({"value": dump_payload(RESULT)}))
        assert unwrap_payload(wrapped) == RESULT

    def test_dict_without_meta(self):
        assert unwrap_payload({"handles": ["a"]}).handles == ["a"]

    @pytest.mark.parametrize("raw", ["not json", "[]", '{"handles": "a"}', "42", '{"value": 3}', None])
    def test_malformed_is_miss(self, raw):
        assert unwrap_payload(raw) is None


class TestBestsellersCacheRepo:

    def test_live_key_components(self):
        repo = BestsellersCacheRepo(None, version="v5")
        key = repo.live_key(WINDOW, SegmentSet.of(["woman", "man"]), 16)
        assert key == "bestsellers:v5:live:2024-05-01T00:00:00.000Z:2024-05-31T23:59:59.999Z:man,woman:16"
        assert repo.live_key(WINDOW, SegmentSet(), 16, "pos").endswith("::16:pos")

    @pytest.mark.asyncio
    async def test_round_trip_shared_and_snapshot(self):
        redis = FakeRedis()
        repo = BestsellersCacheRepo(redis)
        live = repo.live_key(WINDOW, SegmentSet.of(["man"]), 16)
        snap = repo.snapshot_key(SegmentSet.of(["man"]), 16)
        assert await repo.set(live, RESULT, ttl=900) is True
        assert await repo.set(snap, RESULT, ttl=None) is True
        assert await repo.get(live) == RESULT
        assert await repo.get(snap) == RESULT
        assert redis.expiry[live] == 900
        assert redis.expiry[snap] is None

    @pytest.mark.asyncio
    async def test_redis_failure_is_miss_and_write_noop(self):
        redis = FakeRedis()
        redis.fail = True
        repo = BestsellersCacheRepo(redis)
        assert await repo.get("k") is None
        assert await repo.set("k", RESULT, ttl=10) is False

    @pytest.mark.asyncio
    async def test_malformed_payload_is_miss(self):
        redis = FakeRedis()
        redis.data["k"] = "{broken"
        assert await BestsellersCacheRepo(redis).get("k") is None

    @pytest.mark.asyncio
    async def test_without_redis(self):
        repo = BestsellersCacheRepo(None)
        assert await repo.get("k") is None
        assert await repo.set("k", RESULT) is False

    def test_freshness_uses_cached_at(self):
        clock = Clock(10_000)
        repo = BestsellersCacheRepo(None, clock=clock)
        fresh = RESULT.model_copy(update={"meta": {"cached_at": 9_500}})
        old = RESULT.model_copy(update={"meta": {"cached_at": 1_000}})
        assert repo.is_fresh(fresh, 900) is True
        assert repo.is_fresh(old, 900) is False
        assert repo.is_fresh(RESULT, 900) is True  # legacy entry without cached_at
        assert repo.age(fresh) == 500
        assert repo.age(RESULT) == 0.0
