from __future__ import annotations

import asyncio

import pytest

from config import settings
from pipelines.exploration.batch_scheduler import BatchScheduler
from pipelines.exploration.blocks import describe_hole
from services.cache.block_cache import BlockCache

LON, LAT = 2.3522, 48.8566


@pytest.fixture
def candidates(make_square, make_offset):
    def _build(count, side_m=100):
        return [
            describe_hole(make_square(*make_offset(LON, LAT, i * 400, 0), side_m))
            for i in range(count)
        ]
    return _build


def test_run_without_candidates_is_silent(fake_oracle_cls, status_recorder) -> None:
    oracle = fake_oracle_cls()
    scheduler = BatchScheduler(oracle, BlockCache(), batch_size=3)

    assert asyncio.run(scheduler.run([], status_recorder)) == []
    assert oracle.calls == []
    assert status_recorder.messages == []


def test_concurrency_never_exceeds_batch_width(fake_oracle_cls, candidates) -> None:
    oracle = fake_oracle_cls(answer=True, delay=0.05)
    scheduler = BatchScheduler(oracle, BlockCache(), batch_size=3)

    resolutions = asyncio.run(scheduler.run(candidates(7)))

    assert len(oracle.calls) == 7
    assert 1 <= oracle.peak_in_flight <= 3
    assert all(r.has_streets and r.queried and not r.cached for r in resolutions)
    scheduler.shutdown()


def test_batch_progress_messages(fake_oracle_cls, candidates, status_recorder) -> None:
    scheduler = BatchScheduler(fake_oracle_cls(), BlockCache(), batch_size=3)

    asyncio.run(scheduler.run(candidates(7), status_recorder))

    assert status_recorder.messages == [
        ("Checking 7 new blocks (batch size: 3)...", 0),
        ("Processing batch 1/3 (3 blocks)...", 0),
        ("Batch 1/3 complete (3 blocks)", 33),
        ("Processing batch 2/3 (3 blocks)...", 33),
        ("Batch 2/3 complete (3 blocks)", 67),
        ("Processing batch 3/3 (1 blocks)...", 67),
        ("Batch 3/3 complete (1 blocks)", 100),
    ]


def test_groups_run_sequentially(fake_oracle_cls, candidates) -> None:
    events = []

    def answer(bbox):
        events.append(bbox)
        return False

    oracle = fake_oracle_cls(answer=answer, delay=0.02)
    scheduler = BatchScheduler(oracle, BlockCache(), batch_size=2)
    blocks = candidates(5)

    asyncio.run(scheduler.run(blocks))

    # Members of a group may finish in any order, groups may not interleave
    first_group = {b.bbox for b in blocks[:2]}
    assert set(events[:2]) == first_group
    assert set(events[2:4]) == {b.bbox for b in blocks[2:4]}
    assert events[4] == blocks[4].bbox


def test_answers_are_cached_in_candidate_order(fake_oracle_cls, candidates) -> None:
    blocks = candidates(4)
    streets = {blocks[1].bbox, blocks[3].bbox}
    cache = BlockCache()
    scheduler = BatchScheduler(fake_oracle_cls(answer=lambda bbox: bbox in streets), cache, batch_size=3)

    resolutions = asyncio.run(scheduler.run(blocks))

    assert [r.candidate for r in resolutions] == blocks
    assert [r.has_streets for r in resolutions] == [False, True, False, True]
    for block, resolution in zip(blocks, resolutions):
        assert cache.get(block.spatial_key) == (resolution.has_streets, True)


def test_shared_spatial_key_is_looked_up_once(fake_oracle_cls, candidates) -> None:
    block = candidates(1)[0]
    oracle = fake_oracle_cls(answer=True)
    scheduler = BatchScheduler(oracle, BlockCache(), batch_size=3)

    resolutions = asyncio.run(scheduler.run([block, block]))

    assert len(oracle.calls) == 1
    assert [r.queried for r in resolutions] == [True, False]
    assert [r.has_streets for r in resolutions] == [True, True]


@pytest.mark.parametrize("fail_safe_has_streets", [False, True])
def test_failed_lookups_use_fail_safe_and_are_cached(fake_oracle_cls, candidates, fail_safe_has_streets) -> None:
    cache = BlockCache()
    oracle = fake_oracle_cls(fail=True, fail_safe_has_streets=fail_safe_has_streets)
    scheduler = BatchScheduler(oracle, cache, batch_size=3)
    blocks = candidates(2)

    resolutions = asyncio.run(scheduler.run(blocks))

    assert [r.has_streets for r in resolutions] == [fail_safe_has_streets] * 2
    assert all(r.fail_safe for r in resolutions)
    for block in blocks:
        assert cache.get(block.spatial_key) == (fail_safe_has_streets, True)


def test_retry_failed_lookups_keeps_fail_safe_out_of_cache(fake_oracle_cls, candidates) -> None:
    cache = BlockCache()
    scheduler = BatchScheduler(fake_oracle_cls(fail=True), cache, batch_size=3, retry_failed_lookups=True)

    asyncio.run(scheduler.run(candidates(2)))

    assert len(cache) == 0


def test_retry_failed_lookups_defaults_to_settings(fake_oracle_cls, monkeypatch) -> None:
    assert BatchScheduler(fake_oracle_cls(), BlockCache()).retry_failed_lookups is False

    monkeypatch.setattr(settings, "ORACLE_RETRY_FAILED_LOOKUPS", True)
    assert BatchScheduler(fake_oracle_cls(), BlockCache()).retry_failed_lookups is True


def test_raising_oracle_does_not_abort_batch(candidates) -> None:
    class BrokenOracle:
        fail_safe_has_streets = True

        def check(self, bbox):
            raise RuntimeError("boom")

    scheduler = BatchScheduler(BrokenOracle(), BlockCache(), batch_size=3)
    resolutions = asyncio.run(scheduler.run(candidates(3)))

    assert [(r.has_streets, r.fail_safe) for r in resolutions] == [(True, True)] * 3


def test_batch_size_must_be_positive(fake_oracle_cls) -> None:
    with pytest.raises(ValueError):
        BatchScheduler(fake_oracle_cls(), BlockCache(), batch_size=0)
