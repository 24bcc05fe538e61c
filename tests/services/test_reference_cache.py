from __future__ import annotations

import asyncio
from collections import Counter
from typing import Any

import pytest

from MEDREF.packages.configurations import build_reference_settings
from MEDREF.packages.constants import FIRST_NAME, LAST_NAME, MEDICATION
from MEDREF.packages.utils.repository.cache import (
    CacheRefreshFailed,
    CacheUnavailable,
    Corpus,
    ReferenceCache,
)
from MEDREF.packages.utils.updater.sources import CorpusUnavailable

DAY = 24 * 3600.0


###############################################################################
class StubAggregator:
    def __init__(self, corpora: dict[str, Any]) -> None:
        self.corpora = corpora
        self.calls: Counter[str] = Counter()

    async def fetch_corpus(self, kind: str) -> frozenset[str]:
        self.calls[kind] += 1
        await asyncio.sleep(0)
        value = self.corpora[kind]
        if isinstance(value, Exception):
            raise value
        return frozenset(value)


###############################################################################
class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


# -----------------------------------------------------------------------------
def default_corpora() -> dict[str, Any]:
    return {
        MEDICATION: {"DOXYCYCLINE", "LISINOPRIL"},
        FIRST_NAME: {"ANA", "JOSE"},
        LAST_NAME: {"SMITH"},
    }


# -----------------------------------------------------------------------------
def build_cache(corpora: dict[str, Any]) -> tuple[ReferenceCache, StubAggregator, FakeClock]:
    aggregator = StubAggregator(corpora)
    clock = FakeClock()
    cache = ReferenceCache(aggregator, build_reference_settings({}), clock=clock)
    return cache, aggregator, clock


###############################################################################
def test_corpus_orders_terms_alphabetically() -> None:
    corpus = Corpus.from_terms(MEDICATION, ["ZOLPIDEM", "ASPIRIN", "METFORMIN"])
    assert list(corpus) == ["ASPIRIN", "METFORMIN", "ZOLPIDEM"]
    assert "ASPIRIN" in corpus
    assert len(corpus) == 3
    assert Corpus(MEDICATION, frozenset({"B", "A"})).ordered == ("A", "B")


# -----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_first_use_populates_all_corpora() -> None:
    cache, aggregator, _ = build_cache(default_corpora())
    assert not cache.is_valid()

    medications = await cache.get_corpus(MEDICATION)

    assert set(medications) == {"DOXYCYCLINE", "LISINOPRIL"}
    assert cache.is_valid()
    assert cache.snapshot is not None
    assert cache.snapshot.sizes() == {MEDICATION: 2, FIRST_NAME: 2, LAST_NAME: 1}
    assert aggregator.calls == Counter({MEDICATION: 1, FIRST_NAME: 1, LAST_NAME: 1})


# -----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_concurrent_callers_share_one_refresh() -> None:
    cache, aggregator, _ = build_cache(default_corpora())

    results = await asyncio.gather(
        *(cache.get_corpus(kind) for kind in (MEDICATION, FIRST_NAME, LAST_NAME) * 5)
    )

    assert len(results) == 15
    assert aggregator.calls == Counter({MEDICATION: 1, FIRST_NAME: 1, LAST_NAME: 1})
    assert cache.refresh_task is None


# -----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_valid_snapshot_is_served_without_fetching() -> None:
    cache, aggregator, clock = build_cache(default_corpora())
    await cache.get_corpus(MEDICATION)
    clock.now += DAY - 1

    await cache.get_corpus(LAST_NAME)
    await cache.get_corpus(FIRST_NAME)

    assert aggregator.calls[MEDICATION] == 1


# -----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_expired_snapshot_is_replaced_wholesale() -> None:
    cache, aggregator, clock = build_cache(default_corpora())
    await cache.get_corpus(MEDICATION)
    first_snapshot = cache.snapshot
    clock.now += DAY
    aggregator.corpora[MEDICATION] = {"AMOXICILLIN"}

    medications = await cache.get_corpus(MEDICATION)

    assert set(medications) == {"AMOXICILLIN"}
    assert cache.snapshot is not first_snapshot
    assert cache.snapshot.fetched_at == clock.now
    assert aggregator.calls[MEDICATION] == 2


# -----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_failed_first_refresh_raises_cache_unavailable() -> None:
    corpora = default_corpora()
    corpora[LAST_NAME] = CorpusUnavailable(LAST_NAME, 2)
    cache, _, _ = build_cache(corpora)

    with pytest.raises(CacheUnavailable) as info:
        await cache.get_corpus(FIRST_NAME)

    assert isinstance(info.value, CacheRefreshFailed)
    assert isinstance(info.value.__cause__, CorpusUnavailable)
    assert cache.snapshot is None
    assert not cache.is_valid()


# -----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_partial_refresh_failure_keeps_previous_snapshot() -> None:
    cache, aggregator, clock = build_cache(default_corpora())
    await cache.get_corpus(MEDICATION)
    previous = cache.snapshot
    clock.now += DAY + 1
    aggregator.corpora[FIRST_NAME] = {"NEW"}
    aggregator.corpora[LAST_NAME] = CorpusUnavailable(LAST_NAME, 2)

    with pytest.raises(CacheRefreshFailed) as info:
        await cache.get_corpus(FIRST_NAME)

    assert not isinstance(info.value, CacheUnavailable)
    assert cache.snapshot is previous
    assert set(cache.snapshot.first_names) == {"ANA", "JOSE"}
    assert len(info.value.failures) == 1

    aggregator.corpora[LAST_NAME] = {"JONES"}
    last_names = await cache.get_corpus(LAST_NAME)
    assert set(last_names) == {"JONES"}
    assert aggregator.calls[LAST_NAME] == 3


# -----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_concurrent_callers_all_see_refresh_failure() -> None:
    corpora = default_corpora()
    corpora[MEDICATION] = CorpusUnavailable(MEDICATION, 7)
    cache, aggregator, _ = build_cache(corpora)

    results = await asyncio.gather(
        *(cache.get_corpus(MEDICATION) for _ in range(4)), return_exceptions=True
    )

    assert all(isinstance(result, CacheUnavailable) for result in results)
    assert aggregator.calls[MEDICATION] == 1


# -----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_invalidate_forces_refresh() -> None:
    cache, aggregator, _ = build_cache(default_corpora())
    await cache.get_corpus(MEDICATION)

    cache.invalidate()
    assert not cache.is_valid()
    await cache.get_corpus(MEDICATION)

    assert cache.is_valid()
    assert aggregator.calls[MEDICATION] == 2


# -----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_unknown_kind_is_rejected() -> None:
    cache, aggregator, _ = build_cache(default_corpora())
    with pytest.raises(ValueError):
        await cache.get_corpus("dosage")
    assert not aggregator.calls
