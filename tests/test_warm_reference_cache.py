from __future__ import annotations

import pytest

from MEDREF.packages.utils.repository.cache import CacheSnapshot, Corpus
from MEDREF.scripts import warm_reference_cache


###############################################################################
class FakeCache:
    async def refresh(self) -> CacheSnapshot:
        return CacheSnapshot(
            medications=Corpus.from_terms("medication", {"ASPIRIN", "LISINOPRIL"}),
            first_names=Corpus.from_terms("first_name", {"ANA"}),
            last_names=Corpus.from_terms("last_name", set()),
            fetched_at=0.0,
        )


# -----------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_warm_cache_reports_corpus_sizes(monkeypatch) -> None:
    monkeypatch.setattr(warm_reference_cache, "ReferenceCache", FakeCache)

    sizes = await warm_reference_cache.warm_cache()

    assert sizes == {"medication": 2, "first_name": 1, "last_name": 0}
