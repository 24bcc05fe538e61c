from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from MEDREF.packages.configurations import ReferenceSettings, reference_settings
from MEDREF.packages.constants import CORPUS_KINDS, FIRST_NAME, LAST_NAME, MEDICATION
from MEDREF.packages.logger import logger
from MEDREF.packages.utils.updater.sources import CorpusUnavailable, SourceAggregator


###############################################################################
class CacheRefreshFailed(RuntimeError):
    """Reference data could not be refreshed; validation is unavailable."""

    def __init__(self, message: str, failures: Iterable[BaseException] = ()) -> None:
        super().__init__(message)
        self.failures = tuple(failures)


class CacheUnavailable(CacheRefreshFailed):
    """No snapshot has ever been established."""


###############################################################################
@dataclass(frozen=True, slots=True)
class Corpus:
    kind: str
    terms: frozenset[str]
    ordered: tuple[str, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        # scans run in alphabetical order so "first found" is stable
        if len(self.ordered) != len(self.terms):
            object.__setattr__(self, "ordered", tuple(sorted(self.terms)))

    # -------------------------------------------------------------------------
    @classmethod
    def from_terms(cls, kind: str, terms: Iterable[str]) -> Corpus:
        return cls(kind=kind, terms=frozenset(terms))

    # -------------------------------------------------------------------------
    def __contains__(self, term: object) -> bool:
        return term in self.terms

    # -------------------------------------------------------------------------
    def __iter__(self):
        return iter(self.ordered)

    # -------------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self.terms)


###############################################################################
@dataclass(frozen=True, slots=True)
class CacheSnapshot:
    medications: Corpus
    first_names: Corpus
    last_names: Corpus
    fetched_at: float

    # -------------------------------------------------------------------------
    def corpus(self, kind: str) -> Corpus:
        if kind == MEDICATION:
            return self.medications
        if kind == FIRST_NAME:
            return self.first_names
        if kind == LAST_NAME:
            return self.last_names
        raise ValueError(f"Unknown corpus kind: {kind}")

    # -------------------------------------------------------------------------
    def sizes(self) -> dict[str, int]:
        return {kind: len(self.corpus(kind)) for kind in CORPUS_KINDS}


###############################################################################
class ReferenceCache:
    """In-memory owner of the reference corpora.

    The snapshot is only ever replaced as a whole, and only after all three
    corpora were fetched. Callers arriving while a refresh is running wait on
    the same task instead of starting their own.

    """

    def __init__(
        self,
        aggregator: Any | None = None,
        settings: ReferenceSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or reference_settings
        self.aggregator = aggregator or SourceAggregator(self.settings)
        self.clock = clock
        self.snapshot: CacheSnapshot | None = None
        self.refresh_task: asyncio.Task[CacheSnapshot] | None = None
        self.stale = False

    # -------------------------------------------------------------------------
    @property
    def ttl_seconds(self) -> float:
        return self.settings.cache.ttl_seconds

    # -------------------------------------------------------------------------
    def is_valid(self) -> bool:
        if self.snapshot is None or self.stale:
            return False
        return self.clock() - self.snapshot.fetched_at < self.ttl_seconds

    # -------------------------------------------------------------------------
    def invalidate(self) -> None:
        """Force a refresh on next use; the current snapshot stays as fallback state."""
        self.stale = True

    # -------------------------------------------------------------------------
    async def get_corpus(self, kind: str) -> Corpus:
        if kind not in CORPUS_KINDS:
            raise ValueError(f"Unknown corpus kind: {kind}")
        snapshot = self.snapshot
        if snapshot is not None and self.is_valid():
            logger.debug("Using cached %s corpus (%d terms)", kind, len(snapshot.corpus(kind)))
            return snapshot.corpus(kind)
        snapshot = await self.refresh()
        return snapshot.corpus(kind)

    # -------------------------------------------------------------------------
    async def refresh(self) -> CacheSnapshot:
        task = self.refresh_task
        if task is None or task.done():
            loop = asyncio.get_running_loop()
            task = loop.create_task(self._run_refresh())
            self.refresh_task = task
            task.add_done_callback(self._release_task)
        # waiters may be cancelled without aborting the shared refresh
        return await asyncio.shield(task)

    # -------------------------------------------------------------------------
    def _release_task(self, task: asyncio.Task[CacheSnapshot]) -> None:
        if self.refresh_task is task:
            self.refresh_task = None
        if not task.cancelled():
            # consumed here so an unobserved failure is not reported twice
            task.exception()

    # -------------------------------------------------------------------------
    async def _run_refresh(self) -> CacheSnapshot:
        logger.info("Fetching reference corpora from remote sources")
        results = await asyncio.gather(
            *(self.aggregator.fetch_corpus(kind) for kind in CORPUS_KINDS),
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            unexpected = [
                failure for failure in failures if not isinstance(failure, Exception)
            ]
            if unexpected:
                raise unexpected[0]
            kinds = [
                failure.kind if isinstance(failure, CorpusUnavailable) else repr(failure)
                for failure in failures
            ]
            logger.error("Reference cache refresh failed for: %s", ", ".join(kinds))
            error_type = CacheRefreshFailed if self.snapshot is not None else CacheUnavailable
            raise error_type(
                f"Reference data unavailable ({', '.join(kinds)})", failures
            ) from failures[0]

        medications, first_names, last_names = results
        snapshot = CacheSnapshot(
            medications=Corpus.from_terms(MEDICATION, medications),
            first_names=Corpus.from_terms(FIRST_NAME, first_names),
            last_names=Corpus.from_terms(LAST_NAME, last_names),
            fetched_at=self.clock(),
        )
        self.snapshot = snapshot
        self.stale = False
        logger.info("Reference cache refreshed: %s", snapshot.sizes())
        return snapshot


__all__ = [
    "CacheRefreshFailed",
    "CacheSnapshot",
    "CacheUnavailable",
    "Corpus",
    "ReferenceCache",
]
