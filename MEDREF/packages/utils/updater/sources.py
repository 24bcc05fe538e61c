from __future__ import annotations

from typing import Any

import httpx
import pandas as pd

from MEDREF.packages.configurations import (
    ReferenceSettings,
    SourceDescriptor,
    reference_settings,
)
from MEDREF.packages.constants import (
    CORPUS_KINDS,
    MEDICATION,
    STRUCTURED_LIST,
    TEXT_HEADER_MARKERS,
    TEXT_HEADER_PREFIXES,
)
from MEDREF.packages.logger import logger
from MEDREF.packages.utils.services.text.normalization import clean_terms, coerce_text


###############################################################################
class SourceFetchError(RuntimeError):
    """A single remote source could not be fetched or parsed."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Source {url} failed: {reason}")
        self.url = url
        self.reason = reason

class CorpusUnavailable(RuntimeError):
    """Every remote source for one corpus kind failed or was empty."""

    def __init__(self, kind: str, attempted: int) -> None:
        super().__init__(f"All {attempted} sources for '{kind}' failed or returned no terms")
        self.kind = kind
        self.attempted = attempted


# -----------------------------------------------------------------------------
def first_value(value: Any) -> str | None:
    if isinstance(value, (list, tuple)):
        for item in value:
            text = coerce_text(item)
            if text:
                return text
        return None
    if isinstance(value, dict):
        return None
    return coerce_text(value)


# -----------------------------------------------------------------------------
def extract_structured_values(payload: Any, source: SourceDescriptor) -> pd.Series:
    records = payload
    for step in source.record_path:
        if not isinstance(records, dict) or step not in records:
            raise ValueError(f"missing '{step}' in structured payload")
        records = records[step]
    if not isinstance(records, list):
        raise ValueError("structured payload does not resolve to a list of records")
    rows = [record for record in records if isinstance(record, dict)]
    if not rows or not source.fields:
        return pd.Series([], dtype="object")
    frame = pd.json_normalize(rows)
    columns = [field for field in source.fields if field in frame.columns]
    if not columns:
        return pd.Series([], dtype="object")
    # earlier fields take precedence, later ones only fill the gaps
    values = frame[columns[0]].map(first_value)
    for column in columns[1:]:
        values = values.combine_first(frame[column].map(first_value))
    return values.dropna()


# -----------------------------------------------------------------------------
def extract_delimited_values(
    text: str, min_length: int | None = None, max_length: int | None = None
) -> pd.Series:
    lines = pd.Series(text.splitlines(), dtype="object")
    lines = lines[lines.str.strip() != ""]
    if lines.empty:
        return pd.Series([], dtype="object")
    lowered = lines.str.lower()
    header_mask = pd.Series(False, index=lines.index)
    for marker in TEXT_HEADER_MARKERS:
        header_mask |= lowered.str.contains(marker, regex=False)
    for prefix in TEXT_HEADER_PREFIXES:
        header_mask |= lowered.str.startswith(prefix)
    lines = lines[~header_mask]
    values = lines.str.split(r"[,\t]", regex=True).str[0].str.strip()
    if min_length is not None or max_length is not None:
        lengths = values.str.len()
        mask = pd.Series(True, index=values.index)
        if min_length is not None:
            mask &= lengths >= min_length
        if max_length is not None:
            mask &= lengths <= max_length
        values = values[mask]
    return values


###############################################################################
class SourceAggregator:
    """Collects and cleans reference terms from the ordered remote sources.

    Sources of one kind are tried one after the other and their terms are
    merged. A failing source is logged and skipped, and the fetch for a kind
    fails only when no source contributed anything. Medication fetches stop
    early once enough terms from enough sources have been collected.

    """

    def __init__(
        self,
        settings: ReferenceSettings | None = None,
        *,
        client: Any | None = None,
    ) -> None:
        self.settings = settings or reference_settings
        self.client = client
        self.http_headers = {
            "User-Agent": self.settings.sources.user_agent,
            "Accept": self.settings.sources.accept_header,
        }

    # -------------------------------------------------------------------------
    def get_sources(self, kind: str) -> tuple[SourceDescriptor, ...]:
        if kind not in CORPUS_KINDS:
            raise ValueError(f"Unknown corpus kind: {kind}")
        return self.settings.sources.descriptors.get(kind, ())

    # -------------------------------------------------------------------------
    async def fetch_corpus(self, kind: str) -> frozenset[str]:
        sources = self.get_sources(kind)
        if self.client is not None:
            return await self.collect(self.client, kind, sources)
        async with httpx.AsyncClient(
            timeout=self.settings.sources.request_timeout,
            headers=self.http_headers,
            follow_redirects=self.settings.sources.follow_redirects,
        ) as client:
            return await self.collect(client, kind, sources)

    # -------------------------------------------------------------------------
    async def collect(
        self, client: Any, kind: str, sources: tuple[SourceDescriptor, ...]
    ) -> frozenset[str]:
        collected: set[str] = set()
        success_count = 0
        for source in sources:
            try:
                terms = await self.fetch_source(client, kind, source)
            except SourceFetchError as exc:
                logger.warning("Skipping %s source: %s", kind, exc)
                continue
            collected.update(terms)
            if terms:
                success_count += 1
                logger.info(
                    "Fetched %d %s terms from %s (total: %d)",
                    len(terms),
                    kind,
                    source.url,
                    len(collected),
                )
            if kind == MEDICATION and self.should_stop_early(len(collected), success_count):
                logger.info(
                    "Early exit: %d %s terms from %d sources is sufficient",
                    len(collected),
                    kind,
                    success_count,
                )
                break

        if success_count == 0 or not collected:
            logger.error("No usable %s source among %d candidates", kind, len(sources))
            raise CorpusUnavailable(kind, len(sources))
        logger.info(
            "Collected %d %s terms from %d sources", len(collected), kind, success_count
        )
        return frozenset(collected)

    # -------------------------------------------------------------------------
    def should_stop_early(self, total_terms: int, success_count: int) -> bool:
        sources_settings = self.settings.sources
        return (
            total_terms >= sources_settings.early_exit_min_terms
            and success_count >= sources_settings.early_exit_min_sources
        )

    # -------------------------------------------------------------------------
    async def fetch_source(
        self, client: Any, kind: str, source: SourceDescriptor
    ) -> frozenset[str]:
        try:
            response = await client.get(
                source.url,
                headers=self.http_headers,
                timeout=self.settings.sources.request_timeout,
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise SourceFetchError(source.url, "request timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise SourceFetchError(
                source.url, f"HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SourceFetchError(source.url, f"{type(exc).__name__}: {exc}") from exc

        try:
            raw_values = self.parse_response(response, kind, source)
        except ValueError as exc:
            raise SourceFetchError(source.url, f"malformed payload ({exc})") from exc
        return clean_terms(raw_values, kind, self.settings.terms)

    # -------------------------------------------------------------------------
    def parse_response(
        self, response: httpx.Response, kind: str, source: SourceDescriptor
    ) -> pd.Series:
        content_type = (response.headers.get("content-type") or "").lower()
        # raw file hosts label JSON as text/plain, so the declared shape decides then
        if "json" in content_type or source.shape == STRUCTURED_LIST:
            # json decoding errors are ValueError subclasses
            payload = response.json()
            return extract_structured_values(payload, source)
        if kind == MEDICATION:
            terms = self.settings.terms
            return extract_delimited_values(
                response.text, terms.raw_min_length, terms.raw_max_length
            )
        return extract_delimited_values(response.text)


__all__ = [
    "CorpusUnavailable",
    "SourceAggregator",
    "SourceFetchError",
    "extract_delimited_values",
    "extract_structured_values",
    "first_value",
]
