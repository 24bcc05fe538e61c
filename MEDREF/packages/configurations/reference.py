from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from MEDREF.packages.configurations.base import (
    configuration_section,
    load_configuration_data,
)
from MEDREF.packages.constants import (
    COMMON_NAME_BLOCKLIST,
    CONFIGURATION_FILE,
    CORPUS_KINDS,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_SOURCES,
    DELIMITED_TEXT,
    STRUCTURED_LIST,
)
from MEDREF.packages.types import (
    coerce_count,
    coerce_duration,
    coerce_flag,
    coerce_label,
    coerce_name_list,
    coerce_percentage,
)


# [REFERENCE SETTINGS]
###############################################################################
@dataclass(frozen=True)
class SourceDescriptor:
    url: str
    shape: str
    record_path: tuple[str, ...] = ()
    fields: tuple[str, ...] = ()

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class SourceSettings:
    request_timeout: float
    early_exit_min_terms: int
    early_exit_min_sources: int
    follow_redirects: bool
    user_agent: str
    accept_header: str
    descriptors: dict[str, tuple[SourceDescriptor, ...]]

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ReferenceCacheSettings:
    ttl_hours: float

    @property
    def ttl_seconds(self) -> float:
        return self.ttl_hours * 3600.0

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class TermSettings:
    raw_min_length: int
    raw_max_length: int
    medication_min_length: int
    medication_max_length: int
    name_min_length: int
    name_max_length: int

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class MatchingSettings:
    medication_threshold: float
    name_threshold: float
    second_word_threshold: float
    prefix_length: int
    common_names: tuple[str, ...]

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ReferenceSettings:
    cache: ReferenceCacheSettings
    sources: SourceSettings
    terms: TermSettings
    matching: MatchingSettings


# [BUILDER FUNCTIONS]
###############################################################################
def build_source_descriptor(data: Any) -> SourceDescriptor | None:
    payload = data if isinstance(data, dict) else {}
    url = coerce_label(payload.get("url"), "")
    if not url:
        return None
    shape = coerce_label(payload.get("shape"), DELIMITED_TEXT).lower()
    if shape not in (STRUCTURED_LIST, DELIMITED_TEXT):
        shape = DELIMITED_TEXT
    record_path = payload.get("record_path") or []
    fields = payload.get("fields") or []
    return SourceDescriptor(
        url=url,
        shape=shape,
        record_path=tuple(str(step) for step in record_path if str(step).strip()),
        fields=tuple(str(field) for field in fields if str(field).strip()),
    )

# -----------------------------------------------------------------------------
def build_source_descriptors(data: Any) -> dict[str, tuple[SourceDescriptor, ...]]:
    payload = data if isinstance(data, dict) else {}
    descriptors: dict[str, tuple[SourceDescriptor, ...]] = {}
    for kind in CORPUS_KINDS:
        entries = payload.get(kind)
        if not isinstance(entries, list) or not entries:
            entries = DEFAULT_SOURCES[kind]
        built = [
            descriptor
            for entry in entries
            if (descriptor := build_source_descriptor(entry)) is not None
        ]
        descriptors[kind] = tuple(built)
    return descriptors

# -----------------------------------------------------------------------------
def build_source_settings(data: dict[str, Any]) -> SourceSettings:
    return SourceSettings(
        request_timeout=coerce_duration(data.get("request_timeout"), 10.0, minimum=0.1),
        early_exit_min_terms=coerce_count(data.get("early_exit_min_terms"), 5000),
        early_exit_min_sources=coerce_count(data.get("early_exit_min_sources"), 2),
        follow_redirects=coerce_flag(data.get("follow_redirects"), True),
        user_agent=coerce_label(data.get("user_agent"), DEFAULT_HTTP_HEADERS["User-Agent"]),
        accept_header=coerce_label(data.get("accept_header"), DEFAULT_HTTP_HEADERS["Accept"]),
        descriptors=build_source_descriptors(data.get("descriptors")),
    )

# -----------------------------------------------------------------------------
def build_cache_settings(data: dict[str, Any]) -> ReferenceCacheSettings:
    return ReferenceCacheSettings(
        ttl_hours=coerce_duration(data.get("ttl_hours"), 24.0),
    )

# -----------------------------------------------------------------------------
def build_term_settings(data: dict[str, Any]) -> TermSettings:
    raw_min = coerce_count(data.get("raw_min_length"), 4)
    raw_max = coerce_count(data.get("raw_max_length"), 50)
    med_min = coerce_count(data.get("medication_min_length"), 4)
    med_max = coerce_count(data.get("medication_max_length"), 40)
    name_min = coerce_count(data.get("name_min_length"), 1)
    name_max = coerce_count(data.get("name_max_length"), 50)
    return TermSettings(
        raw_min_length=raw_min,
        raw_max_length=max(raw_max, raw_min),
        medication_min_length=med_min,
        medication_max_length=max(med_max, med_min),
        name_min_length=name_min,
        name_max_length=max(name_max, name_min),
    )

# -----------------------------------------------------------------------------
def build_matching_settings(data: dict[str, Any]) -> MatchingSettings:
    return MatchingSettings(
        medication_threshold=coerce_percentage(data.get("medication_threshold"), 90.0),
        name_threshold=coerce_percentage(data.get("name_threshold"), 85.0),
        second_word_threshold=coerce_percentage(data.get("second_word_threshold"), 10.0),
        prefix_length=coerce_count(data.get("prefix_length"), 4),
        common_names=coerce_name_list(data.get("common_names"), COMMON_NAME_BLOCKLIST),
    )

# -----------------------------------------------------------------------------
def build_reference_settings(data: dict[str, Any] | Any) -> ReferenceSettings:
    return ReferenceSettings(
        cache=build_cache_settings(configuration_section(data, "reference_cache")),
        sources=build_source_settings(configuration_section(data, "sources")),
        terms=build_term_settings(configuration_section(data, "terms")),
        matching=build_matching_settings(configuration_section(data, "matching")),
    )


# [CONFIGURATION LOADER]
###############################################################################
def get_reference_settings(config_path: str | None = None) -> ReferenceSettings:
    path = config_path or CONFIGURATION_FILE
    payload = load_configuration_data(path)
    return build_reference_settings(payload)


reference_settings = get_reference_settings()
