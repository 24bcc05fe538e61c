from __future__ import annotations

import json
import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from MEDREF.packages.logger import logger
from MEDREF.packages.utils.services.text.normalization import coerce_text

FIRST_NAME_KEYS = ("firstName", "first_name", "first")
LAST_NAME_KEYS = ("lastName", "last_name", "last")
PREFIX_MATCH_LENGTH = 3


###############################################################################
@dataclass(frozen=True, slots=True)
class PatientNamePair:
    first_name: str
    last_name: str


###############################################################################
@runtime_checkable
class LocalRegistry(Protocol):
    async def list_known_pairs(self) -> Sequence[PatientNamePair]: ...

    async def is_known_pair(self, first_name: str, last_name: str) -> bool: ...


# -----------------------------------------------------------------------------
def _first_present(entry: dict[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        text = coerce_text(entry.get(key))
        if text:
            return text
    return ""


# -----------------------------------------------------------------------------
def parse_patient_pairs(payload: Any) -> list[PatientNamePair]:
    if not isinstance(payload, list):
        return []
    pairs: list[PatientNamePair] = []
    for entry in payload:
        if isinstance(entry, PatientNamePair):
            pair = entry
        elif isinstance(entry, dict):
            pair = PatientNamePair(
                first_name=_first_present(entry, FIRST_NAME_KEYS),
                last_name=_first_present(entry, LAST_NAME_KEYS),
            )
        else:
            continue
        # records without any name, e.g. bare ids, are not patients
        if pair.first_name.strip() or pair.last_name.strip():
            pairs.append(pair)
    return pairs


# -----------------------------------------------------------------------------
def pair_matches(pair: PatientNamePair, first_name: str, last_name: str) -> bool:
    """Exact pair match, or both stored fields share the inputs' 3-letter prefix.

    Both inputs must be non-empty; a blank name never identifies a patient.

    """
    normalized_first = (first_name or "").strip().upper()
    normalized_last = (last_name or "").strip().upper()
    if not normalized_first or not normalized_last:
        return False
    stored_first = pair.first_name.strip().upper()
    stored_last = pair.last_name.strip().upper()
    if stored_first == normalized_first and stored_last == normalized_last:
        return True
    return (
        len(normalized_first) >= PREFIX_MATCH_LENGTH
        and len(normalized_last) >= PREFIX_MATCH_LENGTH
        and stored_first.startswith(normalized_first[:PREFIX_MATCH_LENGTH])
        and stored_last.startswith(normalized_last[:PREFIX_MATCH_LENGTH])
    )


###############################################################################
class InMemoryPatientRegistry:
    def __init__(self, pairs: Iterable[PatientNamePair | dict[str, Any]] = ()) -> None:
        self.pairs: list[PatientNamePair] = parse_patient_pairs(list(pairs))

    # -------------------------------------------------------------------------
    def add(self, first_name: str, last_name: str) -> None:
        self.pairs.append(PatientNamePair(first_name, last_name))

    # -------------------------------------------------------------------------
    async def list_known_pairs(self) -> Sequence[PatientNamePair]:
        return tuple(self.pairs)

    # -------------------------------------------------------------------------
    async def is_known_pair(self, first_name: str, last_name: str) -> bool:
        return any(pair_matches(pair, first_name, last_name) for pair in self.pairs)


###############################################################################
class JsonPatientRegistry:
    """Patient names persisted by the host application as a JSON array.

    The file is re-read on every call so that names saved at login are seen
    without restarting. Unreadable content is treated as an empty registry.

    """

    def __init__(self, path: str) -> None:
        self.path = path

    # -------------------------------------------------------------------------
    def load(self) -> list[PatientNamePair]:
        if not os.path.isfile(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Unable to read patient registry %s: %s", self.path, exc)
            return []
        return parse_patient_pairs(payload)

    # -------------------------------------------------------------------------
    async def list_known_pairs(self) -> Sequence[PatientNamePair]:
        return tuple(self.load())

    # -------------------------------------------------------------------------
    async def is_known_pair(self, first_name: str, last_name: str) -> bool:
        return any(pair_matches(pair, first_name, last_name) for pair in self.load())


__all__ = [
    "InMemoryPatientRegistry",
    "JsonPatientRegistry",
    "LocalRegistry",
    "PatientNamePair",
    "pair_matches",
    "parse_patient_pairs",
]
