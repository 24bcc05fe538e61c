from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable
from typing import Any

import pandas as pd

from MEDREF.packages.configurations import TermSettings
from MEDREF.packages.constants import MEDICATION

MEDICATION_DISALLOWED_RE = r"[^A-Z\s-]"
MEDICATION_TERM_RE = r"[A-Z][A-Z\s-]+"
NAME_DISALLOWED_RE = r"[^A-Z]"


# -----------------------------------------------------------------------------
def coerce_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        return text or None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    text = str(value).strip()
    return text or None


# -----------------------------------------------------------------------------
def fold_ascii(value: str) -> str:
    if not value:
        return ""
    return (
        unicodedata.normalize("NFKD", value)
        .encode("ascii", "ignore")
        .decode("ascii")
    )


# -----------------------------------------------------------------------------
def normalize_whitespace(value: str) -> str:
    if not value:
        return ""
    return re.sub(r"\s+", " ", value).strip()


# -----------------------------------------------------------------------------
def normalize_person_name(value: str | None) -> str:
    if not value:
        return ""
    return fold_ascii(value).upper().strip()


# -----------------------------------------------------------------------------
def normalize_medication_word(value: str | None) -> str:
    if not value:
        return ""
    return re.sub(r"[^A-Z]", "", fold_ascii(value).upper())


# -----------------------------------------------------------------------------
def normalize_medication_phrase(value: str | None) -> str:
    if not value:
        return ""
    cleaned = re.sub(r"[^A-Z\s]", "", fold_ascii(value).upper())
    return normalize_whitespace(cleaned)


# -----------------------------------------------------------------------------
def split_words(value: str) -> list[str]:
    return [word for word in value.split() if word]


# -----------------------------------------------------------------------------
def _as_text_series(values: Iterable[Any] | pd.Series) -> pd.Series:
    series = values if isinstance(values, pd.Series) else pd.Series(list(values), dtype="object")
    series = series.dropna()
    if series.empty:
        return pd.Series([], dtype="object")
    series = series.astype(str)
    return series.str.normalize("NFKD").str.encode("ascii", "ignore").str.decode("ascii")


# -----------------------------------------------------------------------------
def clean_medication_terms(
    values: Iterable[Any] | pd.Series, settings: TermSettings
) -> frozenset[str]:
    series = _as_text_series(values)
    if series.empty:
        return frozenset()
    cleaned = (
        series.str.upper()
        .str.replace(MEDICATION_DISALLOWED_RE, "", regex=True)
        .str.replace(r"\s+", " ", regex=True)
        .str.strip()
    )
    lengths = cleaned.str.len()
    cleaned = cleaned[
        (lengths >= settings.medication_min_length)
        & (lengths <= settings.medication_max_length)
    ]
    cleaned = cleaned[cleaned.str.fullmatch(MEDICATION_TERM_RE).fillna(False).astype(bool)]
    return frozenset(cleaned.unique())


# -----------------------------------------------------------------------------
def clean_name_terms(values: Iterable[Any] | pd.Series, settings: TermSettings) -> frozenset[str]:
    series = _as_text_series(values)
    if series.empty:
        return frozenset()
    cleaned = series.str.upper().str.replace(NAME_DISALLOWED_RE, "", regex=True)
    lengths = cleaned.str.len()
    cleaned = cleaned[
        (lengths >= settings.name_min_length) & (lengths <= settings.name_max_length)
    ]
    return frozenset(cleaned.unique())


# -----------------------------------------------------------------------------
def clean_terms(
    values: Iterable[Any] | pd.Series, kind: str, settings: TermSettings
) -> frozenset[str]:
    if kind == MEDICATION:
        return clean_medication_terms(values, settings)
    return clean_name_terms(values, settings)


__all__ = [
    "clean_medication_terms",
    "clean_name_terms",
    "clean_terms",
    "coerce_text",
    "fold_ascii",
    "normalize_medication_phrase",
    "normalize_medication_word",
    "normalize_person_name",
    "normalize_whitespace",
    "split_words",
]
