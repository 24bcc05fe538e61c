from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from MEDREF.packages.configurations import ReferenceSettings, reference_settings
from MEDREF.packages.constants import (
    FIRST_NAME,
    LAST_NAME,
    MEDICATION,
    MEDICATION_FORMS,
    STRENGTH_UNITS,
)
from MEDREF.packages.logger import logger
from MEDREF.packages.utils.repository.cache import ReferenceCache
from MEDREF.packages.utils.services.matching.registry import (
    InMemoryPatientRegistry,
    LocalRegistry,
    PatientNamePair,
)
from MEDREF.packages.utils.services.matching.similarity import similarity
from MEDREF.packages.utils.services.text.normalization import (
    normalize_medication_phrase,
    normalize_medication_word,
    normalize_person_name,
    split_words,
)


###############################################################################
@dataclass(slots=True)
class FirstWordCandidate:
    term: str
    first_similarity: float


# -----------------------------------------------------------------------------
def first_fuzzy_match(
    query: str, candidates: Iterable[str], threshold: float
) -> tuple[str, float] | None:
    for candidate in candidates:
        score = similarity(query, candidate)
        if score >= threshold:
            return candidate, score
    return None


###############################################################################
class ReferenceMatcher:
    """Validates noisy drug and patient name tokens against reference data.

    Lookups go local registry first, then the cached remote corpora, and
    exact matches are always tried before fuzzy ones. Every operation may
    trigger a cache refresh, whose failure is raised to the caller as
    ``CacheRefreshFailed`` instead of being reported as "no match".

    """

    def __init__(
        self,
        cache: ReferenceCache | None = None,
        registry: LocalRegistry | None = None,
        settings: ReferenceSettings | None = None,
    ) -> None:
        self.settings = settings or reference_settings
        self.cache = cache or ReferenceCache(settings=self.settings)
        self.registry = registry or InMemoryPatientRegistry()
        self.matching = self.settings.matching

    # -------------------------------------------------------------------------
    def is_common_name(self, normalized: str) -> bool:
        return normalized in self.matching.common_names

    # -------------------------------------------------------------------------
    async def is_medication(self, word: str) -> bool:
        normalized = normalize_medication_word(word)
        if not normalized:
            return False
        if self.is_common_name(normalized):
            logger.debug("'%s' is a common name, skipped medication check", word)
            return False

        medications = await self.cache.get_corpus(MEDICATION)
        if normalized in medications:
            return True
        match = first_fuzzy_match(
            normalized, medications, self.matching.medication_threshold
        )
        if match is None:
            return False
        logger.debug(
            "Fuzzy matched medication '%s' ~= '%s' (%.1f%%)", word, match[0], match[1]
        )
        return True

    # -------------------------------------------------------------------------
    async def is_medication_strict(self, word: str) -> bool:
        return await self.is_medication(word)

    # -------------------------------------------------------------------------
    async def is_first_name(self, word: str) -> bool:
        return await self._is_name(word, FIRST_NAME, lambda pair: pair.first_name)

    # -------------------------------------------------------------------------
    async def is_last_name(self, word: str) -> bool:
        return await self._is_name(word, LAST_NAME, lambda pair: pair.last_name)

    # -------------------------------------------------------------------------
    async def _is_name(
        self,
        word: str,
        kind: str,
        select: Callable[[PatientNamePair], str],
    ) -> bool:
        normalized = normalize_person_name(word)
        if not normalized:
            return False
        threshold = self.matching.name_threshold

        local_names = [
            stored
            for pair in await self.registry.list_known_pairs()
            if (stored := normalize_person_name(select(pair)))
        ]
        for stored in local_names:
            if stored == normalized or similarity(normalized, stored) >= threshold:
                return True

        names = await self.cache.get_corpus(kind)
        if normalized in names:
            return True
        match = first_fuzzy_match(normalized, names, threshold)
        if match is None:
            return False
        logger.debug(
            "Fuzzy matched %s '%s' ~= '%s' (%.1f%%)", kind, word, match[0], match[1]
        )
        return True

    # -------------------------------------------------------------------------
    async def get_local_patients(self) -> Sequence[PatientNamePair]:
        return await self.registry.list_known_pairs()

    # -------------------------------------------------------------------------
    async def is_known_local_patient(self, first_name: str, last_name: str) -> bool:
        normalized_first = normalize_person_name(first_name)
        normalized_last = normalize_person_name(last_name)
        if not normalized_first or not normalized_last:
            return False
        threshold = self.matching.name_threshold
        for pair in await self.registry.list_known_pairs():
            local_first = normalize_person_name(pair.first_name)
            local_last = normalize_person_name(pair.last_name)
            if local_first == normalized_first and local_last == normalized_last:
                return True
            first_score = similarity(normalized_first, local_first)
            last_score = similarity(normalized_last, local_last)
            if first_score >= threshold and last_score >= threshold:
                logger.debug(
                    "Fuzzy matched local patient '%s %s' ~= '%s %s' (%.1f%%/%.1f%%)",
                    first_name,
                    last_name,
                    pair.first_name,
                    pair.last_name,
                    first_score,
                    last_score,
                )
                return True
        return False

    # -------------------------------------------------------------------------
    async def is_likely_person_name(self, first_name: str, last_name: str) -> bool:
        if not normalize_person_name(first_name) and not normalize_person_name(last_name):
            return False
        if await self.registry.is_known_pair(first_name, last_name):
            return True
        # one strong match is enough for unusual first or last names
        is_first, is_last = await asyncio.gather(
            self.is_first_name(first_name),
            self.is_last_name(last_name),
        )
        return is_first or is_last

    # -------------------------------------------------------------------------
    async def find_closest_medication(self, text: str) -> str | None:
        normalized = normalize_medication_phrase(text)
        if not normalized:
            return None
        medications = await self.cache.get_corpus(MEDICATION)
        if normalized in medications:
            return normalized

        words = split_words(normalized)
        first_word = words[0]
        second_word = words[1] if len(words) > 1 else None

        candidates = [
            FirstWordCandidate(term, score)
            for term in medications
            if (score := similarity(first_word, split_words(term)[0]))
            >= self.matching.medication_threshold
        ]
        if not candidates:
            return self.match_prefix(first_word, medications)

        if second_word is None:
            best = max(candidates, key=lambda candidate: candidate.first_similarity)
            logger.info(
                "Single-word match: '%s' -> '%s' (%.1f%%)",
                text,
                best.term,
                best.first_similarity,
            )
            return best.term
        return self.match_second_word(text, second_word, candidates)

    # -------------------------------------------------------------------------
    def match_prefix(self, first_word: str, medications: Iterable[str]) -> str | None:
        prefix_length = self.matching.prefix_length
        if len(first_word) < prefix_length or self.is_common_name(first_word):
            return None
        prefix = first_word[:prefix_length]
        for term in medications:
            if term.startswith(prefix):
                logger.info("Prefix matched medication '%s' -> '%s'", first_word, term)
                return term
        return None

    # -------------------------------------------------------------------------
    def match_second_word(
        self,
        text: str,
        second_word: str,
        candidates: list[FirstWordCandidate],
    ) -> str | None:
        best_term: str | None = None
        best_second = -1.0
        best_first = -1.0
        fallback: FirstWordCandidate | None = None
        for candidate in candidates:
            term_words = split_words(candidate.term)
            if len(term_words) < 2:
                # single-word terms only win when no multi-word term qualifies
                if fallback is None or candidate.first_similarity > fallback.first_similarity:
                    fallback = candidate
                continue
            second_score = similarity(second_word, term_words[1])
            if second_score < self.matching.second_word_threshold:
                continue
            if second_score > best_second or (
                second_score == best_second and candidate.first_similarity > best_first
            ):
                best_term = candidate.term
                best_second = second_score
                best_first = candidate.first_similarity

        if best_term is not None:
            logger.info(
                "Two-stage match: '%s' -> '%s' (first: %.1f%%, second: %.1f%%)",
                text,
                best_term,
                best_first,
                best_second,
            )
            return best_term
        if fallback is not None:
            logger.info(
                "Single-word fallback: '%s' -> '%s' (first: %.1f%%)",
                text,
                fallback.term,
                fallback.first_similarity,
            )
            return fallback.term
        logger.info("No second word match for '%s' in '%s'", second_word, text)
        return None

    # -------------------------------------------------------------------------
    async def extract_medication_from_phrase(self, phrase: str) -> str | None:
        for word in (phrase or "").split():
            cleaned = normalize_medication_word(word)
            if not cleaned:
                continue
            if await self.is_medication(cleaned):
                return cleaned
            closest = await self.find_closest_medication(cleaned)
            if closest is not None:
                return closest
        return None

    # -------------------------------------------------------------------------
    @staticmethod
    def is_valid_medication_form(form: str) -> bool:
        return (form or "").strip().upper() in MEDICATION_FORMS

    # -------------------------------------------------------------------------
    @staticmethod
    def is_valid_strength_unit(unit: str) -> bool:
        return (unit or "").strip().upper() in STRENGTH_UNITS


__all__ = ["FirstWordCandidate", "ReferenceMatcher", "first_fuzzy_match"]
