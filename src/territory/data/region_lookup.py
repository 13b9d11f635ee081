"""Canonical region lookup compiled once from the static tables."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from rapidfuzz.distance import Levenshtein

from ..models.domain import UNRESOLVED_REGION
from .regions import CITY_TO_REGION, POSTAL_PREFIX_TO_REGION, REGIONS, REPUBLIC_MARKER_ONLY, RegionDefinition

_OBLAST_SUFFIX = r"(?:автономн\w*\s+)?обл\w*"
_KRAI_SUFFIX = r"кра[йяею]"
_REPUBLIC_MARKER = r"(?:республик\w*|респ)"
_OKRUG_SUFFIX = r"(?:автономн\w*\s+округ\w*|ао|а\s+о)"
_CITY_MARKER = r"(?:г|гор|город)"

FUZZY_DISTANCE_RATIO = 0.2


def fold_text(value: object) -> str:
    """Lower-case, fold "ё" and replace punctuation with single spaces.

    Hyphens inside words are kept so that names such as "ростов-на-дону"
    survive folding.
    """

    if value is None:
        return ""
    text = str(value).lower().replace("ё", "е").replace("\u00a0", " ")
    text = re.sub(r"[^\w\s-]", " ", text)
    text = re.sub(r"(?<!\w)-+|-+(?!\w)", " ", text)
    text = text.replace("_", " ")
    return re.sub(r"\s+", " ", text).strip()


def _word(pattern: str) -> str:
    return rf"(?<![\w-]){pattern}(?![\w-])"


def _definition_patterns(definition: RegionDefinition) -> list[str]:
    patterns: list[str] = []
    stem = re.escape(definition.stem) if definition.stem else None
    if stem and definition.kind == "oblast":
        patterns.append(rf"\b{stem}\w*\s+{_OBLAST_SUFFIX}\b")
        patterns.append(rf"\bобл\w*\s+{stem}\w*")
    elif stem and definition.kind == "krai":
        patterns.append(rf"\b{stem}\w*\s+{_KRAI_SUFFIX}\b")
        patterns.append(rf"\b{_KRAI_SUFFIX}\s+{stem}\w*")
    elif stem and definition.kind == "republic":
        patterns.append(rf"\b{stem}\w*\s+{_REPUBLIC_MARKER}\b")
        patterns.append(rf"\b{_REPUBLIC_MARKER}\s+{stem}\w*")
    elif stem and definition.kind == "okrug":
        patterns.append(rf"\b{stem}\w*\s+{_OKRUG_SUFFIX}\b")
    for alias in definition.aliases:
        patterns.append(_word(re.escape(alias)))
    return patterns


@dataclass(frozen=True, slots=True)
class RegionResolution:
    region: str
    source: str

    @property
    def resolved(self) -> bool:
        return self.region != UNRESOLVED_REGION


UNRESOLVED = RegionResolution(region=UNRESOLVED_REGION, source="unknown")


@dataclass(frozen=True, slots=True)
class CityMatch:
    key: str
    name: str
    region: str


@dataclass(frozen=True, slots=True)
class FuzzyCityResult:
    """Outcome of fuzzy city matching.

    ``match`` is set when the closest candidates agree on a single region;
    otherwise ``candidates`` lists the tied city names.
    """

    match: Optional[CityMatch]
    candidates: tuple[str, ...]
    distance: Optional[int]


class RegionLookup:
    """Single entry point for every region, city and postal-code table."""

    def __init__(
        self,
        regions: Sequence[RegionDefinition] = REGIONS,
        cities: dict[str, tuple[str, str]] = CITY_TO_REGION,
        postal_prefixes: dict[str, str] = POSTAL_PREFIX_TO_REGION,
    ) -> None:
        self._postal_prefixes = dict(postal_prefixes)
        self._cities = {fold_text(key): value for key, value in cities.items()}
        self._canonical = {fold_text(definition.name): definition.name for definition in regions}
        self._stems = sorted(
            ((definition.stem, definition.name) for definition in regions if definition.stem),
            key=lambda item: -len(item[0]),
        )

        keyword_patterns: list[tuple[re.Pattern[str], str]] = []
        for definition in regions:
            for pattern in _definition_patterns(definition):
                keyword_patterns.append((re.compile(pattern), definition.name))
        for name, region in REPUBLIC_MARKER_ONLY.items():
            escaped = re.escape(name)
            keyword_patterns.append((re.compile(rf"\b{_REPUBLIC_MARKER}\s+{escaped}\b"), region))
            keyword_patterns.append((re.compile(rf"\b{escaped}\s+{_REPUBLIC_MARKER}\b"), region))
        self._keyword_patterns = keyword_patterns
        self._keyword_any = re.compile("|".join(f"(?:{regex.pattern})" for regex, _ in keyword_patterns))

        city_alternatives = "|".join(re.escape(key) for key in sorted(self._cities, key=len, reverse=True))
        self._city_any = re.compile(_word(f"(?:{city_alternatives})"))
        self._city_marked = re.compile(rf"\b{_CITY_MARKER}\s+({city_alternatives})(?![\w-])")

    @property
    def city_names(self) -> tuple[str, ...]:
        return tuple(self._cities)

    def match_region_keyword(self, text: str) -> Optional[str]:
        """Return the earliest explicitly named region in folded ``text``."""

        found = self._keyword_any.search(text)
        if not found:
            return None
        for regex, region in self._keyword_patterns:
            if regex.match(text, found.start()):
                return region
        return None

    def region_for_postal_code(self, code: str) -> Optional[str]:
        if not code or len(code) != 6 or not code.isdigit():
            return None
        return self._postal_prefixes.get(code[:3])

    def match_city(self, text: str) -> Optional[CityMatch]:
        """Find a known city in folded ``text``, preferring one after a city marker."""

        found = self._city_marked.search(text)
        key = found.group(1) if found else None
        if key is None:
            found = self._city_any.search(text)
            key = found.group(0) if found else None
        if key is None:
            return None
        name, region = self._cities[key]
        return CityMatch(key=key, name=name, region=region)

    def fuzzy_city(self, tokens: Iterable[str]) -> FuzzyCityResult:
        """Match tokens against city names by edit distance.

        The allowed distance grows with the city name length. Equally close
        candidates from different regions are reported, never chosen.
        """

        best_distance: Optional[int] = None
        best_keys: list[str] = []
        for token in tokens:
            for key in self._cities:
                threshold = max(1, round(len(key) * FUZZY_DISTANCE_RATIO))
                if abs(len(key) - len(token)) > threshold:
                    continue
                distance = Levenshtein.distance(token, key, score_cutoff=threshold)
                if distance > threshold:
                    continue
                if best_distance is None or distance < best_distance:
                    best_distance = distance
                    best_keys = [key]
                elif distance == best_distance and key not in best_keys:
                    best_keys.append(key)

        if not best_keys:
            return FuzzyCityResult(match=None, candidates=(), distance=None)

        regions = {self._cities[key][1] for key in best_keys}
        names = tuple(self._cities[key][0] for key in best_keys)
        if len(regions) > 1:
            return FuzzyCityResult(match=None, candidates=names, distance=best_distance)
        key = best_keys[0]
        name, region = self._cities[key]
        if len(best_keys) > 1:
            # Same region, different towns: keep the region, not the town.
            return FuzzyCityResult(match=CityMatch(key="", name="", region=region), candidates=names, distance=best_distance)
        return FuzzyCityResult(match=CityMatch(key=key, name=name, region=region), candidates=(), distance=best_distance)

    def resolve_region(self, candidate: object) -> RegionResolution:
        """Resolve a free-form region value (a "region" column, an address, a city)."""

        text = fold_text(candidate)
        if not text:
            return UNRESOLVED

        region = self.match_region_keyword(text)
        if region:
            return RegionResolution(region=region, source="explicit_region")

        canonical = self._canonical.get(text)
        if canonical:
            return RegionResolution(region=canonical, source="explicit_region")

        for token in text.split():
            for stem, name in self._stems:
                if token.startswith(stem) and len(token) - len(stem) <= 4:
                    return RegionResolution(region=name, source="region_stem")

        city = self.match_city(text)
        if city:
            return RegionResolution(region=city.region, source="city_lookup")
        return UNRESOLVED


@functools.lru_cache(maxsize=1)
def get_region_lookup() -> RegionLookup:
    """Return the process-wide lookup, compiled on first use."""

    return RegionLookup()


def resolve_region(candidate: object) -> RegionResolution:
    return get_region_lookup().resolve_region(candidate)
