"""Free-text Russian address normalization.

Resolution order for the region:

1. a region named explicitly in the text ("Краснодарский край", "Московской
   обл.", "Республика Татарстан") always wins;
2. a six digit postal code, through its three digit prefix (five digit
   codes are kept as the postal code but never resolve a region);
3. an exact city name;
4. a fuzzy city match, only when the closest candidates agree on one region.

Anything else leaves the region at ``UNRESOLVED_REGION``. Parsing never
raises: malformed input simply yields lower confidence.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from ...data.region_lookup import fold_text, get_region_lookup
from ...models.domain import ParsedAddress

CONFIDENCE_EXPLICIT = 0.95
CONFIDENCE_CITY = 0.9
CONFIDENCE_POSTAL = 0.85
CONFIDENCE_FUZZY = 0.7
CONFIDENCE_AMBIGUOUS = 0.2

UNKNOWN_ADDRESS_VALUES = frozenset({"неизвестно", "нет", "нет адреса", "не указан", "n a", "na", "none", "null"})

_POSTAL_RE = re.compile(r"(?<!\d)(\d{5,6})(?!\d)")
_KEY_POSTAL_RE = re.compile(r"^\d{5,6}$")

# Tokens that carry no identity of their own once the address is folded.
_MARKER_TOKENS = frozenset(
    {
        "г", "гор", "город", "пгт", "пос", "поселок", "п", "с", "село", "дер", "деревня", "ст-ца", "станица",
        "ул", "улица", "пр", "пр-т", "пр-кт", "просп", "проспект", "пер", "переулок", "ш", "шоссе",
        "б-р", "бул", "бульвар", "наб", "набережная", "пл", "площадь", "мкр", "мкр-н", "микрорайон",
        "проезд", "пр-д", "туп", "тупик", "д", "дом", "корп", "корпус", "стр", "строение", "лит", "литера",
        "оф", "офис", "пом", "помещение", "кв", "обл", "область", "край", "респ", "республика",
        "р-н", "район", "ао", "россия", "рф",
    }
)

_STREET_MARKERS = (
    r"ул(?:ица)?",
    r"пр-?к?т",
    r"просп(?:ект)?",
    r"пер(?:еулок)?",
    r"ш(?:оссе)?",
    r"б-р",
    r"бул(?:ьвар)?",
    r"наб(?:ережная)?",
    r"пл(?:ощадь)?",
    r"мкр(?:-н)?",
    r"микрорайон",
    r"проезд",
    r"туп(?:ик)?",
    r"пр",
)
_STREET_MARKER_RE = "|".join(_STREET_MARKERS)
_STREET_RE = re.compile(rf"(?i)(?<![\w-])(?:{_STREET_MARKER_RE})\.?\s+([^,;]+)")
_STREET_SUFFIX_RE = re.compile(rf"(?i)([^,;]*?\S)\s+(?:{_STREET_MARKER_RE})\.?(?=\s*(?:[,;]|$))")
_HOUSE_RE = re.compile(r"(?i)(?<![\w-])(?:д|дом)\.?\s*(\d+[а-яa-z]?(?:/\d+[а-яa-z]?)?)")
_BUILDING_RE = re.compile(
    r"(?i)(?<![\w-])(?:корп(?:ус)?|стр(?:оение)?|лит(?:ера)?|к)\.?\s*(\d+[а-яa-z]?|[а-яa-z](?![\w-]))"
)
_TRAILING_NUMBER_RE = re.compile(r"(?i)\s(\d+[а-яa-z]?(?:/\d+[а-яa-z]?)?)\s*$")
_STREET_TAIL_RE = re.compile(r"(?i)\s*(?:,?\s*(?:д|дом)\.?\s*\d.*|\s\d+[а-яa-z]?(?:/\d+[а-яa-z]?)?)$")

_FUZZY_STOP_WORDS = _MARKER_TOKENS | {"автономный", "округ", "федерация", "российская"}
_STREET_MARKER_TOKENS = frozenset(
    {"ул", "улица", "пр", "пр-т", "пр-кт", "просп", "проспект", "пер", "переулок", "ш", "шоссе", "б-р", "бул",
     "бульвар", "наб", "набережная", "пл", "площадь", "мкр", "микрорайон", "проезд", "туп", "тупик"}
)


def normalize_address_key(address: Optional[str]) -> str:
    """Build the grouping key for an address.

    Case, "ё", punctuation, postal codes and marker abbreviations are removed
    so that "г. Москва, ул. Ленина 1" and "Москва Ленина 1" share a key.
    Applying the function to its own output returns the same string.
    Placeholders such as "нет адреса" give an empty key.
    """

    folded = fold_text(address)
    if folded in UNKNOWN_ADDRESS_VALUES:
        return ""
    tokens = [
        token
        for token in folded.split()
        if token not in _MARKER_TOKENS and not _KEY_POSTAL_RE.match(token)
    ]
    key = " ".join(tokens)
    return "" if key in UNKNOWN_ADDRESS_VALUES else key


def normalize_for_comparison(value: Optional[str]) -> str:
    """Looser normalization used to compare cache addresses verbatim."""

    text = str(value or "").lower().replace("\u00a0", " ")
    text = re.sub(r"[.,]", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def _fuzzy_tokens(folded: str) -> Iterable[str]:
    previous = ""
    for token in folded.split():
        candidate = token
        skip = (
            len(candidate) < 4
            or candidate in _FUZZY_STOP_WORDS
            or previous in _STREET_MARKER_TOKENS
            or any(char.isdigit() for char in candidate)
        )
        previous = token
        if not skip:
            yield candidate


def _extract_street(address: str) -> tuple[Optional[str], Optional[str]]:
    match = _STREET_RE.search(address)
    street: Optional[str] = None
    if match:
        street = match.group(1).strip()
    else:
        suffix = _STREET_SUFFIX_RE.search(address)
        if suffix:
            street = suffix.group(1).split(",")[-1].strip()
    if not street:
        return None, None

    house: Optional[str] = None
    trailing = _TRAILING_NUMBER_RE.search(" " + street)
    if trailing:
        house = trailing.group(1)
    street = _STREET_TAIL_RE.sub("", street).strip(" .,")
    return (street or None), house


def parse_address(address: Optional[str]) -> ParsedAddress:
    """Interpret a free-text address as a ``ParsedAddress``."""

    result = ParsedAddress()
    if address is None:
        return result
    raw = str(address).strip()
    folded = fold_text(raw)
    if not folded or folded in UNKNOWN_ADDRESS_VALUES:
        return result

    lookup = get_region_lookup()
    postal_match = _POSTAL_RE.search(folded)
    if postal_match:
        result.postal_code = postal_match.group(1)

    city = lookup.match_city(folded)
    explicit_region = lookup.match_region_keyword(folded)
    postal_region = lookup.region_for_postal_code(result.postal_code) if result.postal_code else None

    if explicit_region:
        result.region = explicit_region
        result.source = "explicit_region"
        result.confidence = CONFIDENCE_EXPLICIT
    elif postal_region:
        result.region = postal_region
        result.source = "postal_code"
        result.confidence = CONFIDENCE_POSTAL
    elif city:
        result.region = city.region
        result.source = "city_lookup"
        result.confidence = CONFIDENCE_CITY
    else:
        fuzzy = lookup.fuzzy_city(_fuzzy_tokens(folded))
        if fuzzy.match is not None:
            result.region = fuzzy.match.region
            result.city = fuzzy.match.name or None
            result.source = "fuzzy_city"
            result.confidence = CONFIDENCE_FUZZY
        elif fuzzy.candidates:
            result.ambiguous_candidates = fuzzy.candidates
            result.confidence = CONFIDENCE_AMBIGUOUS

    if city and city.region == result.region:
        result.city = city.name

    street, trailing_house = _extract_street(raw)
    result.street = street
    house_match = _HOUSE_RE.search(raw)
    result.house = house_match.group(1) if house_match else trailing_house
    building_match = _BUILDING_RE.search(raw)
    if building_match:
        result.building = building_match.group(1)
    return result
