"""Deterministic multilingual cue matching.

Covers Hebrew, English, French, Spanish, German, Arabic and Russian. Used on
its own when the LLM is unavailable and alongside it to recover street tokens
the LLM missed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..models import TriState
from .models import RATING_BUCKETS, OpenAt, OpenState, PostConstraints, Requirements

# ---------------------------------------------------------------------------
# Street / landmark cues
# ---------------------------------------------------------------------------

_HE = r"[֐-׿]+"
_AR = r"[؀-ۿ]+"

STREET_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("he", re.compile(rf"(?:רחוב\s+|רח['׳]\s*){_HE}(?:\s+{_HE})?")),
    ("ar", re.compile(rf"شارع\s+{_AR}(?:\s+{_AR})?")),
    ("ru", re.compile(r"\b(?:улица|ул\.|проспект|пр-т|переулок)\s*[\wЀ-ӿ-]+", re.IGNORECASE)),
    ("fr", re.compile(r"\b(?:rue|avenue|boulevard|bd|quai)\s+(?:de\s+la\s+|de\s+l'|du\s+|des\s+|de\s+)?[\w'-]+", re.IGNORECASE)),
    ("es", re.compile(r"\b(?:calle|avenida|av\.|plaza|paseo)\s+(?:de\s+la\s+|del\s+|de\s+)?[\w'-]+", re.IGNORECASE)),
    ("de", re.compile(r"\b(?!parkplatz\b)[\w-]+(?:straße|strasse|str\.|allee|platz)(?=\W|$)", re.IGNORECASE)),
    ("en", re.compile(r"\b[\w'-]+\s+(?:street|st|avenue|ave|road|rd|boulevard|blvd)\b\.?", re.IGNORECASE)),
    ("en", re.compile(r"\bon\s+(?P<name>[A-Za-z0-9][\w'-]*(?:\s+[A-Z][\w'-]*)?)")),
]

_EN_STOP_AFTER_ON = {"a", "an", "the", "sale", "time", "weekends", "sunday", "monday", "tuesday",
                     "wednesday", "thursday", "friday", "saturday"}

# ---------------------------------------------------------------------------
# "Near me" cues
# ---------------------------------------------------------------------------

NEAR_ME_PHRASES = [
    # English
    "near me", "nearby", "around me", "around here", "close to me", "closest",
    # Hebrew
    "לידי", "קרוב אליי", "קרוב אלי", "בסביבה", "באזור שלי",
    # French
    "près de moi", "pres de moi", "autour de moi", "à proximité",
    # Spanish
    "cerca de mí", "cerca de mi", "cerca",
    # German
    "in der nähe", "in meiner nähe",
    # Arabic
    "بالقرب مني", "قريب مني",
    # Russian
    "рядом", "поблизости", "около меня",
]

# ---------------------------------------------------------------------------
# City cues: a preposition followed by capitalised words (or a Hebrew / Arabic
# word after the explicit "city" noun).
# ---------------------------------------------------------------------------

_CAP = r"[A-ZÀ-ÝЀ-Я][\w'-]*"
CITY_PATTERNS: list[re.Pattern[str]] = [
    re.compile(rf"\b(?:in|à|en|im|в)\s+(?P<city>{_CAP}(?:[\s-]+{_CAP})*)"),
    re.compile(rf"בעיר\s+(?P<city>{_HE}(?:\s+{_HE})?)"),
    re.compile(rf"في\s+مدينة\s+(?P<city>{_AR})"),
]

# ---------------------------------------------------------------------------
# Constraint keywords
# ---------------------------------------------------------------------------

OPEN_WORDS = ["open", "פתוח", "פתוחה", "פתוחות", "ouvert", "abierto", "geöffnet", "offen", "مفتوح", "открыт"]
CLOSED_WORDS = ["closed", "סגור", "סגורה", "fermé", "cerrado", "geschlossen", "مغلق", "закрыт"]
KOSHER_WORDS = ["kosher", "כשר", "כשרה", "casher", "cacher", "koscher", "كوشر", "кошер"]
NOT_KOSHER_WORDS = ["not kosher", "non-kosher", "non kosher", "לא כשר", "לא כשרה"]
GLUTEN_FREE_WORDS = ["gluten free", "gluten-free", "ללא גלוטן", "sans gluten", "sin gluten", "glutenfrei", "без глютена"]
CHEAP_WORDS = ["cheap", "budget", "inexpensive", "affordable", "זול", "זולה", "pas cher", "bon marché",
               "barato", "günstig", "billig", "رخيص", "дешев"]
LUXURY_WORDS = ["luxury", "יוקרתי", "יוקרתית", "de luxe", "lujo", "luxus", "فاخر", "люкс"]
EXPENSIVE_WORDS = ["expensive", "upscale", "fine dining", "יקר", "יקרה", "cher", "caro", "teuer", "غالي",
                   "дорогой", "дорогая", "дорогое", "дорогие", "дорого"]
ACCESSIBLE_WORDS = ["wheelchair", "accessible", "נגיש", "נגישה", "accesible", "barrierefrei", "متاح لذوي", "доступн"]
PARKING_WORDS = ["parking", "חניה", "חנייה", "stationnement", "aparcamiento", "estacionamiento", "parkplatz",
                 "موقف سيارات", "парковк"]
TOP_RATED_WORDS = ["top rated", "top-rated", "best rated", "best-rated", "highest rated", "הכי מדורג", "le mieux noté",
                   "mejor valorado", "am besten bewertet", "лучший рейтинг"]
HIGHLY_RATED_WORDS = ["highly rated", "well rated", "good reviews", "great reviews", "מדורג", "ביקורות טובות",
                      "bien noté", "bien valorado", "gut bewertet", "تقييم عالي", "высокий рейтинг"]

_STARS_RE = re.compile(
    r"(?<![\d.,])(?P<n>[1-5](?:[.,]\d)?)\s*\+?\s*(?:stars?|★|כוכבים|étoiles|estrellas|sterne|نجوم|звезд)", re.IGNORECASE
)

_TIME_RE = re.compile(r"(?<!\d)(?P<h>\d{1,2})(?::(?P<m>[0-5]\d))?\s*(?P<ampm>am|pm|h)?(?![\w:])", re.IGNORECASE)


@dataclass(frozen=True)
class PatternMatch:
    street_token: str | None = None
    street_language: str | None = None
    city_text: str | None = None
    near_me: bool = False
    cues: list[str] = field(default_factory=list)


def _is_latin(word: str) -> bool:
    return all(ord(c) < 0x250 for c in word)


def _contains(text: str, words: list[str]) -> bool:
    # Latin keywords need word boundaries ("cher" must not match "cacher");
    # Hebrew, Arabic and Cyrillic entries are stems or take attached prefixes.
    for word in words:
        if _is_latin(word):
            if re.search(rf"(?<!\w){re.escape(word)}(?!\w)", text):
                return True
        elif word in text:
            return True
    return False


def detect_street(text: str) -> tuple[str | None, str | None]:
    """Return ``(token, language)`` for the first street cue found, as written in ``text``."""
    for language, pattern in STREET_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        if "name" in pattern.groupindex:
            name = match.group("name")
            if name.lower().split()[0] in _EN_STOP_AFTER_ON or name.isdigit():
                continue
            return name.strip(), language
        return match.group(0).strip().rstrip("."), language
    return None, None


def detect_city(text: str) -> str | None:
    for pattern in CITY_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group("city").strip()
    return None


def detect_near_me(text: str) -> bool:
    return _contains(text.lower(), NEAR_ME_PHRASES)


def strip_near_me(text: str) -> str:
    """Remove near-me phrases so the remainder can be used as a provider keyword."""
    result = text
    for phrase in sorted(NEAR_ME_PHRASES, key=len, reverse=True):
        pattern = re.escape(phrase)
        if _is_latin(phrase):
            pattern = rf"(?<!\w){pattern}(?!\w)"
        result = re.sub(pattern, " ", result, flags=re.IGNORECASE)
    result = re.sub(r"\s+", " ", result).strip()
    return result or text.strip()


def _parse_time(text: str) -> str | None:
    for match in _TIME_RE.finditer(text):
        hour = int(match.group("h"))
        minute = int(match.group("m") or 0)
        ampm = (match.group("ampm") or "").lower()
        if not match.group("m") and not ampm:
            continue  # bare numbers are too ambiguous ("top 10")
        if ampm == "pm" and hour < 12:
            hour += 12
        elif ampm == "am" and hour == 12:
            hour = 0
        if 0 <= hour <= 23:
            return f"{hour:02d}:{minute:02d}"
    return None


def _parse_min_rating(text: str) -> float | None:
    """Map a star count or a rating phrase onto the highest bucket it reaches."""
    match = _STARS_RE.search(text)
    if match:
        stars = float(match.group("n").replace(",", "."))
        reached = [bucket for bucket in RATING_BUCKETS if bucket <= stars]
        return reached[-1] if reached else None
    if _contains(text, TOP_RATED_WORDS):
        return 4.5
    if _contains(text, HIGHLY_RATED_WORDS):
        return 4.0
    return None


def match_post_constraints(text: str) -> PostConstraints:
    lower = text.lower()

    open_state = None
    open_at = None
    if _contains(lower, CLOSED_WORDS):
        open_state = OpenState.CLOSED_NOW
    elif _contains(lower, OPEN_WORDS):
        at = _parse_time(lower)
        if at:
            open_state = OpenState.OPEN_AT
            open_at = OpenAt(day=None, time=at)
        else:
            open_state = OpenState.OPEN_NOW

    price_level = None
    if _contains(lower, CHEAP_WORDS):
        price_level = 1
    elif _contains(lower, LUXURY_WORDS):
        price_level = 4
    elif _contains(lower, EXPENSIVE_WORDS):
        price_level = 3

    if _contains(lower, NOT_KOSHER_WORDS):
        is_kosher = TriState.FALSE
    elif _contains(lower, KOSHER_WORDS):
        is_kosher = TriState.TRUE
    else:
        is_kosher = TriState.UNKNOWN

    return PostConstraints(
        open_state=open_state,
        open_at=open_at,
        price_level=price_level,
        min_rating=_parse_min_rating(lower),
        is_kosher=is_kosher,
        is_gluten_free=TriState.TRUE if _contains(lower, GLUTEN_FREE_WORDS) else TriState.UNKNOWN,
        requirements=Requirements(
            accessible=TriState.TRUE if _contains(lower, ACCESSIBLE_WORDS) else TriState.UNKNOWN,
            parking=TriState.TRUE if _contains(lower, PARKING_WORDS) else TriState.UNKNOWN,
        ),
    )


def match_query(text: str) -> PatternMatch:
    street, street_language = detect_street(text)
    city = detect_city(text)
    near_me = detect_near_me(text)

    cues = []
    if street:
        cues.append("street")
    if city:
        cues.append("city")
    if near_me:
        cues.append("near_me")
    return PatternMatch(
        street_token=street,
        street_language=street_language,
        city_text=city,
        near_me=near_me,
        cues=cues,
    )
