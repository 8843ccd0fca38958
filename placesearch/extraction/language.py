from __future__ import annotations

import re

_HEBREW_RE = re.compile(r"[֐-׿]")
_ARABIC_RE = re.compile(r"[؀-ۿ]")
_CYRILLIC_RE = re.compile(r"[Ѐ-ӿ]")

# Function words that are frequent in short place queries and rare in English.
_LATIN_MARKERS: dict[str, set[str]] = {
    "fr": {"rue", "près", "pres", "dans", "sur", "avec", "ouvert", "à", "pas", "cher", "le", "la", "les", "des"},
    "es": {"calle", "cerca", "abierto", "barato", "en", "con", "el", "los", "las", "del", "comida"},
    "de": {"straße", "strasse", "in", "der", "die", "das", "mit", "geöffnet", "günstig", "nähe", "bei"},
}
_WORD_RE = re.compile(r"[\wÀ-ÿ]+", re.UNICODE)


def detect_language(text: str, hint: str | None = None) -> str:
    """Best-effort query language from script and a few marker words."""
    if _HEBREW_RE.search(text):
        return "he"
    if _ARABIC_RE.search(text):
        return "ar"
    if _CYRILLIC_RE.search(text):
        return "ru"

    words = {w.lower() for w in _WORD_RE.findall(text)}
    scores = {lang: len(words & markers) for lang, markers in _LATIN_MARKERS.items()}
    best = max(scores, key=scores.get)
    # "in" and "en" alone are too weak to override English
    if scores[best] >= 2 or (scores[best] == 1 and not words & {"in", "en", "la", "le"}):
        return best
    if hint in _LATIN_MARKERS:
        return hint
    return "en"
