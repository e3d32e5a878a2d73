"""Target response language: explicit hint, else marker-word scoring over the prompt."""

import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "English"

# Common function words per language; each marker counts once if present.
LANGUAGE_MARKERS: dict[str, frozenset[str]] = {
    "English": frozenset({
        "the", "is", "are", "what", "how", "why", "and", "of", "to", "should", "can", "do", "does",
    }),
    "Turkish": frozenset({
        "bir", "ve", "bu", "ne", "nedir", "nasıl", "neden", "için", "mi", "mı", "mu", "mü", "ile", "çok",
    }),
    "Spanish": frozenset({
        "el", "la", "los", "las", "qué", "que", "cómo", "por", "para", "es", "una", "del", "con", "pero",
    }),
    "French": frozenset({
        "le", "les", "est", "une", "des", "quoi", "comment", "pourquoi", "pour", "avec", "dans", "je", "et",
    }),
    "German": frozenset({
        "der", "die", "das", "ist", "und", "nicht", "wie", "warum", "was", "ein", "eine", "mit", "ich",
    }),
}

_WORD_RE = re.compile(r"\w+", re.UNICODE)


def score_languages(text: str) -> dict[str, int]:
    """Count how many of each language's marker words appear in text."""
    words = set(_WORD_RE.findall(text.lower()))
    return {language: len(markers & words) for language, markers in LANGUAGE_MARKERS.items()}


def resolve_language(text: str, hint: str | None = None) -> str:
    """Return the language the providers must answer in.

    A non-empty hint is authoritative and returned verbatim. Otherwise the
    highest-scoring language wins; a tie at the top or no markers at all
    falls back to English.
    """
    if hint and hint.strip():
        return hint

    scores = score_languages(text)
    best = max(scores.values())
    if best == 0:
        return DEFAULT_LANGUAGE
    leaders = [language for language, score in scores.items() if score == best]
    if len(leaders) > 1:
        logger.debug("Language tie between %s, using %s", leaders, DEFAULT_LANGUAGE)
        return DEFAULT_LANGUAGE
    return leaders[0]
