"""English plural forms for field names."""

from __future__ import annotations

import re

# Words whose plural is the same as their singular, or that are only used
# as mass nouns in API field names.
INVARIANT_WORDS: frozenset[str] = frozenset(
    {
        "aircraft",
        "data",
        "deer",
        "equipment",
        "feedback",
        "fish",
        "info",
        "information",
        "metadata",
        "moose",
        "news",
        "offspring",
        "series",
        "sheep",
        "species",
        "software",
        "hardware",
        "firmware",
        "media",
        "criteria",
        "staff",
    }
)

IRREGULAR_PLURALS: dict[str, str] = {
    "analysis": "analyses",
    "axis": "axes",
    "calf": "calves",
    "child": "children",
    "criterion": "criteria",
    "datum": "data",
    "diagnosis": "diagnoses",
    "elf": "elves",
    "foot": "feet",
    "goose": "geese",
    "half": "halves",
    "knife": "knives",
    "leaf": "leaves",
    "life": "lives",
    "man": "men",
    "matrix": "matrices",
    "medium": "media",
    "mouse": "mice",
    "ox": "oxen",
    "person": "people",
    "self": "selves",
    "shelf": "shelves",
    "thesis": "theses",
    "thief": "thieves",
    "tooth": "teeth",
    "vertex": "vertices",
    "wife": "wives",
    "wolf": "wolves",
    "woman": "women",
}
# Singular nouns that end in a lone "s".
SINGULAR_S_WORDS: frozenset[str] = frozenset(
    {
        "alias",
        "atlas",
        "bias",
        "canvas",
        "chaos",
        "cosmos",
        "ethos",
        "gas",
        "iris",
        "lens",
        "pancreas",
    }
)
_IRREGULAR_SINGULARS: dict[str, str] = {v: k for k, v in IRREGULAR_PLURALS.items()}

_SIBILANT_RE = re.compile(r"(s|x|z|ch|sh)$")
_CONSONANT_Y_RE = re.compile(r"[^aeiou]y$")


def pluralize(word: str) -> str:
    """Return the plural of a lowercase *word*."""
    if word in INVARIANT_WORDS or word in _IRREGULAR_SINGULARS:
        return word
    if word in IRREGULAR_PLURALS:
        return IRREGULAR_PLURALS[word]
    if _CONSONANT_Y_RE.search(word):
        return word[:-1] + "ies"
    if _SIBILANT_RE.search(word):
        return word + "es"
    return word + "s"


def singularize(word: str) -> str:
    """Best-effort inverse of :func:`pluralize`; returns *word* when unsure."""
    if word in INVARIANT_WORDS or word in SINGULAR_S_WORDS:
        return word
    if word in _IRREGULAR_SINGULARS:
        return _IRREGULAR_SINGULARS[word]
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if re.search(r"(ses|xes|zes|ches|shes)$", word):
        return word[:-2]
    if word.endswith("s") and not word.endswith(("ss", "us", "is")):
        return word[:-1]
    return word


def is_plural(word: str) -> bool:
    """True when *word* reads as a plural (or invariant) noun."""
    if word in INVARIANT_WORDS or word in _IRREGULAR_SINGULARS:
        return True
    if word in IRREGULAR_PLURALS:
        return False
    singular = singularize(word)
    return singular != word and pluralize(singular) == word


def pluralize_field_name(name: str) -> str:
    """Pluralize the last ``_``-separated word of a snake_case field name."""
    head, sep, last = name.rpartition("_")
    return f"{head}{sep}{pluralize(last.lower())}"


def is_plural_field_name(name: str) -> bool:
    return is_plural(name.rpartition("_")[2].lower())
