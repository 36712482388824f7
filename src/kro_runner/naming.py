"""Kind to resource-name mapping for kro instance collections."""

import logging

from .errors import MalformedTemplateError

logger = logging.getLogger(__name__)

# Lowercased kinds whose plural does not follow the suffix rules
IRREGULAR_PLURALS = {
    "endpoints": "endpoints",
    "child": "children",
    "person": "people",
    "index": "indices",
    "matrix": "matrices",
}

_SIBILANT_SUFFIXES = ("s", "x", "z", "ch", "sh")
_VOWELS = "aeiou"


def naive_resource_name(kind):
    """Lowercase + "s", the scheme earlier runners assumed."""
    return kind.lower() + "s"


def to_resource_name(kind):
    """Convert a Kind to its plural resource name (PodRunner -> podrunners)."""
    if not kind:
        raise MalformedTemplateError("cannot derive a resource name from an empty kind")

    lower = kind.lower()
    for singular, plural in IRREGULAR_PLURALS.items():
        if lower.endswith(singular):
            return lower[: len(lower) - len(singular)] + plural

    if lower.endswith(_SIBILANT_SUFFIXES):
        return lower + "es"
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in _VOWELS:
        return lower[:-1] + "ies"
    return lower + "s"


class ResourceNames:
    """
    Registry of resolved kind -> resource name pairs.

    Resolution is checked against every kind seen so far; two kinds that
    map onto one collection would make the runner create or delete the
    wrong objects, so a collision is rejected.
    """

    def __init__(self, overrides=None):
        self._overrides = {k: v.lower() for k, v in (overrides or {}).items()}
        self._by_plural = {}

    def resolve(self, kind):
        if kind in self._overrides:
            plural = self._overrides[kind]
        else:
            plural = to_resource_name(kind)

        naive = naive_resource_name(kind)
        if plural != naive:
            logger.debug(f"Kind {kind} pluralized as {plural} (naive form would be {naive})")

        existing = self._by_plural.get(plural)
        if existing is not None and existing != kind:
            raise MalformedTemplateError(
                f"kind {kind} and kind {existing} both map to resource {plural}"
            )
        self._by_plural[plural] = kind
        return plural
