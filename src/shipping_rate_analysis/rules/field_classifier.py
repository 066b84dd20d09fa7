# src/shipping_rate_analysis/rules/field_classifier.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Iterable, Optional, Sequence

from shipping_rate_analysis.io.schema import FIELD_DEFINITIONS, REQUIRED_FIELDS, FieldDefinition
from shipping_rate_analysis.models import FieldMapping

logger = logging.getLogger(__name__)

CONSERVATIVE = "conservative"
PERMISSIVE = "permissive"

# Minimum accepted confidence per mode
MODE_MIN_CONFIDENCE: dict[str, float] = {
    CONSERVATIVE: 0.90,
    PERMISSIVE: 0.85,
}

EXACT_CONFIDENCE = 1.0
STRONG_EXACT_CONFIDENCE = 0.9
STRONG_CONTAINS_CONFIDENCE = 0.8
PARTIAL_CAP = 0.6
PARTIAL_FLOOR = 0.3

_SEPARATORS = re.compile(r"[\s_\-]+")


def normalize_header(header: str) -> str:
    """Lowercase and strip separators: 'Origin_Zip Code' -> 'originzipcode'."""
    return _SEPARATORS.sub("", str(header or "").lower())


def _partial_score(header: str, alias: str) -> float:
    if not header or not alias:
        return 0.0
    m = SequenceMatcher(None, header, alias, autojunk=False).find_longest_match(
        0, len(header), 0, len(alias))
    sim = m.size / max(len(header), len(alias))
    if sim < PARTIAL_FLOOR:
        return 0.0
    return min(PARTIAL_CAP, sim)


def score_header(header: str, definition: FieldDefinition) -> float:
    """Confidence that `header` carries `definition`'s field (0 when no tier matches)."""
    h = normalize_header(header)
    if not h:
        return 0.0
    if h in definition.exact:
        return EXACT_CONFIDENCE
    if h in definition.strong:
        return STRONG_EXACT_CONFIDENCE

    aliases = definition.exact + definition.strong
    if any(a in h for a in aliases):
        return STRONG_CONTAINS_CONFIDENCE

    return max((_partial_score(h, a) for a in aliases), default=0.0)


@dataclass(frozen=True)
class HeaderCandidate:
    header: str
    confidence: float


class FieldClassifier:
    """Match upload headers to canonical shipment fields.

    Pure: the result depends only on the set of headers and the pattern
    tables, never on header order. Ties between equally scored headers go to
    the lexicographically smaller normalized header.
    """

    def __init__(
        self,
        mode: str = CONSERVATIVE,
        *,
        min_confidence: Optional[float] = None,
        definitions: Sequence[FieldDefinition] = FIELD_DEFINITIONS,
    ) -> None:
        if mode not in MODE_MIN_CONFIDENCE:
            raise ValueError(
                f"Unknown mapping mode {mode!r} (expected one of {sorted(MODE_MIN_CONFIDENCE)})")
        self.mode = mode
        self.min_confidence = MODE_MIN_CONFIDENCE[mode] if min_confidence is None else float(
            min_confidence)
        self.definitions = tuple(definitions)

    @staticmethod
    def _ordered(headers: Iterable[str]) -> list[str]:
        uniq = {str(h) for h in headers if h is not None and str(h).strip()}
        return sorted(uniq, key=lambda h: (normalize_header(h), h))

    def classify(self, headers: Iterable[str]) -> list[FieldMapping]:
        ordered = self._ordered(headers)
        used: set[str] = set()
        mappings: list[FieldMapping] = []

        for definition in self.definitions:
            best: Optional[HeaderCandidate] = None
            for header in ordered:
                if self.mode == CONSERVATIVE and header in used:
                    continue
                conf = score_header(header, definition)
                if conf < self.min_confidence:
                    continue
                if best is None or conf > best.confidence:
                    best = HeaderCandidate(header, conf)

            if best is None:
                continue
            mappings.append(FieldMapping(
                field_name=definition.name,
                source_header=best.header,
                confidence=best.confidence,
                is_auto_detected=True,
            ))
            used.add(best.header)

        logger.debug("classify(%s): %d/%d fields mapped",
                     self.mode, len(mappings), len(self.definitions))
        return mappings

    def suggest(self, headers: Iterable[str]) -> dict[str, list[HeaderCandidate]]:
        """Every candidate at or above the partial floor, best first, per field."""
        ordered = self._ordered(headers)
        out: dict[str, list[HeaderCandidate]] = {}
        for definition in self.definitions:
            cands: list[HeaderCandidate] = []
            for h in ordered:
                conf = score_header(h, definition)
                if conf >= PARTIAL_FLOOR:
                    cands.append(HeaderCandidate(h, conf))
            cands.sort(key=lambda c: -c.confidence)
            out[definition.name] = cands
        return out


def as_header_map(mappings: Iterable[FieldMapping]) -> dict[str, str]:
    return {m.field_name: m.source_header for m in mappings}


def missing_required(mappings: Iterable[FieldMapping], required: Sequence[str] = REQUIRED_FIELDS) -> list[str]:
    mapped = {m.field_name for m in mappings}
    return [f for f in required if f not in mapped]


def classify_headers(headers: Iterable[str], mode: str = CONSERVATIVE) -> list[FieldMapping]:
    return FieldClassifier(mode).classify(headers)


__all__ = [
    "CONSERVATIVE",
    "PERMISSIVE",
    "MODE_MIN_CONFIDENCE",
    "normalize_header",
    "score_header",
    "HeaderCandidate",
    "FieldClassifier",
    "as_header_map",
    "missing_required",
    "classify_headers",
]
