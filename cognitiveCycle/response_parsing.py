"""
Labeled Response Parsing
========================

Tolerant line-based extraction of ``Label: value`` fields from free text.

Models answer in English or Japanese and rarely follow the requested
format exactly, so every lookup accepts several labels, both colon forms
(``:`` and ``：``), and records whether the value was parsed or defaulted.
Parsing never raises.
"""

import re
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from pydantic import BaseModel, Field

EMPTY_MARKERS = ("none", "n/a", "なし", "特になし", "-")
LIST_SEPARATORS = re.compile(r"\s*[|;、]\s*")
_COLON = re.compile(r"[:：]")
_NUMBER = re.compile(r"(\d+(?:\.\d+)?)\s*(%|/\s*10\b|/\s*100\b)?")
_SIGNED_NUMBER = re.compile(r"([+-]?\d+(?:\.\d+)?)")

T = TypeVar("T")

QUESTION_OPENERS = (
    "what", "why", "how", "who", "when", "where", "which", "is", "are", "can",
    "could", "should", "would", "does", "do", "might",
)
QUESTION_OPENERS_JA = ("何", "なぜ", "どう", "どの", "誰", "いつ", "どこ")


class ParseReport(BaseModel):
    """Which fields were read from the response and which were defaulted."""
    parsed: List[str] = Field(default_factory=list)
    defaulted: List[str] = Field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.defaulted)


def _label_value(line: str) -> Optional[str]:
    parts = _COLON.split(line, maxsplit=1)
    if len(parts) < 2:
        return None
    return parts[1].strip().strip("[]").strip()


def _is_empty(value: str) -> bool:
    return not value or value.strip().lower() in EMPTY_MARKERS


def is_question(text: str) -> bool:
    """True when text ends with a question mark or opens with an interrogative."""
    stripped = text.strip()
    if not stripped:
        return False
    if stripped.endswith(("?", "？")):
        return True
    if stripped.startswith(QUESTION_OPENERS_JA):
        return True
    first_word = stripped.split()[0].lower().strip(",")
    return first_word in QUESTION_OPENERS


class LabeledResponse:
    """
    Field extractor over one model response.

    Example:
        >>> response = LabeledResponse("Safety score: 0.9\\nConcerns: none")
        >>> response.score("safety", ("safety score", "安全性スコア"), default=0.8)
        0.9
        >>> response.report.parsed
        ['safety']
    """

    def __init__(self, text: str):
        self.text = text or ""
        self.lines = [line.strip() for line in self.text.splitlines() if line.strip()]
        self.report = ParseReport()

    def _candidates(self, labels: Sequence[str]) -> Iterator[str]:
        """Values of every labeled line matching ``labels``, top to bottom, skipping empty ones."""
        for line in self.lines:
            head = _COLON.split(line, maxsplit=1)[0].lower()
            if any(label.lower() in head for label in labels):
                value = _label_value(line)
                if value:
                    yield value

    def _first(self, labels: Sequence[str], convert: Callable[[str], Optional[T]]) -> Optional[T]:
        # Labels are tried in priority order; within a label every line is scanned,
        # so a heading such as "Safety assessment:" never hides "Safety score: 0.2".
        for label in labels:
            for value in self._candidates((label,)):
                converted = convert(value)
                if converted is not None:
                    return converted
        return None

    def _mark(self, field: str, found: bool) -> None:
        (self.report.parsed if found else self.report.defaulted).append(field)

    def text_field(self, field: str, labels: Sequence[str], default: str) -> str:
        value = self._first(labels, lambda v: None if _is_empty(v) else v)
        self._mark(field, value is not None)
        return value if value is not None else default

    def score(self, field: str, labels: Sequence[str], default: float) -> float:
        """
        Read a number in [0, 1]. Percentages and x/10, x/100 forms are rescaled.
        """
        number = self._first(labels, parse_unit_score)
        self._mark(field, number is not None)
        return number if number is not None else default

    def signed_score(self, field: str, labels: Sequence[str], default: float) -> float:
        """Read a number in [-1, 1]."""
        number = self._first(labels, parse_signed_score)
        self._mark(field, number is not None)
        return number if number is not None else default

    def list_field(
        self,
        field: str,
        labels: Sequence[str],
        default: Iterable[str] = (),
        keep=None,
    ) -> Tuple[str, ...]:
        """
        Read a separator-delimited list.

        Args:
            field: Name recorded in the parse report
            labels: Accepted labels
            default: Used when nothing usable is found
            keep: Optional predicate filtering items (e.g. is_question)
        """
        items: List[str] = []
        for line in self.lines:
            head = _COLON.split(line, maxsplit=1)[0].lower()
            if not any(label.lower() in head for label in labels):
                continue
            value = _label_value(line)
            if value is None or _is_empty(value):
                continue
            for item in LIST_SEPARATORS.split(value):
                item = item.strip().strip("[]").strip()
                if item and not _is_empty(item) and (keep is None or keep(item)):
                    items.append(item)
        self._mark(field, bool(items))
        return tuple(items) if items else tuple(default)


def parse_unit_score(value: Optional[str]) -> Optional[float]:
    """
    Extract the first number from text and map it onto [0, 1].

    Returns:
        The score, or None when the text holds no number
    """
    if not value:
        return None
    match = _NUMBER.search(value)
    if not match:
        return None
    number = float(match.group(1))
    suffix = (match.group(2) or "").replace(" ", "")
    if suffix == "%" or suffix == "/100":
        number /= 100
    elif suffix == "/10":
        number /= 10
    elif number > 1 and number <= 10 and "." not in match.group(1):
        number /= 10
    return max(0.0, min(1.0, number))


def parse_signed_score(value: Optional[str]) -> Optional[float]:
    """Extract the first signed number from text and clamp it to [-1, 1]."""
    if not value:
        return None
    match = _SIGNED_NUMBER.search(value)
    if not match:
        return None
    return max(-1.0, min(1.0, float(match.group(1))))
