from __future__ import annotations

from typing import Any, Iterable, Optional

TERMS_SEPARATOR = " ; "

OPERATOR_PHRASES = {
    "ABOVE": "above",
    "ABOVE_OR_EQUALS": "above or equal to",
    "BELOW": "below",
    "BELOW_OR_EQUALS": "below or equal to",
    "GREATER_THAN": "greater than",
    "LESS_THAN": "less than",
    "EQUALS": "equal to",
    "NOT_EQUALS": "not equal to",
}

OCCURRENCE_PHRASES = {
    "ALL": "all occurrences",
    "AT_LEAST_ONCE": "at least once",
}


def _operator_phrase(operator: Optional[str]) -> str:
    if not operator:
        return ""
    key = str(operator).strip().upper()
    return OPERATOR_PHRASES.get(key, key.lower().replace("_", " "))


def _number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _plural(n: Any, word: str) -> str:
    return f"{_number(n)} {word}" if n == 1 else f"{_number(n)} {word}s"


def _duration_clause(seconds: Any) -> str:
    try:
        secs = float(seconds or 0)
    except (TypeError, ValueError):
        return ""
    if secs <= 0:
        return ""
    if secs.is_integer() and int(secs) % 60 == 0:
        return f"for at least {_plural(int(secs) // 60, 'minute')}"
    return f"for at least {_plural(secs, 'second')}"


def _occurrences_clause(occurrences: Any) -> str:
    if occurrences is None or occurrences == "":
        return ""
    if isinstance(occurrences, str):
        key = occurrences.strip().upper()
        if key.isdigit():
            return f"({_plural(int(key), 'occurrence')})"
        return f"({OCCURRENCE_PHRASES.get(key, key.lower().replace('_', ' '))})"
    try:
        return f"({_plural(int(occurrences), 'occurrence')})"
    except (TypeError, ValueError):
        return ""


# PUBLIC_INTERFACE
def format_term(term: Optional[dict]) -> str:
    """
    Render one threshold term for display.

    {"operator": "ABOVE", "threshold": 90, "priority": "critical",
     "thresholdDuration": 300, "thresholdOccurrences": 3}
    -> "Critical: above 90 for at least 5 minutes (3 occurrences)"
    """
    if not term:
        return ""

    parts = []
    phrase = _operator_phrase(term.get("operator"))
    if phrase:
        parts.append(phrase)
    if term.get("threshold") is not None:
        parts.append(_number(term["threshold"]))
    for clause in (_duration_clause(term.get("thresholdDuration")), _occurrences_clause(term.get("thresholdOccurrences"))):
        if clause:
            parts.append(clause)

    text = " ".join(parts)
    priority = term.get("priority")
    if priority:
        label = str(priority).strip().lower().capitalize()
        text = f"{label}: {text}" if text else label
    return text


# PUBLIC_INTERFACE
def format_terms(terms: Optional[Iterable[Optional[dict]]]) -> str:
    """Render all terms of a condition joined with ' ; ' (empty terms are skipped)."""
    rendered = [format_term(t) for t in (terms or [])]
    return TERMS_SEPARATOR.join(r for r in rendered if r)
