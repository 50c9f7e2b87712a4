"""Keyword heuristics for relevance and severity.

Both classifiers are deliberately over-inclusive: a missed compliance change
costs more than a false alarm. They are pure functions over raw text and
never raise.
"""

import html
import re

from regwatch.processing.models import Severity

BEHAVIORAL_HEALTH_KEYWORDS: tuple[str, ...] = (
    "behavioral health",
    "mental health",
    "substance use",
    "addiction",
    "psychiatric",
    "psychotherapy",
    "telehealth",
    "teletherapy",
    "counseling",
    "depression",
    "anxiety",
    "opioid",
    "crisis",
    "parity",
    "HIPAA",
    "licensure",
    "CPT",
    "billing",
    "reimbursement",
    "Medicare",
    "Medicaid",
    "SAMHSA",
    "988",
    "crisis line",
)

# Checked in order; the first tier with a hit wins
CRITICAL_TERMS: tuple[str, ...] = ("emergency", "immediate", "urgent", "violation", "penalty")
WARNING_TERMS: tuple[str, ...] = ("change", "update", "new rule", "effective", "amendment")

_LOWER_KEYWORDS = tuple(kw.lower() for kw in BEHAVIORAL_HEALTH_KEYWORDS)


def _contains_any(lower_text: str, terms: tuple[str, ...]) -> bool:
    return any(term in lower_text for term in terms)


def is_relevant(text: str) -> bool:
    """Return True if the text mentions any behavioral health policy keyword."""
    if not isinstance(text, str) or not text:
        return False
    return _contains_any(text.lower(), _LOWER_KEYWORDS)


def classify_severity(text: str) -> Severity:
    """Map item text to a severity: critical, then warning, else info."""
    if not isinstance(text, str) or not text:
        return Severity.info
    lower = text.lower()
    if _contains_any(lower, CRITICAL_TERMS):
        return Severity.critical
    if _contains_any(lower, WARNING_TERMS):
        return Severity.warning
    return Severity.info


def strip_html(text: str) -> str:
    """Reduce an HTML fragment to whitespace-normalized plain text."""
    if not text:
        return ""
    text = re.sub(r"<br\s*/?>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    text = html.unescape(text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()
