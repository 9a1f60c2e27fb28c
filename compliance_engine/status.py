# compliance_engine/status.py
# Classifies free-text ticket statuses into the classes the scorer cares about.

from dataclasses import dataclass
from typing import Optional, Tuple


def _contains_any(status_name: Optional[str], terms: Tuple[str, ...]) -> bool:
    if not status_name:
        return False
    lowered = status_name.lower()
    return any(term in lowered for term in terms)


@dataclass(frozen=True)
class StatusClassifier:
    """
    Status labels are free text maintained by operators, so membership in a
    class is a case-insensitive substring match against a list of terms.
    Swap the terms (or subclass) to move to a closed set of statuses without
    touching the scorer.
    """
    closed_terms: Tuple[str, ...] = ('closed',)
    resolved_terms: Tuple[str, ...] = ('closed', 'resolved')
    reopened_terms: Tuple[str, ...] = ('reopened',)

    @classmethod
    def from_settings(cls, settings) -> "StatusClassifier":
        """Builds a classifier from a ReportSettings instance."""
        return cls(
            closed_terms=_normalize(settings.closed_terms),
            resolved_terms=_normalize(settings.resolved_terms),
            reopened_terms=_normalize(settings.reopened_terms),
        )

    def is_closed(self, status_name: Optional[str]) -> bool:
        return _contains_any(status_name, self.closed_terms)

    def is_resolved(self, status_name: Optional[str]) -> bool:
        return _contains_any(status_name, self.resolved_terms)

    def is_reopened(self, status_name: Optional[str]) -> bool:
        return _contains_any(status_name, self.reopened_terms)


def _normalize(terms) -> Tuple[str, ...]:
    return tuple(term.strip().lower() for term in terms if term and term.strip())


DEFAULT_CLASSIFIER = StatusClassifier()
