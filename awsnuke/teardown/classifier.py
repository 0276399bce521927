"""Transient-error classification.

Control planes are eventually consistent: a delete can fail because a
dependent resource has not finished going away, because the resource is
momentarily in a state that rejects the call, or because the listing it came
from was stale. Those failures are worth retrying; anything else is terminal.

The rule table is the engine's only heuristic and is meant to be extended.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from botocore.exceptions import ClientError

from .errors import PollTimeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransientRule:
    """Named group of error markers that make a failure retry-worthy.

    Attributes:
        name: Rule identifier used in logs
        markers: Substrings matched against the error text and AWS error code
        heuristic: True when the rule works around observed behaviour rather
            than a documented API contract
    """

    name: str
    markers: tuple[str, ...]
    heuristic: bool = False

    def matches(self, text: str) -> bool:
        return any(marker in text for marker in self.markers)


IN_USE_RULE = TransientRule(
    name="in-use",
    markers=(
        "resourceInUseByAnotherResource",
        "DependencyViolation",
        "ResourceInUse",
    ),
)

NOT_READY_RULE = TransientRule(
    name="not-ready",
    markers=(
        "resourceNotReady",
        "IncorrectState",
        "InvalidDBInstanceState",
        "ResourceNotReady",
        "ResourceConflict",
    ),
)

# Listings can briefly return entities that are already gone; deleting one of
# these ghosts yields a not-found. Observed behaviour, not a documented contract.
STALE_LISTING_RULE = TransientRule(
    name="stale-listing",
    markers=(
        "InvalidGroup.NotFound",
        "InvalidInstanceID.NotFound",
        "DBInstanceNotFound",
        "NoSuchBucket",
    ),
    heuristic=True,
)

DEFAULT_RULES = (IN_USE_RULE, NOT_READY_RULE, STALE_LISTING_RULE)

# Never retried: the poller already waited its full timeout
_TERMINAL_TYPES = (PollTimeout,)


def _error_text(error: BaseException) -> str:
    text = str(error)
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code")
        if code and code not in text:
            text = f"{code}: {text}"
    return text


class TransientErrorClassifier:
    """Decides whether a delete failure is a retry-worthy race.

    Attributes:
        rules: Active rules, evaluated in order
    """

    def __init__(self, rules: Optional[Iterable[TransientRule]] = None) -> None:
        """Initialize classifier.

        Args:
            rules: Rules to use (default: DEFAULT_RULES)
        """
        self.rules: list[TransientRule] = list(DEFAULT_RULES if rules is None else rules)

    @classmethod
    def from_settings(
        cls,
        extra_markers: Iterable[str] = (),
        stale_listing_is_transient: bool = True,
    ) -> "TransientErrorClassifier":
        """Build a classifier from configuration values.

        Args:
            extra_markers: Additional markers grouped into a "custom" rule
            stale_listing_is_transient: Keep the stale-listing heuristic rule
        """
        rules = [rule for rule in DEFAULT_RULES if stale_listing_is_transient or rule is not STALE_LISTING_RULE]
        classifier = cls(rules)
        markers = tuple(marker for marker in extra_markers if marker)
        if markers:
            classifier.add_rule(TransientRule(name="custom", markers=markers))
        return classifier

    def add_rule(self, rule: TransientRule) -> None:
        self.rules.append(rule)

    def match(self, error: Optional[BaseException]) -> Optional[TransientRule]:
        """Return the first rule matching the error, if any."""
        if error is None or isinstance(error, _TERMINAL_TYPES):
            return None

        text = _error_text(error)
        for rule in self.rules:
            if rule.matches(text):
                if rule.heuristic:
                    logger.debug(f"Error classified transient by heuristic rule '{rule.name}': {text}")
                return rule
        return None

    def is_transient(self, error: Optional[BaseException]) -> bool:
        return self.match(error) is not None
