"""Data models and types used across the backend.

Request/response schemas for the JSON API are in schemas.py.
Records produced by the rule evaluator and the captcha gate live here.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class Status(str, Enum):
    """Traffic-light rating of a single rule."""

    GREEN = "gruen"
    ORANGE = "orange"
    RED = "rot"

    @property
    def label(self) -> str:
        return self.value.upper()


# Priority of a tip, derived from the status of the rule that produced it.
TIP_WEIGHTS: dict[Status, int] = {
    Status.RED: 3,
    Status.ORANGE: 2,
    Status.GREEN: 1,
}
DEFAULT_TIP_WEIGHT = 1


def tip_weight(status: Status) -> int:
    return TIP_WEIGHTS.get(status, DEFAULT_TIP_WEIGHT)


@dataclass(frozen=True)
class AnalysisItem:
    """One rated row of the report."""

    label: str
    value: str
    status: Status
    hint: str = ""


@dataclass(frozen=True)
class MetadataItem:
    """Raw content found on the page, shown without any rating."""

    label: str
    value: str


@dataclass(frozen=True)
class Tip:
    text: str
    weight: int = DEFAULT_TIP_WEIGHT


@dataclass(frozen=True)
class RuleResult:
    """Output of one rule function."""

    item: AnalysisItem
    tip: str | None = None
    found: MetadataItem | None = None


@dataclass
class AnalysisRun:
    """Everything computed for one URL in one request."""

    url: str
    items: list[AnalysisItem] = field(default_factory=list)
    tips: list[Tip] = field(default_factory=list)
    metadata: list[MetadataItem] = field(default_factory=list)
    primary: Tip | None = None


@dataclass(frozen=True)
class CaptchaChallenge:
    """
    A question plus a keyed digest of its answer. The answer itself never
    leaves the server, so the challenge can sit in a readable session cookie.
    """

    question: str
    nonce: str
    digest: str
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "question": self.question,
            "nonce": self.nonce,
            "digest": self.digest,
            "generated_at": self.generated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: object) -> "CaptchaChallenge | None":
        """Rebuild a challenge from session data; None if the data is unusable."""
        if not isinstance(data, dict):
            return None
        try:
            generated_at = datetime.fromisoformat(str(data["generated_at"]))
            if generated_at.tzinfo is None:
                generated_at = generated_at.replace(tzinfo=timezone.utc)
            return cls(
                question=str(data["question"]),
                nonce=str(data["nonce"]),
                digest=str(data["digest"]),
                generated_at=generated_at,
            )
        except (KeyError, TypeError, ValueError):
            return None
