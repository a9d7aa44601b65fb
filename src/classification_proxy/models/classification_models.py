"""
Classification request/result models.

ClassificationItem is what a client submits per piece of content;
ClassificationResult is the tagged per-item outcome. Neither is persisted.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from classification_proxy.models.enums import Label, ProviderErrorCode, ResultSource, Tier
from classification_proxy.models.quota_models import QuotaUsage

# C0 control characters except tab, newline and carriage return
CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")


class ClassificationItem(BaseModel):
    """A single piece of content to classify, identified by a client-side hash."""

    model_config = ConfigDict(frozen=True)

    hash: str = Field(..., description="Client-computed content hash")
    content: str = Field(..., description="Raw text content")


class ClassificationResult(BaseModel):
    """
    Tagged classification outcome.

    Callers branch on ``source`` instead of inspecting ad hoc flags. The wire
    flags ``cached`` and ``failedOpen`` are derived from it.
    """

    model_config = ConfigDict(frozen=True)

    hash: str
    label: Label
    source: ResultSource
    error: Optional[ProviderErrorCode] = None

    @property
    def cached(self) -> bool:
        return self.source == ResultSource.CACHE

    @property
    def failed_open(self) -> bool:
        return self.source == ResultSource.FAILED_OPEN

    @classmethod
    def fail_open(cls, hash: str, error: ProviderErrorCode) -> "ClassificationResult":
        """Build the permissive result used whenever classification fails."""
        return cls(hash=hash, label=Label.ALLOW, source=ResultSource.FAILED_OPEN, error=error)

    def to_wire(self) -> dict:
        """Serialize to the client-facing shape."""
        data: dict = {"hash": self.hash, "label": self.label.value, "cached": self.cached}
        if self.failed_open:
            data["failedOpen"] = True
            if self.error is not None:
                data["error"] = self.error.value
        return data


class ClassifyRequest(BaseModel):
    """
    Validated classify payload.

    Limits are the defaults; the orchestrator re-checks them against
    configured values so operators can tighten them without code changes.
    """

    model_config = ConfigDict(extra="ignore")

    preference: Optional[str] = Field(default=None, max_length=1000)
    items: list[ClassificationItem] = Field(..., min_length=1, max_length=50)
    tier: Optional[Tier] = None

    @field_validator("items")
    @classmethod
    def validate_items(cls, items: list[ClassificationItem]) -> list[ClassificationItem]:
        for index, item in enumerate(items):
            if not 5 <= len(item.hash) <= 100:
                raise ValueError(f"Invalid item at index {index}: hash must be 5-100 chars")
            if not 1 <= len(item.content) <= 10000:
                raise ValueError(f"Invalid item at index {index}: content must be 1-10000 chars")
            if CONTROL_CHARS_PATTERN.search(item.content):
                raise ValueError(f"Invalid item at index {index}: content contains control characters")
        return items


class ClassifyStats(BaseModel):
    """Per-request counters reported alongside the results."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    total: int
    cached: int
    classified: int
    failed_open: int = 0
    duration_ms: int


class ClassifyResponse(BaseModel):
    """
    Outcome of one classify request.

    ``results`` holds only the served items, in request order. When the
    batch was downgraded to fit the remaining quota, ``requested`` is larger
    than ``len(results)``.
    """

    model_config = ConfigDict(frozen=True)

    results: list[ClassificationResult]
    quota: QuotaUsage
    stats: ClassifyStats
    requested: int
    timestamp: datetime

    @property
    def downgraded(self) -> bool:
        return self.requested > len(self.results)

    def to_wire(self) -> dict:
        data: dict = {
            "success": True,
            "timestamp": self.timestamp.isoformat(),
            "classifications": [r.to_wire() for r in self.results],
            "quota": self.quota.model_dump(mode="json", by_alias=True),
            "stats": self.stats.model_dump(mode="json", by_alias=True),
        }
        if self.downgraded:
            data["downgraded"] = {"requested": self.requested, "served": len(self.results)}
        return data
