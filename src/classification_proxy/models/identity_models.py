"""Anonymous identity models."""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from classification_proxy.models.enums import Tier


@dataclass
class Identity:
    """
    Anonymous identity record. Holds no personal data.

    Timestamps are epoch seconds from the auth clock.
    """

    identity_id: str
    token: str
    fingerprint: str
    tier: Tier
    created_at: float
    last_used_at: float


class IssuedIdentity(BaseModel):
    """Result of a successful issuance; the token carries the Bearer prefix."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    identity_id: str
    token: str
    expires_at: datetime


class IdentityInfo(BaseModel):
    """Metadata-free view of an identity."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    identity_id: str
    tier: Tier
    is_anonymous: bool = True
    created_at: datetime
    last_used_at: datetime
