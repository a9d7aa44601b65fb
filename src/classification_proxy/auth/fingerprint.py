"""
Anonymous identity issuance and bearer-token validation.

Identities are random ids paired with random tokens. No personal data is
stored: the only request-derived value is a short fingerprint hash of a few
coarse headers, used to cap how many identities one device can mint.
IP addresses and cookies are never used.
"""

import hashlib
import secrets
import time
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

import structlog

from classification_proxy.exceptions import FingerprintLimitExceededError
from classification_proxy.models.enums import Tier
from classification_proxy.models.identity_models import Identity, IdentityInfo, IssuedIdentity
from classification_proxy.monitoring.metrics import (
    fingerprint_rejections_total,
    identities_issued_total,
)

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "Bearer "

FINGERPRINT_HEADERS: tuple[tuple[str, str], ...] = (
    ("user-agent", "unknown"),
    ("accept-language", "en"),
    ("accept-encoding", "gzip"),
)


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        # Plain dicts are case-sensitive; Starlette headers are not.
        for key, candidate in headers.items():
            if key.lower() == name:
                return candidate
    return value


class FingerprintAuth:
    """
    In-memory identity store with token and fingerprint indices.

    Invariants:
    - each token maps to exactly one identity and vice versa
    - revocation removes the identity from every index at once
    """

    def __init__(
        self,
        max_identities_per_fingerprint: int = 5,
        active_window_seconds: float = 24 * 3600.0,
        retention_seconds: float = 30 * 24 * 3600.0,
        token_bytes: int = 32,
        default_tier: Tier = Tier.FREE,
        clock: Callable[[], float] = time.time,
    ):
        self.max_identities_per_fingerprint = max_identities_per_fingerprint
        self.active_window_seconds = active_window_seconds
        self.retention_seconds = retention_seconds
        self.token_bytes = token_bytes
        self.default_tier = default_tier
        self._clock = clock

        self._identities: dict[str, Identity] = {}
        self._token_index: dict[str, str] = {}
        self._fingerprint_index: dict[str, list[str]] = {}

        logger.info(
            "FingerprintAuth initialized",
            max_identities_per_fingerprint=max_identities_per_fingerprint,
            active_window_seconds=active_window_seconds,
            retention_seconds=retention_seconds,
        )

    @staticmethod
    def fingerprint(headers: Mapping[str, str]) -> str:
        """
        Derive a coarse device fingerprint from request headers.

        SHA-256 over user-agent, accept-language and accept-encoding joined
        with ``|`` (missing headers use fixed defaults), truncated to 16 hex
        chars.
        """
        components = [_header(headers, name) or default for name, default in FINGERPRINT_HEADERS]
        return hashlib.sha256("|".join(components).encode("utf-8")).hexdigest()[:16]

    def _active_count(self, fingerprint: str, now: float) -> int:
        count = 0
        for identity_id in self._fingerprint_index.get(fingerprint, []):
            identity = self._identities.get(identity_id)
            if identity is not None and now - identity.last_used_at < self.active_window_seconds:
                count += 1
        return count

    def issue(self, fingerprint: str, tier: Optional[Tier] = None) -> IssuedIdentity:
        """
        Create a new anonymous identity for ``fingerprint``.

        Raises:
            FingerprintLimitExceededError: The fingerprint already has the
                maximum number of identities used within the active window.
        """
        now = self._clock()
        if self._active_count(fingerprint, now) >= self.max_identities_per_fingerprint:
            fingerprint_rejections_total.inc()
            logger.warning("Fingerprint identity cap reached", fingerprint=fingerprint)
            raise FingerprintLimitExceededError(
                "Too many accounts from this device",
                details={"limit": self.max_identities_per_fingerprint},
            )

        identity_id = secrets.token_hex(self.token_bytes)
        token = secrets.token_hex(self.token_bytes)
        identity = Identity(
            identity_id=identity_id,
            token=token,
            fingerprint=fingerprint,
            tier=tier or self.default_tier,
            created_at=now,
            last_used_at=now,
        )
        self._identities[identity_id] = identity
        self._token_index[token] = identity_id
        self._fingerprint_index.setdefault(fingerprint, []).append(identity_id)

        identities_issued_total.inc()
        logger.info("Identity issued", identity_id=identity_id, fingerprint=fingerprint)

        return IssuedIdentity(
            identity_id=identity_id,
            token=f"{BEARER_PREFIX}{token}",
            expires_at=datetime.fromtimestamp(now + self.retention_seconds, tz=timezone.utc),
        )

    def validate(self, authorization: Optional[str]) -> Optional[str]:
        """
        Resolve an ``Authorization`` header value to an identity id.

        Returns None for missing, malformed, unknown or expired tokens. An
        identity expires ``retention_seconds`` after creation even if the
        sweep has not removed it yet. A successful validation refreshes the
        identity's last-used time.
        """
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            return None
        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            return None

        identity_id = self._token_index.get(token)
        if identity_id is None:
            return None
        identity = self._identities.get(identity_id)
        if identity is None:
            return None

        now = self._clock()
        if now - identity.created_at > self.retention_seconds:
            logger.debug("Rejected expired identity", identity_id=identity_id)
            return None

        identity.last_used_at = now
        return identity_id

    def get_identity(self, identity_id: str) -> Optional[Identity]:
        return self._identities.get(identity_id)

    def revoke(self, identity_id: str) -> bool:
        """Remove an identity from every index. Returns False if unknown."""
        identity = self._identities.pop(identity_id, None)
        if identity is None:
            return False

        self._token_index.pop(identity.token, None)
        siblings = self._fingerprint_index.get(identity.fingerprint)
        if siblings is not None:
            if identity_id in siblings:
                siblings.remove(identity_id)
            if not siblings:
                del self._fingerprint_index[identity.fingerprint]
        return True

    def sweep(self, retention_seconds: Optional[float] = None) -> int:
        """Revoke identities created more than ``retention_seconds`` ago."""
        retention = self.retention_seconds if retention_seconds is None else retention_seconds
        now = self._clock()
        expired = [
            identity_id for identity_id, identity in self._identities.items()
            if now - identity.created_at > retention
        ]
        for identity_id in expired:
            self.revoke(identity_id)
        if expired:
            logger.info("Identity sweep removed expired identities", removed=len(expired))
        return len(expired)

    def get_identity_info(self, identity_id: str) -> Optional[IdentityInfo]:
        identity = self._identities.get(identity_id)
        if identity is None:
            return None
        return IdentityInfo(
            identity_id=identity_id,
            tier=identity.tier,
            created_at=datetime.fromtimestamp(identity.created_at, tz=timezone.utc),
            last_used_at=datetime.fromtimestamp(identity.last_used_at, tz=timezone.utc),
        )

    def stats(self) -> dict[str, Any]:
        now = self._clock()
        active = sum(
            1 for identity in self._identities.values()
            if now - identity.last_used_at < self.active_window_seconds
        )
        return {
            "total_identities": len(self._identities),
            "active_identities": active,
            "active_fingerprints": len(self._fingerprint_index),
        }
