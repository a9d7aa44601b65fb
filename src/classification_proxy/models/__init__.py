"""
Pydantic data models for the Classification Proxy.

Includes:
- Enums (Label, ResultSource, Tier, ErrorCode, ProviderErrorCode)
- Classification models (ClassificationItem, ClassificationResult, ClassifyRequest, ClassifyResponse)
- Quota models (QuotaState, QuotaDecision, QuotaUsage, QuotaSnapshot, QuotaReport)
- Identity models (Identity, IssuedIdentity, IdentityInfo)
- LLM models (ChatMessage, LLMGenerationRequest, LLMGenerationResponse)
"""

from classification_proxy.models.enums import (
    ErrorCode,
    Label,
    ProviderErrorCode,
    ResultSource,
    Tier,
)
from classification_proxy.models.classification_models import (
    ClassificationItem,
    ClassificationResult,
    ClassifyRequest,
    ClassifyResponse,
    ClassifyStats,
)
from classification_proxy.models.quota_models import (
    QuotaDecision,
    QuotaReport,
    QuotaSnapshot,
    QuotaState,
    QuotaUsage,
    TierLimits,
    WindowUsage,
)
from classification_proxy.models.identity_models import (
    Identity,
    IdentityInfo,
    IssuedIdentity,
)
from classification_proxy.models.llm_models import (
    ChatMessage,
    LLMGenerationRequest,
    LLMGenerationResponse,
)

__all__ = [
    # Enums
    "ErrorCode",
    "Label",
    "ProviderErrorCode",
    "ResultSource",
    "Tier",
    # Classification models
    "ClassificationItem",
    "ClassificationResult",
    "ClassifyRequest",
    "ClassifyResponse",
    "ClassifyStats",
    # Quota models
    "QuotaDecision",
    "QuotaReport",
    "QuotaSnapshot",
    "QuotaState",
    "QuotaUsage",
    "TierLimits",
    "WindowUsage",
    # Identity models
    "Identity",
    "IdentityInfo",
    "IssuedIdentity",
    # LLM models
    "ChatMessage",
    "LLMGenerationRequest",
    "LLMGenerationResponse",
]
