"""Failures raised by the LLM client.

Each error carries a ``category`` which the learning path advisor reports as
the ``fallback_reason`` when it degrades to the rule-based path.
"""

from __future__ import annotations

from enum import Enum


class AIRuntimeErrorCategory(str, Enum):
    RATE_LIMIT_OR_QUOTA = "rate_limit_or_quota"
    TIMEOUT = "timeout"
    SCHEMA_VALIDATION = "schema_validation"
    PROVIDER_FAILURE = "provider_failure"


class AIRuntimeError(RuntimeError):
    """A completion request that produced no usable answer."""

    category: AIRuntimeErrorCategory = AIRuntimeErrorCategory.PROVIDER_FAILURE

    @property
    def fallback_reason(self) -> str:
        return self.category.value


class AIRateLimitOrQuotaError(AIRuntimeError):
    category = AIRuntimeErrorCategory.RATE_LIMIT_OR_QUOTA


class AITimeoutError(AIRuntimeError):
    category = AIRuntimeErrorCategory.TIMEOUT


class AISchemaValidationError(AIRuntimeError):
    """The model answered, but not in the requested JSON shape."""

    category = AIRuntimeErrorCategory.SCHEMA_VALIDATION


class AIProviderError(AIRuntimeError):
    category = AIRuntimeErrorCategory.PROVIDER_FAILURE
