import asyncio
import copy
import logging
from typing import Any, TypeVar

import litellm
from pydantic import BaseModel, ValidationError

from upskill.config.settings import get_settings

from .errors import (
    AIProviderError,
    AIRateLimitOrQuotaError,
    AIRuntimeError,
    AISchemaValidationError,
    AITimeoutError,
)


ModelT = TypeVar("ModelT", bound=BaseModel)

# One retry when the reply does not validate against the response model
_STRUCTURED_ATTEMPTS = 2


class LLMClient:
    """Sends chat completions through litellm and validates structured replies."""

    def __init__(self, model: str | None = None) -> None:
        self._logger = logging.getLogger(__name__)
        self._model = model

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        response_format: dict[str, Any] | None = None,
        user_id: int | None = None,
        temperature: float | None = None,
    ) -> Any:
        """Run one completion, mapping provider failures onto ``AIRuntimeError``."""
        settings = get_settings()
        kwargs: dict[str, Any] = {
            "model": self._model or settings.primary_llm_model,
            "messages": messages,
            "temperature": temperature if temperature is not None else settings.ai_temperature_default,
            "timeout": settings.ai_request_timeout,
        }
        if response_format is not None:
            kwargs["response_format"] = response_format
        if user_id is not None:
            kwargs["user"] = str(user_id)

        try:
            return await asyncio.wait_for(litellm.acompletion(**kwargs), timeout=settings.ai_request_timeout)
        except (TimeoutError, litellm.Timeout) as e:
            msg = f"Model completion timed out after {settings.ai_request_timeout}s"
            raise AITimeoutError(msg) from e
        except litellm.RateLimitError as e:
            msg = f"Model completion rate limited: {e}"
            raise AIRateLimitOrQuotaError(msg) from e
        except Exception as e:
            self._logger.exception("Error in model completion")
            msg = f"Model completion failed: {e}"
            raise AIProviderError(msg) from e

    async def get_completion(
        self,
        messages: list[dict[str, Any]],
        response_model: type[ModelT],
        *,
        user_id: int | None = None,
    ) -> ModelT:
        """Completion parsed into ``response_model``.

        Raises ``AISchemaValidationError`` when no attempt yields a valid payload.
        """
        response_format = build_response_format(response_model)
        last_error: Exception | None = None
        for attempt in range(1, _STRUCTURED_ATTEMPTS + 1):
            response = await self.complete(messages, response_format=response_format, user_id=user_id)
            try:
                return response_model.model_validate_json(_message_content(response))
            except (ValidationError, ValueError) as e:
                last_error = e
                self._logger.warning("Structured response rejected on attempt %s: %s", attempt, e)

        msg = f"{response_model.__name__} could not be parsed from the model reply: {last_error}"
        raise AISchemaValidationError(msg)


def build_response_format(response_model: type[BaseModel]) -> dict[str, Any]:
    """Strict JSON schema response format for ``response_model``."""
    schema = copy.deepcopy(response_model.model_json_schema())
    _require_all_properties(schema)
    return {"type": "json_schema", "json_schema": {"name": response_model.__name__, "schema": schema}}


def _require_all_properties(node: Any) -> None:
    if isinstance(node, list):
        for child in node:
            _require_all_properties(child)
        return
    if not isinstance(node, dict):
        return

    properties = node.get("properties")
    if isinstance(properties, dict) and properties:
        node["required"] = list(properties)
        node.setdefault("additionalProperties", False)
    for value in node.values():
        if isinstance(value, dict | list):
            _require_all_properties(value)


def _message_content(response: Any) -> str:
    choices = getattr(response, "choices", None)
    if not choices:
        msg = "Completion returned no choices"
        raise ValueError(msg)
    content = (getattr(choices[0].message, "content", None) or "").strip()
    # Some providers wrap JSON in a fenced block despite response_format
    if content.startswith("```"):
        content = content.strip("`").removeprefix("json").strip()
    if not content:
        msg = "Completion returned empty content"
        raise ValueError(msg)
    return content


__all__ = ["AIRuntimeError", "LLMClient", "build_response_format"]
