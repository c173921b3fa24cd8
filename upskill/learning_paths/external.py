"""External advisor backed by litellm structured output."""

import logging
from typing import cast

from upskill.ai.client import LLMClient
from upskill.ai.prompts import LEARNING_PATH_PROMPT, SKILL_GAP_ANALYSIS_PROMPT

from .schemas import GapAnalysisRequest, GeneratedGapAnalysis, GeneratedPath, LearningPathRequest


logger = logging.getLogger(__name__)


class LiteLLMAdvisor:
    """Asks the configured model for learning paths and gap analyses."""

    def __init__(self, client: LLMClient | None = None) -> None:
        self._client = client or LLMClient()

    async def generate_learning_path(self, request: LearningPathRequest) -> GeneratedPath:
        messages = [
            {"role": "system", "content": LEARNING_PATH_PROMPT},
            {"role": "user", "content": request.model_dump_json(by_alias=True)},
        ]
        logger.debug("Requesting learning path for goal %s", request.goal.id)
        result = await self._client.get_completion(messages, GeneratedPath)
        return cast("GeneratedPath", result)

    async def analyze_skill_gap(self, request: GapAnalysisRequest) -> GeneratedGapAnalysis:
        messages = [
            {"role": "system", "content": SKILL_GAP_ANALYSIS_PROMPT},
            {"role": "user", "content": request.model_dump_json(by_alias=True)},
        ]
        logger.debug("Requesting skill gap analysis for goal %s", request.goal.id)
        result = await self._client.get_completion(messages, GeneratedGapAnalysis)
        return cast("GeneratedGapAnalysis", result)
