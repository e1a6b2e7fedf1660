"""LLM judge: scores an answer on relevance, faithfulness and completeness."""

from __future__ import annotations

import json
import re

from pydantic import BaseModel, Field, ValidationError, field_validator

from archive_rag.config.constants import JUDGE_MAX_SCORE, JUDGE_MIN_SCORE
from archive_rag.evaluation.metrics import rubric_average
from archive_rag.exceptions import GenerationError, JudgeError
from archive_rag.generation.prompt_templates import (
    JUDGE_PROMPT,
    JUDGE_SYSTEM,
    format_sources_block,
)
from archive_rag.models.domain import Source
from archive_rag.observability.logger import get_logger
from archive_rag.protocols.llm import LLMProvider

logger = get_logger("judge")

_JSON_OBJECT = re.compile(r"\{.*\}", re.S)


class JudgeScores(BaseModel):
    relevance: float = Field(ge=JUDGE_MIN_SCORE, le=JUDGE_MAX_SCORE)
    faithfulness: float = Field(ge=JUDGE_MIN_SCORE, le=JUDGE_MAX_SCORE)
    completeness: float = Field(ge=JUDGE_MIN_SCORE, le=JUDGE_MAX_SCORE)
    reasoning: str = ""

    @field_validator("relevance", "faithfulness", "completeness")
    @classmethod
    def _half_steps(cls, v: float) -> float:
        if (v * 2) != int(v * 2):
            raise ValueError("scores must be whole or half points")
        return v

    @property
    def avg_score(self) -> float:
        return rubric_average(self.relevance, self.faithfulness, self.completeness)


class LLMJudge:
    def __init__(self, llm: LLMProvider, temperature: float = 0.0) -> None:
        self._llm = llm
        self._temperature = temperature

    async def score(
        self,
        question: str,
        answer: str,
        tier: str,
        sources: list[Source],
    ) -> JudgeScores:
        prompt = JUDGE_PROMPT.format(
            question=question,
            tier=tier,
            context_block=format_sources_block(sources),
            answer=answer,
        )

        try:
            result = await self._llm.generate_structured(
                prompt, JudgeScores, system=JUDGE_SYSTEM, temperature=self._temperature
            )
            scores = JudgeScores.model_validate(result.model_dump())
        except (GenerationError, ValidationError):
            scores = await self._score_from_text(prompt)

        logger.info(
            "judge_scores",
            relevance=scores.relevance,
            faithfulness=scores.faithfulness,
            completeness=scores.completeness,
        )
        return scores

    async def _score_from_text(self, prompt: str) -> JudgeScores:
        try:
            raw = await self._llm.generate(
                prompt, system=JUDGE_SYSTEM, temperature=self._temperature
            )
        except GenerationError as e:
            raise JudgeError(f"Judge call failed: {e}") from e

        match = _JSON_OBJECT.search(raw or "")
        if match is None:
            raise JudgeError("Judge returned no JSON object")
        try:
            return JudgeScores.model_validate(json.loads(match.group(0)))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("judge_output_malformed", error=str(e))
            raise JudgeError(f"Judge output does not fit the rubric: {e}") from e
