import logging
from typing import Optional

from pydantic import ValidationError

from app.schemas.ai import Evaluation
from app.services.scoring import extract_code_evaluation, heuristic_evaluation
from app.session.api import ApiError, InterviewApiClient
from app.session.results import Degraded, Ok, Outcome

logger = logging.getLogger(__name__)

FALLBACK_WARNING = "AI evaluation unavailable; the answer was scored with the basic evaluator."


class EvaluationRequestor:
    def __init__(self, api: InterviewApiClient):
        self.api = api

    async def evaluate(
        self,
        question: str,
        transcript: Optional[str],
        tech_stack: Optional[str] = None,
        code: Optional[str] = None,
        code_language: Optional[str] = None,
    ) -> Outcome[Evaluation]:
        try:
            payload = await self.api.evaluate(question, transcript, tech_stack, code, code_language)
            evaluation = Evaluation.model_validate(payload)
        except (ApiError, ValidationError) as exc:
            logger.warning("Falling back to heuristic evaluation: %s", exc)
            evaluation = heuristic_evaluation(question, transcript, tech_stack=tech_stack, code=code)
            if code:
                evaluation.code_evaluation = extract_code_evaluation(evaluation.feedback, code)
            return Degraded(evaluation, FALLBACK_WARNING)

        return Ok(evaluation)
