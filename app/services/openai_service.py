import logging
from io import BytesIO
from typing import Optional

from openai import OpenAI, OpenAIError

from app.core.config import settings
from app.core.errors import EvaluationUnavailableError, TranscriptionUnavailableError
from app.schemas.ai import Evaluation
from app.services.scoring import build_evaluation_prompt, extract_code_evaluation, parse_evaluation_text

logger = logging.getLogger(__name__)


class OpenAIService:
    def __init__(self, client: Optional[OpenAI] = None):
        if client is not None:
            self.client = client
            return
        if not settings.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY is not configured. Set it in deployment environment variables.")
        self.client = OpenAI(api_key=settings.openai_api_key)

    def transcribe_audio(self, filename: str, file_bytes: bytes) -> str:
        audio_buffer = BytesIO(file_bytes)
        audio_buffer.name = filename

        try:
            transcription = self.client.audio.transcriptions.create(
                model=settings.openai_transcribe_model,
                file=audio_buffer,
                language="en",
            )
        except OpenAIError as exc:
            logger.error("Transcription failed for %s: %s", filename, exc)
            raise TranscriptionUnavailableError("Error transcribing audio") from exc
        return transcription.text.strip()

    def evaluate_answer(
        self,
        question: str,
        transcript: Optional[str],
        tech_stack: Optional[str] = None,
        code: Optional[str] = None,
    ) -> Evaluation:
        prompt = build_evaluation_prompt(question, transcript, tech_stack=tech_stack, code=code)
        logger.info(
            "Evaluating answer: transcript_words=%d code=%s tech_stack=%s",
            len((transcript or "").split()),
            bool(code),
            tech_stack or "n/a",
        )

        try:
            response = self.client.chat.completions.create(
                model=settings.openai_model,
                temperature=settings.evaluation_temperature,
                max_tokens=settings.evaluation_max_tokens,
                messages=[
                    {"role": "system", "content": "You are a strict technical interviewer. Reply with JSON."},
                    {"role": "user", "content": prompt},
                ],
            )
        except OpenAIError as exc:
            logger.error("Evaluation request failed: %s", exc)
            raise EvaluationUnavailableError(f"AI evaluation failed: {exc}") from exc

        raw = response.choices[0].message.content or ""
        evaluation = parse_evaluation_text(raw)
        if code:
            evaluation.code_evaluation = extract_code_evaluation(
                evaluation.feedback, code, explicit=evaluation.code_evaluation
            )
        return evaluation


def get_openai_service() -> OpenAIService:
    try:
        return OpenAIService()
    except RuntimeError as exc:
        raise EvaluationUnavailableError(str(exc)) from exc
