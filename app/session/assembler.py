"""
Turns one captured response into a stored answer.

The order is: resolve a transcript, then evaluate and upload side by side, then store
the result on the server. Each step degrades instead of failing, and the in-memory
answer stays the source of truth when the server cannot be reached.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from uuid import uuid4

from app.schemas.ai import Evaluation
from app.schemas.answer import Criteria
from app.services.scoring import NO_VERBAL_RESPONSE, TRANSCRIPTION_FAILED_SENTINEL, is_failure_sentinel, word_count
from app.session.api import ApiError, InterviewApiClient, QuestionInfo
from app.session.evaluator import EvaluationRequestor
from app.session.notifications import Notifier
from app.session.recording import CapturedAudio, normalize_live_transcript
from app.session.relay import TranscriptionFallback, UploadRelay
from app.session.results import Degraded, Failed, Ok, Outcome, degrade

logger = logging.getLogger(__name__)

SHORT_ANSWER_WORDS = 5
SHORT_ANSWER_WARNING = "Your answer is very short. Consider adding more detail before moving on."
PERSIST_FAILED_WARNING = "Answer saved locally but could not be stored on the server"
NOTHING_TO_SAVE_MESSAGE = "Record an answer or write some code before saving."

LOCAL_ID_PREFIX = "local-"


def local_id() -> str:
    return f"{LOCAL_ID_PREFIX}{uuid4().hex}"


class NothingToSaveError(ValueError):
    pass


@dataclass
class LocalAnswer:
    question_id: str
    id: str = field(default_factory=local_id)
    audio_url: str = ""
    transcript: Optional[str] = None
    code: Optional[str] = None
    code_language: str = "javascript"
    code_evaluation: Optional[str] = None
    score: Optional[float] = None
    feedback: Optional[str] = None
    criteria: Optional[Criteria] = None
    evaluation_method: Optional[str] = None
    # kept until an upload succeeds so finalize can retry it
    audio: Optional[CapturedAudio] = None
    persisted: bool = False

    @property
    def complete(self) -> bool:
        return bool((self.transcript or "").strip() or (self.code or "").strip())

    @property
    def server_id(self) -> Optional[str]:
        if self.id.startswith(LOCAL_ID_PREFIX):
            return None
        return self.id

    def apply_evaluation(self, evaluation: Evaluation):
        self.score = evaluation.score
        self.feedback = evaluation.feedback
        self.criteria = evaluation.criteria
        self.code_evaluation = evaluation.code_evaluation if self.code else None
        self.evaluation_method = evaluation.evaluation_method

    def mark_persisted(self, payload: Dict[str, Any]):
        self.id = payload.get("id") or self.id
        self.persisted = True

    def to_payload(self, interview_id: str) -> Dict[str, Any]:
        return {
            "interview": interview_id,
            "question": self.question_id,
            "audioUrl": self.audio_url,
            "transcript": self.transcript,
            "code": self.code,
            "codeLanguage": self.code_language,
            "codeEvaluation": self.code_evaluation,
            "score": self.score,
            "feedback": self.feedback,
            "criteria": self.criteria.model_dump(by_alias=True) if self.criteria else None,
        }

    @classmethod
    def from_server(cls, payload: Dict[str, Any]) -> "LocalAnswer":
        criteria = payload.get("criteria")
        return cls(
            id=payload["id"],
            question_id=payload["question"],
            audio_url=payload.get("audioUrl") or "",
            transcript=payload.get("transcript"),
            code=payload.get("code"),
            code_language=payload.get("codeLanguage") or "javascript",
            code_evaluation=payload.get("codeEvaluation"),
            score=payload.get("score"),
            feedback=payload.get("feedback"),
            criteria=Criteria.model_validate(criteria) if criteria else None,
            persisted=True,
        )


class AnswerAssembler:
    def __init__(
        self,
        api: InterviewApiClient,
        notifier: Notifier,
        uploader: UploadRelay,
        transcriber: TranscriptionFallback,
        evaluator: EvaluationRequestor,
        hosted_transcription: bool = True,
    ):
        self.api = api
        self.notifier = notifier
        self.uploader = uploader
        self.transcriber = transcriber
        self.evaluator = evaluator
        self.hosted_transcription = hosted_transcription

    async def assemble(
        self,
        interview_id: str,
        question: QuestionInfo,
        audio: Optional[CapturedAudio] = None,
        transcript: Optional[str] = None,
        code: Optional[str] = None,
        code_language: Optional[str] = None,
        tech_stack: Optional[str] = None,
        existing: Optional[LocalAnswer] = None,
    ) -> Outcome[LocalAnswer]:
        """Build, score and store the answer for ``question``. Never raises.

        Warnings in the returned outcome have already been pushed to the notifier.
        """
        try:
            return await self._assemble(
                interview_id, question, audio, transcript, code, code_language, tech_stack, existing
            )
        except NothingToSaveError as exc:
            self.notifier.warning(str(exc))
            return Failed(exc)
        except Exception as exc:
            logger.error("Answer assembly failed for question %s", question.id, exc_info=True)
            self.notifier.error("Something went wrong while saving your answer. Please try again.")
            return Failed(exc)

    async def _assemble(
        self,
        interview_id: str,
        question: QuestionInfo,
        audio: Optional[CapturedAudio],
        transcript: Optional[str],
        code: Optional[str],
        code_language: Optional[str],
        tech_stack: Optional[str],
        existing: Optional[LocalAnswer],
    ) -> Outcome[LocalAnswer]:
        warnings = []
        code = code if code and code.strip() else None

        transcript = await self._resolve_transcript(audio, transcript)
        if not transcript and not code:
            raise NothingToSaveError(NOTHING_TO_SAVE_MESSAGE)
        if transcript and not is_failure_sentinel(transcript) and word_count(transcript) < SHORT_ANSWER_WORDS:
            warnings.append(SHORT_ANSWER_WARNING)

        answer = existing or LocalAnswer(question_id=question.id)
        answer.transcript = transcript
        answer.code = code
        answer.code_language = code_language or "javascript"
        answer.persisted = False

        evaluation, upload = await asyncio.gather(
            self.evaluator.evaluate(
                question.text,
                transcript or NO_VERBAL_RESPONSE,
                tech_stack=tech_stack,
                code=code,
                code_language=answer.code_language,
            ),
            self.uploader.upload(audio),
        )
        answer.apply_evaluation(evaluation.value)

        if isinstance(upload, Degraded):
            answer.audio_url = ""
            answer.audio = audio
            warnings.append(upload.warning)
        elif upload.value:
            answer.audio_url = upload.value
            answer.audio = None

        stored = await self.persist(interview_id, answer)
        warnings.extend(stored.warnings)

        for warning in warnings:
            self.notifier.warning(warning)
        return degrade(answer, warnings)

    async def _resolve_transcript(self, audio: Optional[CapturedAudio], transcript: Optional[str]) -> Optional[str]:
        transcript = normalize_live_transcript(transcript) or (
            normalize_live_transcript(audio.transcript) if audio else None
        )
        if transcript or audio is None or audio.empty:
            return transcript
        if not self.hosted_transcription:
            return TRANSCRIPTION_FAILED_SENTINEL

        result = await self.transcriber.transcribe(audio)
        return result.value

    async def persist(self, interview_id: str, answer: LocalAnswer) -> Outcome[LocalAnswer]:
        """Store ``answer`` server side. Failures leave the local answer untouched.

        Answers that already have a server id are re-sent through the batch upsert so that
        score and feedback are rewritten along with the content.
        """
        payload = answer.to_payload(interview_id)
        try:
            if answer.server_id:
                stored = await self.api.batch_answers([payload])
                answer.mark_persisted(stored[0] if stored else {})
            else:
                answer.mark_persisted(await self.api.create_answer(payload))
        except ApiError as exc:
            logger.warning("Persisting answer for question %s failed: %s", answer.question_id, exc)
            answer.persisted = False
            return Degraded(answer, f"{PERSIST_FAILED_WARNING}: {exc.message}")

        logger.info("Answer %s stored for question %s", answer.id, answer.question_id)
        return Ok(answer)
