import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from app.services.scoring import NO_VERBAL_RESPONSE
from app.session.api import ApiError, InterviewApiClient, QuestionInfo
from app.session.assembler import LocalAnswer
from app.session.evaluator import EvaluationRequestor
from app.session.notifications import Notifier
from app.session.relay import UploadRelay
from app.session.results import Degraded, Failed, Ok, Outcome

logger = logging.getLogger(__name__)


@dataclass
class FinalizeReport:
    persisted: List[LocalAnswer] = field(default_factory=list)
    failed: List[Tuple[LocalAnswer, str]] = field(default_factory=list)
    used_batch: bool = False
    status_updated: bool = False
    status_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status_updated


class BatchFinalizer:
    def __init__(self, api: InterviewApiClient, uploader: UploadRelay, evaluator: EvaluationRequestor, notifier: Notifier):
        self.api = api
        self.uploader = uploader
        self.evaluator = evaluator
        self.notifier = notifier

    async def finalize(
        self,
        interview_id: str,
        answers: List[LocalAnswer],
        questions: Dict[str, QuestionInfo],
        tech_stack_names: Optional[Dict[str, str]] = None,
    ) -> FinalizeReport:
        """Make every complete local answer durable, then mark the interview completed."""
        report = FinalizeReport()
        pending = [answer for answer in answers if answer.complete and not answer.persisted]

        for answer in pending:
            await self._refresh(answer, questions.get(answer.question_id), tech_stack_names or {})

        if pending:
            await self._submit(interview_id, pending, report)

        try:
            await self.api.update_status(interview_id, "completed")
            report.status_updated = True
        except ApiError as exc:
            logger.error("Could not complete interview %s: %s", interview_id, exc)
            report.status_error = exc.message
            self.notifier.error(f"Could not mark the interview as completed: {exc.message}")

        logger.info(
            "Finalized interview %s: %d stored, %d failed, batch=%s",
            interview_id,
            len(report.persisted),
            len(report.failed),
            report.used_batch,
        )
        return report

    async def _refresh(self, answer: LocalAnswer, question: Optional[QuestionInfo], tech_stack_names: Dict[str, str]):
        if answer.audio is not None and not answer.audio_url:
            upload = await self.uploader.upload(answer.audio)
            if isinstance(upload, Ok) and upload.value:
                answer.audio_url = upload.value
                answer.audio = None

        if question is None:
            return
        evaluation = await self.evaluator.evaluate(
            question.text,
            answer.transcript or NO_VERBAL_RESPONSE,
            tech_stack=tech_stack_names.get(question.tech_stack_id or ""),
            code=answer.code,
            code_language=answer.code_language,
        )
        answer.apply_evaluation(evaluation.value)

    async def _submit(self, interview_id: str, pending: List[LocalAnswer], report: FinalizeReport):
        try:
            stored = await self.api.batch_answers([answer.to_payload(interview_id) for answer in pending])
        except ApiError as exc:
            logger.warning("Batch submit failed, sending %d answers one by one: %s", len(pending), exc)
            for answer in pending:
                outcome = await self.retry(interview_id, answer)
                if isinstance(outcome, Failed):
                    report.failed.append((answer, str(outcome.error)))
                else:
                    report.persisted.append(answer)
            if report.failed:
                self.notifier.warning(f"{len(report.failed)} answer(s) could not be saved. You can retry them.")
            return

        by_question = {item.get("question"): item for item in stored}
        for answer in pending:
            answer.mark_persisted(by_question.get(answer.question_id, {}))
            report.persisted.append(answer)
        report.used_batch = True

    async def retry(self, interview_id: str, answer: LocalAnswer) -> Outcome[LocalAnswer]:
        """Store one answer on its own.

        ``POST /answers`` overwrites the answer for the same (interview, question), so this
        is safe to repeat and safe for answers the server already holds.
        """
        try:
            answer.mark_persisted(await self.api.create_answer(answer.to_payload(interview_id)))
        except ApiError as exc:
            logger.warning("Saving answer for question %s failed: %s", answer.question_id, exc)
            return Failed(exc)
        if not answer.audio_url and answer.audio is not None:
            return Degraded(answer, "Answer saved without its recording.")
        return Ok(answer)
