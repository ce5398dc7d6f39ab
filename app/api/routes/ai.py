import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from app.api.routes.uploads import read_audio
from app.schemas.ai import EvaluateRequest, Evaluation, TranscribeResponse
from app.services.openai_service import OpenAIService, get_openai_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/transcribe", response_model=TranscribeResponse)
async def transcribe(audio: UploadFile = File(...), openai_service: OpenAIService = Depends(get_openai_service)):
    content = await read_audio(audio)
    text = await run_in_threadpool(openai_service.transcribe_audio, audio.filename or "audio.webm", content)
    logger.info("Transcribed %s: %d words", audio.filename, len(text.split()))
    return TranscribeResponse(text=text)


@router.post("/evaluate", response_model=Evaluation)
def evaluate(body: EvaluateRequest, openai_service: OpenAIService = Depends(get_openai_service)):
    if not body.question.strip():
        raise HTTPException(status_code=400, detail="Question is required")
    if not (body.transcript or "").strip() and not (body.code or "").strip():
        raise HTTPException(status_code=400, detail="Please provide either transcript or code to evaluate")

    return openai_service.evaluate_answer(
        question=body.question,
        transcript=body.transcript,
        tech_stack=body.tech_stack,
        code=body.code,
    )
