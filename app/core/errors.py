"""Domain errors raised by services and repositories.

Routes let these propagate; the handlers registered in ``main.py`` turn each one into a
JSON ``{"detail": ...}`` response with the status code carried on the class.
"""

from fastapi import Request
from fastapi.responses import JSONResponse


class AppError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AppError):
    status_code = 404


class NotAuthorizedError(AppError):
    status_code = 403


class AuthenticationError(AppError):
    status_code = 401


class InterviewWindowError(AppError):
    status_code = 403


class InvalidStatusTransitionError(AppError):
    status_code = 400


class EvaluationUnavailableError(AppError):
    status_code = 502


class TranscriptionUnavailableError(AppError):
    status_code = 502


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
