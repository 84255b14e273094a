"""异常处理器 -- 编排层异常映射为统一错误响应

响应体格式：{"error": {"code": ..., "message": ...}}
NotFoundError -> 404，ValidationError -> 422，InvalidTransitionError -> 409，
BatchWriteError -> 503。
"""

import structlog
from angkor.core.exceptions import (
    BatchWriteError,
    InvalidTransitionError,
    NotFoundError,
    OrchestrationError,
    ValidationError,
)
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

log = structlog.get_logger()


def error_response(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, **extra}},
    )


async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    code = f"{exc.entity.upper().replace(' ', '_')}_NOT_FOUND"
    return error_response(404, code, exc.message)


async def handle_validation(request: Request, exc: ValidationError) -> JSONResponse:
    return error_response(422, "VALIDATION_ERROR", exc.message, details=exc.errors)


async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return error_response(422, "VALIDATION_ERROR", "Invalid request", details=errors)


async def handle_invalid_transition(
    request: Request, exc: InvalidTransitionError
) -> JSONResponse:
    return error_response(409, "INVALID_TRANSITION", exc.message)


async def handle_batch_write(request: Request, exc: BatchWriteError) -> JSONResponse:
    log.error(
        "batch_write_failed",
        message=exc.message,
        original_error=type(exc.original_error).__name__ if exc.original_error else None,
    )
    return error_response(503, "BATCH_WRITE_FAILED", exc.message)


async def handle_orchestration(request: Request, exc: OrchestrationError) -> JSONResponse:
    log.error("orchestration_error", error_type=type(exc).__name__, message=exc.message)
    return error_response(500, "ORCHESTRATION_ERROR", exc.message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NotFoundError, handle_not_found)
    app.add_exception_handler(ValidationError, handle_validation)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(InvalidTransitionError, handle_invalid_transition)
    app.add_exception_handler(BatchWriteError, handle_batch_write)
    app.add_exception_handler(OrchestrationError, handle_orchestration)
