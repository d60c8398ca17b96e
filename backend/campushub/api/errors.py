"""Error translation and global handlers; every error body carries the request id."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from campushub.domain.exceptions import DomainError, InternalError
from campushub.obs.logging import current_request_id, get_logger

logger = get_logger("campushub.api.errors")


def get_request_id(request: Request | None = None, default: str = "unknown") -> str:
	if request is not None:
		rid = getattr(request.state, "request_id", None)
		if rid:
			return str(rid)
	return current_request_id() or default


def to_http_error(exc: Exception) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors.

	Anything that is not a domain error is logged with its traceback and
	surfaces as a generic 500.
	"""
	if isinstance(exc, HTTPException):
		return exc
	if isinstance(exc, DomainError):
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	logger.exception("unhandled_error", exc_info=exc)
	return HTTPException(status_code=InternalError.status_code, detail=InternalError.detail)


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		payload = {"success": False, "detail": exc.detail, "request_id": get_request_id(request)}
		return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		payload = {
			"success": False,
			"detail": "validation_error",
			"errors": jsonable_encoder(exc.errors()),
			"request_id": get_request_id(request),
		}
		return JSONResponse(status_code=422, content=payload)

	@app.exception_handler(DomainError)
	async def domain_exc_handler(request: Request, exc: DomainError):  # type: ignore[override]
		payload = {"success": False, "detail": exc.detail, "request_id": get_request_id(request)}
		return JSONResponse(status_code=exc.status_code, content=payload)
