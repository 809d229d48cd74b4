from typing import NoReturn

from fastapi import HTTPException

from src.api.http_status import HTTP_422_UNPROCESSABLE
from src.core.common.canonical import SerializationError
from src.core.narrative import MissingSectionError


def raise_narrative_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, SerializationError):
        raise HTTPException(
            status_code=HTTP_422_UNPROCESSABLE,
            detail=f"PROJECTION_INPUT_NOT_SERIALIZABLE: {exc}",
        ) from exc
    if isinstance(exc, MissingSectionError):
        raise HTTPException(status_code=HTTP_422_UNPROCESSABLE, detail=str(exc)) from exc
    if isinstance(exc, (TypeError, ValueError)):
        raise HTTPException(status_code=HTTP_422_UNPROCESSABLE, detail=str(exc)) from exc
    raise exc
