from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from schemas.response_schema import APIResponse


def _envelope(body: APIResponse) -> dict:
    content = jsonable_encoder(body.model_dump(mode="json"))
    # Optional members are omitted rather than sent as null
    for key in ("data", "error"):
        if content.get(key) is None:
            content.pop(key, None)
    return content


def success_response(
    message: str,
    data: Any = None,
    status_code: int = 200,
) -> JSONResponse:
    body = APIResponse(success=True, message=message, data=data)
    return JSONResponse(status_code=status_code, content=_envelope(body))


def error_response(
    message: str,
    status_code: int = 400,
    error: Optional[str] = None,
    data: Any = None,
) -> JSONResponse:
    body = APIResponse(success=False, message=message, error=error, data=data)
    return JSONResponse(status_code=status_code, content=_envelope(body))
