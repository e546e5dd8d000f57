# FILE: app/api/response.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.core.errors import BillingError
from app.utils.money import Money

# Money in error details is rendered like response bodies: "1500.00"
_ENCODERS = {Money: str}


def err(
    msg: str = "Something went wrong",
    *,
    status_code: int = 400,
    code: Optional[str] = None,
    details: Any = None,
) -> JSONResponse:
    """
    Error envelope shared by every billing route:
    {"ok": false, "error": {"msg": "...", "code": "...", "details": ...}}
    """
    payload: Dict[str, Any] = {
        "ok": False,
        "error": {"msg": msg, "code": code, "details": details},
    }
    return JSONResponse(status_code=status_code,
                        content=jsonable_encoder(payload, custom_encoder=_ENCODERS))


def billing_err(exc: BillingError) -> JSONResponse:
    return err(exc.msg, status_code=exc.status_code, code=exc.code,
               details=exc.details)
