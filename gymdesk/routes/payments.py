from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..domain.filters import PaymentSearchFilter
from ..domain.query_builder import ParameterMismatchError
from ..logs import LogContext, record_query_failure
from ..services.payment_svc import create_payment, list_payments

router = APIRouter()


class PaymentCreate(BaseModel):
    member_id: int
    staff_id: int
    payment_type: str  # membership/pt/other
    amount: float
    payment_method: str
    payment_date: Optional[str] = None
    membership_type_id: Optional[int] = None
    notes: Optional[str] = None


@router.post("/api/payments/search")
def api_payments_search(body: PaymentSearchFilter):
    try:
        return list_payments(body)
    except ParameterMismatchError as e:
        record_query_failure("PAYMENT_SEARCH", body.model_dump(), e)
        raise HTTPException(status_code=500, detail="query_validation_failed")


@router.post("/api/payments/create", status_code=201)
def api_payment_create(body: PaymentCreate):
    log = LogContext("CREATE_PAYMENT")
    log.set_payload(body.model_dump())
    try:
        res = create_payment(body.model_dump(), log)
        log.write("OK")
        return {"message": "ok", **res}
    except LookupError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=400, detail=str(e))
