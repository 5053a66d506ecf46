from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..domain.filters import StaffSearchFilter
from ..domain.query_builder import ParameterMismatchError
from ..logs import LogContext, record_query_failure
from ..services.staff_svc import create_staff, list_staff

router = APIRouter()


class StaffCreate(BaseModel):
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    gender: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    hire_date: Optional[str] = None  # YYYY-MM-DD
    salary: Optional[float] = None


@router.post("/api/staff/search")
def api_staff_search(body: StaffSearchFilter):
    try:
        return list_staff(body)
    except ParameterMismatchError as e:
        record_query_failure("STAFF_SEARCH", body.model_dump(), e)
        raise HTTPException(status_code=500, detail="query_validation_failed")


@router.post("/api/staff/create", status_code=201)
def api_staff_create(body: StaffCreate):
    log = LogContext("CREATE_STAFF")
    log.set_payload(body.model_dump())
    try:
        res = create_staff(body.model_dump(), log)
        log.write("OK")
        return {"message": "ok", **res}
    except ValueError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=400, detail=str(e))
