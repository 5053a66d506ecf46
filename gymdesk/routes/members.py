from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from ..domain.filters import MemberSearchFilter
from ..domain.query_builder import ParameterMismatchError
from ..logs import LogContext, record_query_failure
from ..services.member_svc import (
    create_member, delete_member, export_members_csv, get_member, list_members,
)

router = APIRouter()


class MemberCreate(BaseModel):
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    gender: Optional[str] = None
    birth_date: Optional[str] = None  # YYYY-MM-DD
    join_date: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    assigned_staff_id: Optional[int] = None


class MemberExportReq(BaseModel):
    filter: MemberSearchFilter = MemberSearchFilter()
    columns: Optional[List[str]] = None


def _query_failed(action: str, payload: dict, e: ParameterMismatchError) -> HTTPException:
    record_query_failure(action, payload, e)
    return HTTPException(status_code=500, detail="query_validation_failed")


@router.post("/api/members/search")
def api_members_search(body: MemberSearchFilter):
    try:
        return list_members(body)
    except ParameterMismatchError as e:
        raise _query_failed("MEMBER_SEARCH", body.model_dump(), e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/api/members/export", response_class=PlainTextResponse)
def api_members_export(body: MemberExportReq):
    log = LogContext("MEMBER_EXPORT")
    log.set_payload(body.model_dump())
    try:
        csv_text = export_members_csv(body.filter, body.columns)
    except ParameterMismatchError as e:
        raise _query_failed("MEMBER_EXPORT", body.model_dump(), e)
    except ValueError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=400, detail=str(e))
    log.write("OK")
    return PlainTextResponse(csv_text, media_type="text/csv")


@router.get("/api/members/{member_id}")
def api_member_get(member_id: int):
    try:
        return get_member(member_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/api/members/create", status_code=201)
def api_member_create(body: MemberCreate):
    log = LogContext("CREATE_MEMBER")
    log.set_payload(body.model_dump())
    try:
        res = create_member(body.model_dump(), log)
        log.write("OK")
        return {"message": "ok", **res}
    except LookupError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/api/members/{member_id}")
def api_member_delete(member_id: int):
    log = LogContext("DELETE_MEMBER")
    try:
        delete_member(member_id, log)
        log.write("OK")
        return {"message": "ok"}
    except LookupError as e:
        log.write("ERROR", str(e))
        raise HTTPException(status_code=404, detail=str(e))
