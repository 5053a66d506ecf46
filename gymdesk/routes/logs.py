from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from ..domain.query_builder import ParameterMismatchError
from ..logs import record_query_failure, search_logs

router = APIRouter()


@router.get("/api/logs/search")
def api_logs_search(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=200),
    action: str | None = None,
    query: str | None = None,
    ts_from: str | None = None,
    ts_to: str | None = None,
):
    try:
        total, items = search_logs(query, action, ts_from, ts_to, page, size)
    except ParameterMismatchError as e:
        payload = {"page": page, "size": size, "action": action, "query": query,
                   "ts_from": ts_from, "ts_to": ts_to}
        record_query_failure("LOG_SEARCH", payload, e)
        raise HTTPException(status_code=500, detail="query_validation_failed")
    return {"total": total, "items": items}
