from __future__ import annotations

from typing import Any

from ..db import get_conn
from ..domain.filters import StaffSearchFilter
from ..logs import LogContext
from ..repository import staff_repo
from .config_svc import get_config
from .utils import make_number, number_prefix, pagination_info, resolve_page_size, today_dash


def list_staff(flt: StaffSearchFilter) -> dict[str, Any]:
    cfg = get_config()
    flt = flt.model_copy(update={"limit": resolve_page_size(flt.limit, cfg), "page": flt.page or 1})
    with get_conn() as conn:
        total, rows = staff_repo.search_staff(conn, flt)
    for r in rows:
        r["is_active"] = bool(r["is_active"])
    return {"staff": rows, "pagination": pagination_info(total, flt.page, flt.limit)}


def create_staff(data: dict[str, Any], log: LogContext) -> dict[str, Any]:
    name = (data.get("name") or "").strip()
    if not name:
        raise ValueError("name_required")
    data = {**data, "name": name, "hire_date": data.get("hire_date") or today_dash()}
    with get_conn() as conn:
        # 员工号：STF-YYYYMMDD-###
        prefix = number_prefix(data["hire_date"], "STF")
        number = make_number(prefix, staff_repo.count_numbers_with_prefix(conn, prefix))
        staff_id = staff_repo.insert_staff(conn, number, data)
        conn.commit()
    log.set_entity("staff", staff_id)
    log.set_after({"id": staff_id, "staff_number": number})
    return {"id": staff_id, "staff_number": number}
