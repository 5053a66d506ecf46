from __future__ import annotations

from typing import Any, Iterable

import pandas as pd

from ..db import get_conn
from ..domain.filters import MemberSearchFilter
from ..logs import LogContext
from ..repository import member_repo, staff_repo
from .config_svc import get_config
from .utils import make_number, number_prefix, pagination_info, resolve_page_size, today_dash

EXPORT_COLUMNS = [
    "member_number", "name", "phone", "email", "gender", "birth_date",
    "join_date", "active", "assigned_staff_name",
]


def list_members(flt: MemberSearchFilter) -> dict[str, Any]:
    """分页查询会员，返回 {members, pagination}。

    页大小缺省时使用配置 page_size，且不超过 max_page_size。
    """
    cfg = get_config()
    flt = flt.model_copy(update={"limit": resolve_page_size(flt.limit, cfg), "page": flt.page or 1})
    with get_conn() as conn:
        total, rows = member_repo.search_members(conn, flt)
    for r in rows:
        r["active"] = bool(r["active"])
    return {"members": rows, "pagination": pagination_info(total, flt.page, flt.limit)}


def get_member(member_id: int) -> dict[str, Any]:
    with get_conn() as conn:
        row = member_repo.get_one(conn, member_id)
    if row is None:
        raise LookupError("member_not_found")
    out = dict(row)
    out["active"] = bool(out["active"])
    return out


def next_member_number(conn, on_date: str) -> str:
    """会员号：YYYYMMDD-###，### 为当日第几位登记。"""
    prefix = number_prefix(on_date)
    return make_number(prefix, member_repo.count_numbers_with_prefix(conn, prefix))


def create_member(data: dict[str, Any], log: LogContext) -> dict[str, Any]:
    name = (data.get("name") or "").strip()
    if not name:
        raise ValueError("name_required")
    data = {**data, "name": name, "join_date": data.get("join_date") or today_dash()}
    with get_conn() as conn:
        staff_id = data.get("assigned_staff_id")
        if staff_id and staff_repo.get_one(conn, staff_id) is None:
            raise LookupError("staff_not_found")
        number = next_member_number(conn, data["join_date"])
        member_id = member_repo.insert_member(conn, number, data)
        conn.commit()
    log.set_entity("member", member_id)
    log.set_after({"id": member_id, "member_number": number})
    return {"id": member_id, "member_number": number}


def delete_member(member_id: int, log: LogContext) -> None:
    log.set_entity("member", member_id)
    with get_conn() as conn:
        before = member_repo.get_one(conn, member_id)
        if before is None:
            raise LookupError("member_not_found")
        member_repo.soft_delete(conn, member_id)
        conn.commit()
    log.set_before(dict(before))


def export_members_csv(flt: MemberSearchFilter, columns: Iterable[str] | None = None) -> str:
    """按当前过滤条件（不分页）导出会员 CSV。"""
    cols = [c for c in (columns or EXPORT_COLUMNS) if c in EXPORT_COLUMNS]
    if not cols:
        raise ValueError("no_export_columns")
    with get_conn() as conn:
        rows = member_repo.list_members_unpaged(conn, flt)
    df = pd.DataFrame(rows, columns=list(rows[0].keys()) if rows else cols)
    if "active" in df.columns:
        df["active"] = df["active"].astype(bool)
    return df.reindex(columns=cols).to_csv(index=False)
