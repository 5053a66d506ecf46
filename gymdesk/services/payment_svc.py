from __future__ import annotations

from typing import Any

from ..db import get_conn
from ..domain.filters import PaymentSearchFilter
from ..logs import LogContext
from ..repository import member_repo, payment_repo, staff_repo
from .config_svc import get_config
from .utils import make_number, number_prefix, pagination_info, resolve_page_size, today_dash

PAYMENT_TYPES = ("membership", "pt", "other")


def list_payments(flt: PaymentSearchFilter) -> dict[str, Any]:
    cfg = get_config()
    flt = flt.model_copy(update={"limit": resolve_page_size(flt.limit, cfg), "page": flt.page or 1})
    with get_conn() as conn:
        total, rows = payment_repo.search_payments(conn, flt)
    return {"payments": rows, "pagination": pagination_info(total, flt.page, flt.limit)}


def create_payment(data: dict[str, Any], log: LogContext) -> dict[str, Any]:
    if data.get("payment_type") not in PAYMENT_TYPES:
        raise ValueError("invalid_payment_type")
    if float(data.get("amount") or 0) <= 0:
        raise ValueError("invalid_amount")
    data = {**data, "payment_date": data.get("payment_date") or today_dash()}
    with get_conn() as conn:
        if member_repo.get_one(conn, data["member_id"]) is None:
            raise LookupError("member_not_found")
        if staff_repo.get_one(conn, data["staff_id"]) is None:
            raise LookupError("staff_not_found")
        # 支付单号：PAY-YYYYMMDD-###
        prefix = number_prefix(data["payment_date"], "PAY")
        number = make_number(prefix, payment_repo.count_numbers_with_prefix(conn, prefix))
        payment_id = payment_repo.insert_payment(conn, number, data)
        conn.commit()
    log.set_entity("payment", payment_id)
    log.set_after({"id": payment_id, "payment_number": number})
    return {"id": payment_id, "payment_number": number}
