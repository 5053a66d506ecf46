from __future__ import annotations

from sqlite3 import Connection
from typing import Any

from ..domain.filters import PaymentSearchFilter
from ..domain.query_builder import Predicate, QueryBuilder
from .common import apply_pagination, apply_sort, count_with_prefix, fetch_page

PAYMENT_BASE_SQL = (
    "SELECT p.*, m.name AS member_name, m.phone AS member_phone, "
    "mt.name AS membership_type_name, s.name AS staff_name "
    "FROM payments p "
    "JOIN members m ON p.member_id = m.id "
    "LEFT JOIN membership_types mt ON p.membership_type_id = mt.id "
    "LEFT JOIN staff s ON p.staff_id = s.id "
    "WHERE 1=1"
)

SORT_COLUMNS = {
    "id": "p.id",
    "payment_number": "p.payment_number",
    "payment_date": "p.payment_date",
    "amount": "p.amount",
    "payment_type": "p.payment_type",
    "member_name": "m.name",
    "created_at": "p.created_at",
}
DEFAULT_SORT = ("p.payment_date", "DESC")

ALL = "all"


def _choice(value: str | None) -> str | None:
    return None if value == ALL else value


def build_payment_query(flt: PaymentSearchFilter) -> QueryBuilder:
    qb = QueryBuilder(PAYMENT_BASE_SQL)

    qb.condition("p.payment_type", _choice(flt.payment_type))
    qb.condition("p.payment_method", _choice(flt.payment_method))
    # 未指定状态时隐藏已取消的支付
    if flt.status is None:
        qb.condition("p.status", "cancelled", "!=")
    else:
        qb.condition("p.status", _choice(flt.status))
    qb.condition("p.member_id", flt.member_id)
    qb.condition("p.staff_id", flt.staff_id)

    if flt.search and flt.search.strip():
        term = f"%{flt.search.strip()}%"
        qb.or_group([
            Predicate("p.payment_number", term, "LIKE"),
            Predicate("m.name", term, "LIKE"),
            Predicate("m.phone", term, "LIKE"),
        ])

    qb.date_range("p.payment_date", flt.payment_date_from, flt.payment_date_to)
    qb.number_range("p.amount", flt.amount_min, flt.amount_max)

    apply_sort(qb, flt.sort, SORT_COLUMNS, DEFAULT_SORT)
    if flt.sort is None:
        qb.order_by("p.created_at", "DESC")
    apply_pagination(qb, flt.page, flt.limit)
    return qb


def search_payments(conn: Connection, flt: PaymentSearchFilter) -> tuple[int, list[dict]]:
    return fetch_page(conn, build_payment_query(flt))


def insert_payment(conn: Connection, payment_number: str, data: dict[str, Any]) -> int:
    cur = conn.execute(
        "INSERT INTO payments(payment_number, member_id, payment_type, membership_type_id, "
        "amount, payment_method, payment_date, staff_id, notes, status) "
        "VALUES(?,?,?,?,?,?,?,?,?,?)",
        (
            payment_number,
            data["member_id"],
            data["payment_type"],
            data.get("membership_type_id"),
            data["amount"],
            data["payment_method"],
            data["payment_date"],
            data["staff_id"],
            data.get("notes"),
            data.get("status", "completed"),
        ),
    )
    return int(cur.lastrowid)


def count_numbers_with_prefix(conn: Connection, prefix: str) -> int:
    return count_with_prefix(conn, "payments", "payment_number", prefix)
