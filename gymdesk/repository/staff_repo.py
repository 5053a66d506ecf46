from __future__ import annotations

from sqlite3 import Connection
from typing import Any

from ..domain.filters import StaffSearchFilter
from ..domain.query_builder import Predicate, QueryBuilder
from .common import apply_pagination, apply_sort, count_with_prefix, fetch_page

STAFF_BASE_SQL = "SELECT s.* FROM staff s WHERE 1=1"

SORT_COLUMNS = {
    "id": "s.id",
    "staff_number": "s.staff_number",
    "name": "s.name",
    "position": "s.position",
    "department": "s.department",
    "hire_date": "s.hire_date",
    "salary": "s.salary",
    "created_at": "s.created_at",
}
DEFAULT_SORT = ("s.created_at", "DESC")


def build_staff_query(flt: StaffSearchFilter) -> QueryBuilder:
    qb = QueryBuilder(STAFF_BASE_SQL)

    qb.condition("s.gender", flt.gender)
    qb.condition("s.position", flt.position)
    qb.condition("s.department", flt.department)
    # 未指定时默认只看在职员工
    if flt.is_active is None:
        qb.condition("s.is_active", 1)
    elif flt.is_active != "all":
        qb.condition("s.is_active", 1 if flt.is_active else 0)

    if flt.search and flt.search.strip():
        term = f"%{flt.search.strip()}%"
        qb.or_group([
            Predicate("s.name", term, "LIKE"),
            Predicate("s.phone", term, "LIKE"),
            Predicate("s.staff_number", term, "LIKE"),
        ])

    qb.date_range("s.hire_date", flt.hire_date_from, flt.hire_date_to)
    qb.number_range("s.salary", flt.salary_min, flt.salary_max)

    apply_sort(qb, flt.sort, SORT_COLUMNS, DEFAULT_SORT)
    apply_pagination(qb, flt.page, flt.limit)
    return qb


def search_staff(conn: Connection, flt: StaffSearchFilter) -> tuple[int, list[dict]]:
    return fetch_page(conn, build_staff_query(flt))


def insert_staff(conn: Connection, staff_number: str, data: dict[str, Any]) -> int:
    cur = conn.execute(
        "INSERT INTO staff(staff_number, name, phone, email, gender, position, department, "
        "hire_date, salary, is_active) VALUES(?,?,?,?,?,?,?,?,?,?)",
        (
            staff_number,
            data["name"],
            data.get("phone"),
            data.get("email"),
            data.get("gender"),
            data.get("position"),
            data.get("department"),
            data["hire_date"],
            data.get("salary"),
            1 if data.get("is_active", True) else 0,
        ),
    )
    return int(cur.lastrowid)


def count_numbers_with_prefix(conn: Connection, prefix: str) -> int:
    return count_with_prefix(conn, "staff", "staff_number", prefix)


def get_one(conn: Connection, staff_id: int):
    q = QueryBuilder("SELECT s.* FROM staff s WHERE 1=1").condition("s.id", staff_id).build()
    return conn.execute(q.query, q.params).fetchone()
