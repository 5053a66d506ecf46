"""
会员数据访问层
会员搜索条件 -> QueryBuilder 调用序列，以及会员的增删查
"""
from __future__ import annotations

from sqlite3 import Connection
from typing import Any, Optional

from ..domain.filters import MemberSearchFilter
from ..domain.query_builder import Predicate, QueryBuilder
from .common import apply_pagination, apply_sort, count_with_prefix, fetch_page

MEMBER_BASE_SQL = (
    "SELECT m.*, s.name AS assigned_staff_name, s.position AS assigned_staff_position "
    "FROM members m LEFT JOIN staff s ON m.assigned_staff_id = s.id "
    "WHERE m.deleted_at IS NULL"
)

AGE_EXPR = "CAST((julianday('now') - julianday(m.birth_date)) / 365.25 AS INTEGER)"

ACTIVE_MEMBERSHIP_SQL = (
    "SELECT 1 FROM membership_history mh "
    "WHERE mh.member_id = m.id AND mh.is_active = 1 AND mh.end_date >= date('now')"
)

SORT_COLUMNS = {
    "id": "m.id",
    "member_number": "m.member_number",
    "name": "m.name",
    "phone": "m.phone",
    "email": "m.email",
    "gender": "m.gender",
    "birth_date": "m.birth_date",
    "join_date": "m.join_date",
    "active": "m.active",
    "created_at": "m.created_at",
    "updated_at": "m.updated_at",
}
# 年龄越大，出生日期越早
SORT_INVERSE = {"age": "m.birth_date"}
DEFAULT_SORT = ("m.created_at", "DESC")

UNASSIGNED = "unassigned"
ALL = "all"


def _apply_has_value(qb: QueryBuilder, column: str, flag: Optional[bool]) -> None:
    # NULL 与 '' 同样视为"没有"
    if flag is True:
        qb.condition(column, "", "!=", keep_empty=True)
    elif flag is False:
        qb.or_group([
            Predicate(column, operator="IS NULL"),
            Predicate(column, "", "=", keep_empty=True),
        ])


def build_member_query(flt: MemberSearchFilter, paginate: bool = True) -> QueryBuilder:
    """
    会员搜索条件编译为 QueryBuilder

    调用顺序固定：等值/布尔 -> 综合搜索 -> 范围 -> 有无/负责员工 -> 排序 -> 分页，
    同一个过滤条件两次编译得到完全相同的 SQL 与参数。
    """
    qb = QueryBuilder(MEMBER_BASE_SQL)

    if flt.active is True:
        qb.condition("m.active", 1)
    elif flt.active is False:
        qb.condition("m.active", 0)
    qb.condition("m.gender", flt.gender)

    if flt.search and flt.search.strip():
        term = f"%{flt.search.strip()}%"
        qb.or_group([
            Predicate("m.name", term, "LIKE"),
            Predicate("m.phone", term, "LIKE"),
            Predicate("m.member_number", term, "LIKE"),
        ])

    qb.date_range("m.join_date", flt.join_date_from, flt.join_date_to)
    qb.date_range("m.birth_date", flt.birth_date_from, flt.birth_date_to)
    qb.number_range(AGE_EXPR, flt.age_min, flt.age_max)

    _apply_has_value(qb, "m.phone", flt.has_phone)
    _apply_has_value(qb, "m.email", flt.has_email)

    staff = flt.assigned_staff_id
    if staff is not None and staff != "" and staff != ALL:
        if staff == UNASSIGNED:
            qb.condition("m.assigned_staff_id", operator="IS NULL")
        else:
            qb.condition("m.assigned_staff_id", int(staff))

    if flt.has_membership is not None:
        qb.exists(ACTIVE_MEMBERSHIP_SQL, negate=not flt.has_membership)

    apply_sort(qb, flt.sort, SORT_COLUMNS, DEFAULT_SORT, SORT_INVERSE)
    if paginate:
        apply_pagination(qb, flt.page, flt.limit)
    return qb


def search_members(conn: Connection, flt: MemberSearchFilter) -> tuple[int, list[dict]]:
    return fetch_page(conn, build_member_query(flt))


def list_members_unpaged(conn: Connection, flt: MemberSearchFilter) -> list[dict]:
    q = build_member_query(flt, paginate=False).build()
    return [dict(r) for r in conn.execute(q.query, q.params).fetchall()]


def get_one(conn: Connection, member_id: int):
    q = QueryBuilder(MEMBER_BASE_SQL).condition("m.id", member_id).build()
    return conn.execute(q.query, q.params).fetchone()


def count_numbers_with_prefix(conn: Connection, prefix: str) -> int:
    return count_with_prefix(conn, "members", "member_number", prefix)


def insert_member(conn: Connection, member_number: str, data: dict[str, Any]) -> int:
    cur = conn.execute(
        "INSERT INTO members(member_number, name, phone, email, gender, birth_date, "
        "join_date, address, notes, assigned_staff_id, active) "
        "VALUES(?,?,?,?,?,?,?,?,?,?,?)",
        (
            member_number,
            data["name"],
            data.get("phone") or None,
            data.get("email") or None,
            data.get("gender") or None,
            data.get("birth_date") or None,
            data["join_date"],
            data.get("address") or None,
            data.get("notes") or None,
            data.get("assigned_staff_id") or None,
            1 if data.get("active", True) else 0,
        ),
    )
    return int(cur.lastrowid)


def soft_delete(conn: Connection, member_id: int) -> int:
    cur = conn.execute(
        "UPDATE members SET deleted_at = datetime('now'), updated_at = datetime('now') "
        "WHERE id = ? AND deleted_at IS NULL",
        (member_id,),
    )
    return cur.rowcount
