from __future__ import annotations

from sqlite3 import Connection
from typing import Mapping

from ..domain.filters import SortOption
from ..domain.query_builder import QueryBuilder


def page_offset(page: int | None, limit: int) -> int | None:
    """第 1 页（或未指定）不带 OFFSET。"""
    if page is None or page <= 1:
        return None
    return (page - 1) * limit


def apply_sort(
    qb: QueryBuilder,
    sort: SortOption | None,
    columns: Mapping[str, str],
    default: tuple[str, str],
    inverse: Mapping[str, str] | None = None,
) -> QueryBuilder:
    """按白名单映射排序字段；未知字段回落到默认排序。

    ``inverse`` 中的字段是派生属性（如 age），与存储列单调相反：
    改写为存储列，并翻转方向。
    """
    inverse = inverse or {}
    if sort is None:
        return qb.order_by(*default)
    direction = "DESC" if (sort.direction or "").strip().lower() == "desc" else "ASC"
    if sort.field in inverse:
        flipped = "ASC" if direction == "DESC" else "DESC"
        return qb.order_by(inverse[sort.field], flipped)
    column = columns.get(sort.field)
    if column is None:
        return qb.order_by(*default)
    return qb.order_by(column, direction)


def apply_pagination(qb: QueryBuilder, page: int | None, limit: int | None) -> QueryBuilder:
    if not limit:
        return qb
    return qb.limit(limit, page_offset(page, limit))


def fetch_page(conn: Connection, qb: QueryBuilder) -> tuple[int, list[dict]]:
    """执行计数与分页查询，返回 (total, rows)。"""
    count_q = qb.to_count_query()
    page_q = qb.build()
    total = int(conn.execute(count_q.query, count_q.params).fetchone()["total"])
    rows = conn.execute(page_q.query, page_q.params).fetchall()
    return total, [dict(r) for r in rows]


def count_with_prefix(conn: Connection, table: str, column: str, prefix: str) -> int:
    """编号前缀计数；table/column 只接受代码内常量。"""
    row = conn.execute(
        f"SELECT COUNT(*) AS c FROM {table} WHERE {column} LIKE ?",
        (f"{prefix}%",),
    ).fetchone()
    return int(row["c"])
