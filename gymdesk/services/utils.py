from __future__ import annotations

# gymdesk/services/utils.py
import math
from datetime import date


def to_int_safe(x, default=None):
    try:
        return int(x)
    except (TypeError, ValueError):
        return default


def today_dash() -> str:
    return date.today().isoformat()


def pagination_info(total: int, page: int | None, limit: int | None) -> dict:
    page = page or 1
    if not limit:
        return {"page": 1, "limit": total, "total": total, "total_pages": 1,
                "has_next": False, "has_prev": False}
    total_pages = max(1, math.ceil(total / limit))
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def resolve_page_size(limit: int | None, cfg: dict) -> int:
    """未指定时取默认页大小，并限制在 max_page_size 以内。"""
    size = limit or cfg["page_size"]
    return max(1, min(int(size), cfg["max_page_size"]))


def number_prefix(on_date: str, label: str | None = None) -> str:
    """编号前缀：[LABEL-]YYYYMMDD-"""
    core = on_date.replace("-", "")
    return f"{label}-{core}-" if label else f"{core}-"


def make_number(prefix: str, existing: int) -> str:
    return f"{prefix}{existing + 1:03d}"
