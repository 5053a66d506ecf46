# gymdesk/services/config_svc.py
import logging

from ..db import get_conn
from ..logs import LogContext
from .utils import to_int_safe

DEFAULTS = {
    "page_size": "20",
    "max_page_size": "100",
    # 1 时把 QueryBuilder 的每一步拼接打到 DEBUG 日志
    "query_debug": "0",
    "gym_name": "",
}

INT_KEYS = ("page_size", "max_page_size", "query_debug")


def ensure_default_config():
    """确保关键配置存在（不覆盖已有值）"""
    with get_conn() as conn:
        for k, v in DEFAULTS.items():
            conn.execute(
                "INSERT INTO config(key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO NOTHING",
                (k, v),
            )
        conn.commit()


def get_config() -> dict:
    with get_conn() as conn:
        rows = conn.execute("SELECT key, value FROM config").fetchall()
    cfg = {r["key"]: r["value"] for r in rows}

    # 转换为正确类型 & 默认兜底
    out = {k: to_int_safe(cfg.get(k), int(DEFAULTS[k])) for k in INT_KEYS}
    out["gym_name"] = cfg.get("gym_name", DEFAULTS["gym_name"])
    return out


def update_config(upd: dict, log: LogContext) -> list[str]:
    unknown = [k for k in upd if k not in DEFAULTS]
    if unknown:
        raise ValueError(f"unknown_config_keys: {','.join(sorted(unknown))}")
    for k in INT_KEYS:
        if k in upd and to_int_safe(upd[k]) is None:
            raise ValueError(f"invalid_int: {k}")
    updated = []
    with get_conn() as conn:
        before = {r["key"]: r["value"] for r in conn.execute("SELECT key,value FROM config")}
        for k, v in upd.items():
            conn.execute(
                "INSERT INTO config(key,value) VALUES(?,?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (k, str(v))
            )
            updated.append(k)
        conn.commit()
        after = {r["key"]: r["value"] for r in conn.execute("SELECT key,value FROM config")}
    log.set_before(before); log.set_after(after)
    if "query_debug" in upd:
        apply_query_debug(to_int_safe(upd["query_debug"], 0))
    return updated


def apply_query_debug(flag: int) -> None:
    level = logging.DEBUG if flag else logging.NOTSET
    logging.getLogger("gymdesk.domain.query_builder").setLevel(level)
