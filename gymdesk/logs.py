import json, time, uuid, datetime as dt
import logging
from typing import Optional

from .db import get_conn
from .domain.query_builder import QueryBuilder, Predicate
from .repository.common import apply_pagination, fetch_page

logger = logging.getLogger(__name__)

DDL = """
CREATE TABLE IF NOT EXISTS operation_log (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  ts TEXT NOT NULL,
  user TEXT NOT NULL,
  action TEXT NOT NULL,
  entity_type TEXT,
  entity_id TEXT,
  request_id TEXT,
  before_json TEXT,
  after_json TEXT,
  payload_json TEXT,
  result TEXT,
  err_msg TEXT,
  latency_ms INTEGER
);
CREATE INDEX IF NOT EXISTS idx_log_ts ON operation_log(ts);
CREATE INDEX IF NOT EXISTS idx_log_action ON operation_log(action);
"""


def ensure_log_schema():
    with get_conn() as conn:
        conn.executescript(DDL)
        conn.commit()


def _dumps(obj) -> Optional[str]:
    return json.dumps(obj, ensure_ascii=False, default=str) if obj is not None else None


class LogContext:
    def __init__(self, action: str, user: str = "desk"):
        self.action = action
        self.user = user
        self.request_id = str(uuid.uuid4())
        self.start = time.perf_counter()
        self.before = None
        self.after = None
        self.payload = None
        self.entity_type = None
        self.entity_id = None

    def set_entity(self, etype: str, eid):
        self.entity_type = etype
        self.entity_id = str(eid)

    def set_before(self, obj): self.before = obj
    def set_after(self, obj): self.after = obj
    def set_payload(self, obj): self.payload = obj

    def write(self, result: str = "OK", err: Optional[str] = None):
        elapsed_ms = int((time.perf_counter() - self.start) * 1000)
        if result != "OK":
            logger.warning("%s failed (request_id=%s): %s", self.action, self.request_id, err)
        rec = {
            "ts": dt.datetime.now().astimezone().isoformat(),
            "user": self.user,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "request_id": self.request_id,
            "before_json": _dumps(self.before),
            "after_json": _dumps(self.after),
            "payload_json": _dumps(self.payload),
            "result": result,
            "err_msg": err,
            "latency_ms": elapsed_ms,
        }
        with get_conn() as conn:
            conn.execute(
                """INSERT INTO operation_log
                (ts,user,action,entity_type,entity_id,request_id,before_json,after_json,payload_json,result,err_msg,latency_ms)
                VALUES(:ts,:user,:action,:entity_type,:entity_id,:request_id,:before_json,:after_json,:payload_json,:result,:err_msg,:latency_ms)""",
                rec
            )
            conn.commit()


def build_log_query(q: str | None, action: str | None, ts_from: str | None, ts_to: str | None,
                    page: int, size: int) -> QueryBuilder:
    qb = QueryBuilder("SELECT * FROM operation_log WHERE 1=1")
    if q and q.strip():
        term = f"%{q.strip()}%"
        qb.or_group([
            Predicate("payload_json", term, "LIKE"),
            Predicate("before_json", term, "LIKE"),
            Predicate("after_json", term, "LIKE"),
            Predicate("err_msg", term, "LIKE"),
        ])
    qb.condition("action", action)
    qb.date_range("ts", ts_from, ts_to)
    qb.order_by("ts", "DESC").order_by("id", "DESC")
    return apply_pagination(qb, page, size)


def search_logs(q: str | None, action: str | None, ts_from: str | None, ts_to: str | None,
                page: int, size: int):
    qb = build_log_query(q, action, ts_from, ts_to, page, size)
    with get_conn() as conn:
        return fetch_page(conn, qb)


def record_query_failure(action: str, payload, err) -> None:
    """把 ParameterMismatchError 记入操作日志（语句从未执行）。"""
    log = LogContext(action)
    log.set_payload(payload)
    log.set_after({"query": err.query, "placeholders": err.placeholder_count, "params": err.param_count})
    log.write("ERROR", str(err))
