import json, time, uuid, datetime as dt
from sqlite3 import Connection
from typing import Optional

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
CREATE INDEX IF NOT EXISTS idx_log_entity ON operation_log(entity_type, entity_id);
"""


def ensure_log_schema(conn: Connection):
    conn.executescript(DDL).close()


def _json(obj) -> Optional[str]:
    return json.dumps(obj, ensure_ascii=False, default=str) if obj is not None else None


class LogContext:
    """Collects what one user action touched; write() stores it in operation_log."""

    def __init__(self, action: str, user: str = "owner"):
        self.action = action
        self.user = user
        self.request_id = str(uuid.uuid4())
        self.start = time.perf_counter()
        self.before = None
        self.after = None
        self.payload = None
        self.entity_type = None
        self.entity_id = None

    def set_entity(self, etype: str, eid: str):
        self.entity_type = etype
        self.entity_id = eid

    def set_before(self, obj): self.before = obj
    def set_after(self, obj): self.after = obj
    def set_payload(self, obj): self.payload = obj

    def write(self, conn: Connection, result: str = "OK", err: Optional[str] = None):
        elapsed_ms = int((time.perf_counter() - self.start) * 1000)
        rec = {
            "ts": dt.datetime.now().astimezone().isoformat(timespec="seconds"),
            "user": self.user,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "request_id": self.request_id,
            "before_json": _json(self.before),
            "after_json": _json(self.after),
            "payload_json": _json(self.payload),
            "result": result,
            "err_msg": err,
            "latency_ms": elapsed_ms,
        }
        conn.execute(
            """INSERT INTO operation_log
            (ts,user,action,entity_type,entity_id,request_id,before_json,after_json,payload_json,result,err_msg,latency_ms)
            VALUES(:ts,:user,:action,:entity_type,:entity_id,:request_id,:before_json,:after_json,:payload_json,:result,:err_msg,:latency_ms)""",
            rec
        ).close()
        conn.commit()


def search_logs(
    conn: Connection,
    q: Optional[str] = None,
    action: Optional[str] = None,
    ts_from: Optional[str] = None,
    ts_to: Optional[str] = None,
    page: int = 1,
    size: int = 20,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
):
    """Newest-first page of operation_log rows and the total match count.

    entity_type/entity_id narrow the search to what one action touched,
    e.g. ("PROJECT", "DAG") or ("RECORDING", "7").
    """
    where = []
    params = {}
    if q:
        where.append("(payload_json LIKE :q OR before_json LIKE :q OR after_json LIKE :q)")
        params["q"] = f"%{q}%"
    filters = [
        ("action", "=", action),
        ("entity_type", "=", entity_type),
        ("entity_id", "=", None if entity_id is None else str(entity_id)),
        ("ts", ">=", ts_from),
        ("ts", "<=", ts_to),
    ]
    for i, (col, op, value) in enumerate(filters):
        if value:
            where.append(f"{col} {op} :p{i}")
            params[f"p{i}"] = value
    wh = " WHERE " + " AND ".join(where) if where else ""
    total = conn.execute(f"SELECT COUNT(1) AS cnt FROM operation_log{wh}", params).fetchone()["cnt"]
    rows = conn.execute(
        f"SELECT * FROM operation_log{wh} ORDER BY ts DESC, id DESC LIMIT :limit OFFSET :offset",
        {**params, "limit": size, "offset": (max(page, 1) - 1) * size},
    ).fetchall()
    return total, [dict(r) for r in rows]
