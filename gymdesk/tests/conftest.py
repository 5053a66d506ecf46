import os
import sys
import sqlite3
import pytest
from pathlib import Path

# Ensure project root on sys.path
_THIS_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _THIS_DIR.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


@pytest.fixture(scope="session")
def tmp_db_path(tmp_path_factory):
    path = tmp_path_factory.mktemp("db") / "gymdesk_test.db"
    # Point the app to this temp DB
    os.environ["GYM_DB_PATH"] = str(path)
    from gymdesk.db import ensure_schema
    from gymdesk.logs import ensure_log_schema
    from gymdesk.services.config_svc import ensure_default_config
    ensure_schema(str(path))
    ensure_log_schema()
    ensure_default_config()
    return str(path)


@pytest.fixture()
def client(tmp_db_path):
    from gymdesk.api import app
    from fastapi.testclient import TestClient
    return TestClient(app)


@pytest.fixture(autouse=True)
def _clean_db(tmp_db_path):
    # Safety: ensure we only ever wipe the temp DB, never a real one
    assert os.environ.get("GYM_DB_PATH") == tmp_db_path, "Refusing to clean non-temp DB"
    tables = [
        "membership_history",
        "payments",
        "membership_types",
        "members",
        "staff",
        "operation_log",
    ]
    conn = sqlite3.connect(tmp_db_path)
    try:
        for t in tables:
            conn.execute(f"DELETE FROM {t}")
        conn.execute("DELETE FROM config")
        conn.commit()
    finally:
        conn.close()
    from gymdesk.services.config_svc import ensure_default_config
    ensure_default_config()
    yield
