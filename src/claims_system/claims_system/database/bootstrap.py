"""Schema/seed helpers used by ``scripts/`` and by ``create_app`` in dev mode."""

from __future__ import annotations

import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

import mysql.connector
from werkzeug.security import generate_password_hash

from ..core.logging_config import get_logger
from .connection import DBConfig

logger = get_logger("database.bootstrap")

DEMO_USERS = (
    # full_name, username, password, roles, designation, hourly_rate
    ("Super Admin", "superadmin", "super123", ("staff", "superadmin"), "standard", None),
    ("Admin Demo", "admin", "admin123", ("staff", "admin"), "standard", None),
    ("Finance Demo", "finance", "finance123", ("staff", "finance"), "standard", "30.00"),
    ("Manager Demo", "manager", "manager123", ("staff", "manager"), "standard", "35.00"),
    ("Staff Demo", "staff", "staff123", ("staff",), "standard", "25.50"),
)


@contextmanager
def _connection(db_config: dict, *, with_database: bool = True) -> Iterator:
    target = DBConfig.from_dict(db_config)
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    conn = mysql.connector.connect(**kwargs)
    try:
        yield conn
    finally:
        conn.close()


def _strip_create_db_and_use(sql: str) -> str:
    # The target database comes from settings, not from the file.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_comments(sql: str) -> str:
    return re.sub(r"(?m)^\s*--.*$", "", sql)


def iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ``;`` outside of quoted strings."""
    buf: list[str] = []
    quote = None
    escape = False

    for ch in sql:
        buf.append(ch)
        if escape:
            escape = False
        elif ch == "\\":
            escape = True
        elif quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            stmt = "".join(buf[:-1]).strip()
            buf.clear()
            if stmt:
                yield stmt

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _run_script(db_config: dict, path: str | Path) -> int:
    sql = _strip_comments(_strip_create_db_and_use(Path(path).read_text(encoding="utf-8")))
    count = 0
    with _connection(db_config) as conn:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
            count += 1
        conn.commit()
    return count


def ensure_database_exists(db_config: dict) -> None:
    database = DBConfig.from_dict(db_config).database
    with _connection(db_config, with_database=False) as conn:
        cur = conn.cursor()
        cur.execute(f"CREATE DATABASE IF NOT EXISTS `{database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        conn.commit()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    count = _run_script(db_config, schema_path)
    logger.info("schema_applied", extra={"statements": count})


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    count = _run_script(db_config, seed_path)
    logger.info("seed_applied", extra={"statements": count})


def ensure_demo_users(db_config: dict) -> None:
    """Create or reset the demo accounts (one per role) with werkzeug hashes."""
    with _connection(db_config) as conn:
        cur = conn.cursor(dictionary=True)
        for full_name, username, password, roles, designation, hourly_rate in DEMO_USERS:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT user_id FROM users WHERE username=%s", (username,))
            existing = cur.fetchone()
            if existing:
                user_id = int(existing["user_id"])
                cur.execute(
                    """
                    UPDATE users
                    SET full_name=%s, password_hash=%s, designation=%s, hourly_rate=%s, is_active=1
                    WHERE user_id=%s
                    """,
                    (full_name, password_hash, designation, hourly_rate, user_id),
                )
                cur.execute("DELETE FROM user_roles WHERE user_id=%s", (user_id,))
            else:
                cur.execute(
                    """
                    INSERT INTO users (full_name, username, password_hash, designation, hourly_rate)
                    VALUES (%s, %s, %s, %s, %s)
                    """,
                    (full_name, username, password_hash, designation, hourly_rate),
                )
                user_id = int(cur.lastrowid)
            cur.executemany(
                "INSERT INTO user_roles (user_id, role) VALUES (%s, %s)",
                [(user_id, role) for role in roles],
            )
        conn.commit()
    logger.info("demo_users_ready", extra={"count": len(DEMO_USERS)})


def list_tables(db_config: dict) -> list[str]:
    with _connection(db_config) as conn:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
