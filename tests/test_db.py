import sqlite3

import pytest

from users_api.db import PGConnection, _qmark_to_pct, connect, detect_dialect, init_db, is_integrity_error


@pytest.mark.parametrize("dsn,dialect", [
    ("postgresql://u:p@localhost:5432/users", "postgres"),
    ("postgres://localhost/users", "postgres"),
    ("sqlite:///tmp/users.sqlite", "sqlite"),
    ("./users_api.sqlite", "sqlite"),
    ("/var/lib/users.sqlite", "sqlite"),
    ("", "sqlite"),
])
def test_detect_dialect(dsn, dialect):
    assert detect_dialect(dsn) == dialect


@pytest.mark.parametrize("sql,expected", [
    ("SELECT * FROM users WHERE user_id=?", "SELECT * FROM users WHERE user_id=%s"),
    ("UPDATE users SET username=?, role_id=? WHERE user_id=?",
     "UPDATE users SET username=%s, role_id=%s WHERE user_id=%s"),
    ("SELECT '?' , ? FROM t", "SELECT '?' , %s FROM t"),
    ("SELECT 'it''s ?', ? FROM t", "SELECT 'it''s ?', %s FROM t"),
    ('SELECT "odd?col" FROM t WHERE a=?', 'SELECT "odd?col" FROM t WHERE a=%s'),
    ('SELECT "a""?b" FROM t WHERE a=?', 'SELECT "a""?b" FROM t WHERE a=%s'),
    ("SELECT 1", "SELECT 1"),
])
def test_qmark_to_pct(sql, expected):
    assert _qmark_to_pct(sql) == expected


class _RawCursor:
    def __init__(self, log):
        self.log = log
        self.closed = False
        self.rowcount = 3

    def execute(self, sql, params):
        self.log.append((sql, params))

    def fetchone(self):
        return {"n": 1}

    def fetchall(self):
        return [{"n": 1}]

    def close(self):
        self.closed = True


class _RawConnection:
    def __init__(self):
        self.log = []
        self.cursors = []
        self.closed = False

    def cursor(self):
        cur = _RawCursor(self.log)
        self.cursors.append(cur)
        return cur

    def close(self):
        self.closed = True


def test_pg_connection_converts_placeholders_and_params():
    raw = _RawConnection()
    conn = PGConnection(raw)

    cur = conn.execute("DELETE FROM users WHERE user_id=?", [7])

    assert raw.log == [("DELETE FROM users WHERE user_id=%s", (7,))]
    assert cur.rowcount == 3
    assert cur.fetchone() == {"n": 1}


def test_pg_connection_close_releases_every_cursor():
    raw = _RawConnection()
    conn = PGConnection(raw)
    conn.execute("SELECT 1")
    conn.execute("SELECT 2")
    assert not any(c.closed for c in raw.cursors)

    conn.close()

    assert len(raw.cursors) == 2
    assert all(c.closed for c in raw.cursors)
    assert raw.closed


def test_integrity_errors_are_recognized(tmp_path):
    dsn = str(tmp_path / "db.sqlite")
    init_db(dsn)
    row = ("alice", None, 1, "2024-01-01T00:00:00Z", "2024-01-01T00:00:00Z")
    sql = "INSERT INTO users (username, password_hash, role_id, created_at, updated_at) VALUES (?,?,?,?,?)"

    with connect(dsn) as conn:
        conn.execute(sql, row)
    with pytest.raises(sqlite3.IntegrityError) as ei:
        with connect(dsn) as conn:
            conn.execute(sql, row)

    assert is_integrity_error(ei.value)
    assert not is_integrity_error(sqlite3.OperationalError("no such table"))
    assert not is_integrity_error(OverflowError())


def test_connect_rolls_back_on_error(tmp_path):
    dsn = str(tmp_path / "db.sqlite")
    init_db(dsn)
    with pytest.raises(RuntimeError):
        with connect(dsn) as conn:
            conn.execute(
                "INSERT INTO users (username, password_hash, role_id, created_at, updated_at) "
                "VALUES ('bob', NULL, 1, 'x', 'x')"
            )
            raise RuntimeError("boom")

    with connect(dsn) as conn:
        assert conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"] == 0
