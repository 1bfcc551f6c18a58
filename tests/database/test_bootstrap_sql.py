from __future__ import annotations

from orchestra_attendance.database.bootstrap import SCHEMA_PATH, _iter_sql_statements, _strip_create_db_and_use


def test_splitter_ignores_semicolons_inside_quotes():
    sql = "INSERT INTO t VALUES ('a;b');\nINSERT INTO t VALUES (\"c;d\");\nSELECT 1"

    assert list(_iter_sql_statements(sql)) == [
        "INSERT INTO t VALUES ('a;b')",
        'INSERT INTO t VALUES ("c;d")',
        "SELECT 1",
    ]


def test_strip_create_database_and_use():
    sql = "CREATE DATABASE IF NOT EXISTS x;\nUSE x;\nCREATE TABLE t (id INT);"

    assert list(_iter_sql_statements(_strip_create_db_and_use(sql))) == ["CREATE TABLE t (id INT)"]


def test_schema_ships_next_to_the_bootstrap_module():
    assert SCHEMA_PATH.name == "schema.sql"
    assert SCHEMA_PATH.parent.name == "database"
    assert SCHEMA_PATH.parent.parent.name == "orchestra_attendance"
    assert SCHEMA_PATH.is_file()


def test_schema_file_defines_report_tables():
    statements = list(_iter_sql_statements(_strip_create_db_and_use(SCHEMA_PATH.read_text(encoding="utf-8"))))

    created = [s for s in statements if s.upper().startswith("CREATE TABLE")]
    assert len(created) == 5
    assert any("attendance (" in s for s in created)
    assert any("students (" in s for s in created)
    assert any("student_parents (" in s for s in created)
