from query_tools.sql_sanitizer import sanitize_sql


def test_line_breaks_become_single_spaces():
    assert sanitize_sql("SELECT *\r\nFROM users\n\n  WHERE id = 1") == "SELECT * FROM users WHERE id = 1"


def test_repeated_spaces_collapse():
    assert sanitize_sql("SELECT   id,    name FROM users") == "SELECT id, name FROM users"


def test_sanitize_is_idempotent():
    raw = "SELECT id\n\tFROM   users\r\nLIMIT 5\n"
    once = sanitize_sql(raw)
    assert sanitize_sql(once) == once
    assert "  " not in once
    assert "\n" not in once and "\r" not in once


def test_empty_input():
    assert sanitize_sql("") == ""
    assert sanitize_sql(None) == ""
