"""Tests for the quote-aware SQL scanner (statement splitting and placeholders)."""

from dbmanager.engines.sql.parser import find_placeholders, split_statements


class TestSplitStatements:
    """Tests for the quote-aware SQL statement splitter."""

    def test_single(self):
        assert split_statements("SELECT 1") == ["SELECT 1"]

    def test_two_statements(self):
        assert split_statements("SELECT 1; SELECT 2") == ["SELECT 1", "SELECT 2"]

    def test_trailing_semicolon(self):
        assert split_statements("SELECT 1;") == ["SELECT 1"]

    def test_empty(self):
        assert split_statements("") == []
        assert split_statements("  ;  ;  ") == []

    def test_trims_whitespace_and_newlines(self):
        sql = "\n  CREATE TABLE a (x INT) ;\n\n  INSERT INTO a VALUES (1)\n"
        assert split_statements(sql) == ["CREATE TABLE a (x INT)", "INSERT INTO a VALUES (1)"]

    def test_semicolon_in_single_quotes(self):
        sql = "SELECT * FROM t WHERE name = 'foo;bar'"
        assert split_statements(sql) == [sql]

    def test_semicolon_in_double_quotes(self):
        sql = 'SELECT * FROM t WHERE "col;name" = 1'
        assert split_statements(sql) == [sql]

    def test_escaped_quote(self):
        sql = "SELECT 'it''s;here'"
        assert split_statements(sql) == [sql]

    def test_dollar_quoting(self):
        sql = "SELECT $$semi;colon$$"
        assert split_statements(sql) == [sql]

    def test_line_comment(self):
        sql = "SELECT 1 -- comment; not a split\n; SELECT 2"
        result = split_statements(sql)
        assert len(result) == 2
        assert result[1] == "SELECT 2"

    def test_block_comment(self):
        sql = "SELECT /* ; */ 1; SELECT 2"
        assert split_statements(sql) == ["SELECT /* ; */ 1", "SELECT 2"]

    def test_unterminated_literal_runs_to_end(self):
        sql = "SELECT 'open; SELECT 2"
        assert split_statements(sql) == [sql]


class TestFindPlaceholders:
    def test_positions(self):
        sql = "SELECT * FROM t WHERE a = ? AND b = ?"
        assert find_placeholders(sql) == [sql.index("?"), sql.rindex("?")]

    def test_ignores_literals_and_comments(self):
        sql = "SELECT '?', \"?\" /* ? */ FROM t -- ?\nWHERE a = ?"
        assert find_placeholders(sql) == [sql.rindex("?")]

    def test_none(self):
        assert find_placeholders("SELECT 1") == []
