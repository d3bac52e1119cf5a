"""
Quote-aware scanning of SQL text.

Single-quoted (``'...'``), double-quoted (``"..."``) and dollar-quoted
(``$$...$$``) literals, ``--`` line comments and ``/* */`` block comments are
skipped, so ``;`` and ``?`` inside them are not treated as statement
terminators or placeholders.
"""

from collections.abc import Iterator


def _skip_quoted(sql: str, i: int) -> int:
    """Index just past the literal opening at sql[i]."""
    quote = sql[i]
    length = len(sql)
    i += 1
    while i < length:
        c = sql[i]
        if c == quote:
            if i + 1 < length and sql[i + 1] == quote:
                i += 2
                continue
            return i + 1
        if c == "\\" and i + 1 < length:
            i += 2
            continue
        i += 1
    return length


def _skip_until(sql: str, i: int, marker: str, start: int) -> int:
    end = sql.find(marker, i + start)
    if end == -1:
        return len(sql)
    return end + len(marker)


def code_offsets(sql: str) -> Iterator[int]:
    """Yield the offset of every character that is SQL code (not literal, not comment)."""
    i = 0
    length = len(sql)
    while i < length:
        ch = sql[i]
        if ch in ("'", '"'):
            i = _skip_quoted(sql, i)
        elif sql.startswith("$$", i):
            i = _skip_until(sql, i, "$$", 2)
        elif sql.startswith("--", i):
            i = _skip_until(sql, i, "\n", 2)
        elif sql.startswith("/*", i):
            i = _skip_until(sql, i, "*/", 2)
        else:
            yield i
            i += 1


def split_statements(sql: str) -> list[str]:
    """Split SQL into trimmed, non-empty statements on ``;`` outside literals and comments."""
    stmts: list[str] = []
    start = 0
    cuts = [i for i in code_offsets(sql) if sql[i] == ";"]
    for cut in [*cuts, len(sql)]:
        stmt = sql[start:cut].strip()
        if stmt:
            stmts.append(stmt)
        start = cut + 1
    return stmts


def find_placeholders(sql: str) -> list[int]:
    """Offsets of positional ``?`` placeholders."""
    return [i for i in code_offsets(sql) if sql[i] == "?"]
