"""
Positional parameter binding.

Statements are written with ``?`` placeholders for every backend. For drivers
using the ``format`` paramstyle (psycopg, pymysql) placeholders are rewritten
to ``%s`` and literal ``%`` characters are doubled.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from dbmanager.core.errors import BindingError
from dbmanager.models import BackendEnum

from .parser import find_placeholders


def bind(
    sql: str,
    params: Sequence[Any] | None,
    backend: BackendEnum,
) -> tuple[str, tuple[Any, ...]]:
    """
    Return (statement, params) ready for cursor.execute().

    More parameters than placeholders raises BindingError. Unbound placeholders
    are left for the backend to reject.
    """
    if params is None:
        params = ()
    if isinstance(params, (str, bytes, Mapping)) or not isinstance(params, Sequence):
        raise BindingError(
            f"Parameters must be a positional sequence, got {type(params).__name__}"
        )
    values = tuple(params)
    placeholders = find_placeholders(sql)
    if len(values) > len(placeholders):
        raise BindingError(
            f"{len(values)} parameters given but statement has "
            f"{len(placeholders)} placeholders: {sql}"
        )
    if not values or backend.paramstyle == "qmark":
        return sql, values

    marks = set(placeholders)
    out: list[str] = []
    for i, ch in enumerate(sql):
        if i in marks:
            out.append("%s")
        elif ch == "%":
            out.append("%%")
        else:
            out.append(ch)
    return "".join(out), values
