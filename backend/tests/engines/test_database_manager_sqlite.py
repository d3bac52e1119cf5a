"""
End-to-end DatabaseManager tests against file-backed SQLite.

Uses the ``manager`` fixture from conftest (fresh database and registry per test).
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from dbmanager.core.errors import BatchError, ConnectionSetupError, QueryError
from dbmanager.core.pool import PoolRegistry
from dbmanager.core.resolver import ConfigResolver
from dbmanager.engines.sql import DatabaseManager
from dbmanager.models import ConnectionConfig

USERS_COLUMNS = "ID INT PRIMARY KEY, NAME VARCHAR(255), EMAIL VARCHAR(255), ACTIVE BOOLEAN"


@pytest.fixture
def users(manager: DatabaseManager) -> DatabaseManager:
    manager.create_table_if_not_exists("USERS", USERS_COLUMNS)
    return manager


def test_select_one(manager: DatabaseManager) -> None:
    rows = manager.query("SELECT 1")
    assert len(rows) == 1
    assert list(rows[0].values()) == [1]


def test_insert_then_select_round_trip(users: DatabaseManager) -> None:
    inserted = users.update(
        "INSERT INTO USERS (ID, NAME, EMAIL, ACTIVE) VALUES (?, ?, ?, ?)",
        [1, "A", "a@x.com", True],
    )
    rows = users.query("SELECT * FROM USERS WHERE ID = ?", [1])

    assert inserted == 1
    assert rows == [{"ID": 1, "NAME": "A", "EMAIL": "a@x.com", "ACTIVE": True}]


def test_query_empty_result_is_empty_list(users: DatabaseManager) -> None:
    assert users.query("SELECT * FROM USERS") == []
    assert users.query_one("SELECT * FROM USERS") is None


def test_update_reports_affected_rows(users: DatabaseManager) -> None:
    users.batch(
        "INSERT INTO USERS (ID, NAME) VALUES (?, ?)",
        [[1, "a"], [2, "b"], [3, "c"]],
    )
    assert users.update("UPDATE USERS SET ACTIVE = ? WHERE ID > ?", [False, 1]) == 2
    assert users.update("DELETE FROM USERS WHERE ID = ?", [99]) == 0


def test_batch_returns_one_count_per_set(users: DatabaseManager) -> None:
    before = users.scalar("SELECT count(*) FROM USERS")
    results = users.batch(
        "INSERT INTO USERS (ID, NAME) VALUES (?, ?)",
        [[1, "a"], [2, "b"], [3, "c"]],
    )
    assert results == [1, 1, 1]
    assert users.scalar("SELECT count(*) FROM USERS") == before + 3


def test_batch_partial_failure(users: DatabaseManager) -> None:
    with pytest.raises(BatchError) as exc_info:
        users.batch(
            "INSERT INTO USERS (ID, NAME) VALUES (?, ?)",
            [[1, "a"], [1, "duplicate"], [2, "b"]],
        )
    assert exc_info.value.results == [1]
    assert exc_info.value.failed_index == 1
    assert "UNIQUE" in str(exc_info.value)
    assert users.scalar("SELECT count(*) FROM USERS") == 1


def test_scalar(users: DatabaseManager) -> None:
    users.update("INSERT INTO USERS (ID, NAME) VALUES (?, ?)", [7, "seven"])
    assert users.scalar("SELECT NAME FROM USERS WHERE ID = ?", [7]) == "seven"
    assert users.scalar("SELECT NAME FROM USERS WHERE ID = ?", [8]) is None


def test_script_runs_statements_in_order(manager: DatabaseManager) -> None:
    results = manager.script(
        """
        CREATE TABLE items (id INT, label TEXT);
        INSERT INTO items VALUES (1, 'semi;colon');
        INSERT INTO items VALUES (2, 'two');
        SELECT label FROM items ORDER BY id;
        """
    )
    assert results[1:3] == [1, 1]
    assert results[3] == [{"label": "semi;colon"}, {"label": "two"}]


def test_script_failure_stops_at_failing_statement(manager: DatabaseManager) -> None:
    with pytest.raises(QueryError) as exc_info:
        manager.script(
            "CREATE TABLE a (x INT); INSERT INTO missing VALUES (1); CREATE TABLE b (x INT)"
        )
    assert exc_info.value.statement_index == 1
    assert manager.table_exists("a") is True
    assert manager.table_exists("b") is False


def test_malformed_sql_raises_query_error(manager: DatabaseManager) -> None:
    with pytest.raises(QueryError, match="syntax error"):
        manager.query("SELEC 1")


def test_too_few_params_is_backend_error(manager: DatabaseManager) -> None:
    with pytest.raises(QueryError):
        manager.query("SELECT ?, ?", [1])


def test_table_exists_is_case_insensitive(manager: DatabaseManager) -> None:
    manager.create_table_if_not_exists("orders", "id INT")
    assert manager.table_exists("orders") is True
    assert manager.table_exists("ORDERS") is True
    assert manager.table_exists("missing_table") is False


def test_create_table_if_not_exists_is_idempotent(manager: DatabaseManager) -> None:
    manager.create_table_if_not_exists("t", "id INT PRIMARY KEY")
    manager.create_table_if_not_exists("t", "id INT PRIMARY KEY")
    assert manager.has_table("t") is True


def test_close_all_then_operation_recreates_pool(manager: DatabaseManager) -> None:
    old = manager.source()
    manager.registry.close_all()

    assert manager.query("SELECT 1 AS n") == [{"n": 1}]
    assert manager.source() is not old


def test_connection_context_returns_connection(manager: DatabaseManager) -> None:
    with manager.connection() as conn:
        assert conn.execute("SELECT 2").fetchone() == (2,)
    stats = manager.source().stats()
    assert stats["in_use"] == 0
    assert stats["idle"] >= 1


def test_unreachable_target_raises_connection_setup_error(tmp_path) -> None:
    bad = ConnectionConfig(target=f"sqlite:///{tmp_path / 'no' / 'such' / 'dir.db'}")
    db = DatabaseManager(registry=PoolRegistry(), resolver=ConfigResolver(default=bad))
    with pytest.raises(ConnectionSetupError):
        db.query("SELECT 1")
    assert len(db.registry) == 0


def test_concurrent_callers_share_one_pool(users: DatabaseManager) -> None:
    workers = 8
    barrier = threading.Barrier(workers)

    def insert(i: int) -> int:
        barrier.wait()
        return users.update("INSERT INTO USERS (ID, NAME) VALUES (?, ?)", [i, f"user{i}"])

    with ThreadPoolExecutor(max_workers=workers) as executor:
        assert list(executor.map(insert, range(workers))) == [1] * workers

    assert users.scalar("SELECT count(*) FROM USERS") == workers
    assert len(users.registry) == 1
    assert users.source().stats()["in_use"] == 0


def test_callers_with_different_configs_get_different_pools(
    manager: DatabaseManager, tmp_path
) -> None:
    other = ConnectionConfig(target=f"sqlite:///{tmp_path / 'other.db'}")
    manager.resolver.register("other", other)

    manager.create_table_if_not_exists("only_in_other", "id INT", caller="other")

    assert manager.table_exists("only_in_other", caller="other") is True
    assert manager.table_exists("only_in_other") is False
    assert len(manager.registry) == 2
