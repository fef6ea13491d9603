"""Tests for the quote persistence writer and the schema."""
import asyncio
import time
from unittest.mock import patch

import pytest
from sqlalchemy import event, inspect, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from cotacao.core.database import GuardedConnection, create_db_engine, init_db
from cotacao.core.deadline import Scope
from cotacao.core.exceptions import QuoteTimeoutError, StorageError
from cotacao.services import storage
from cotacao.services.storage import save_cotacao
from helpers import stored_cotacoes

_real_insert = storage._insert_cotacao


def slow_insert(db, bid):
    time.sleep(0.1)
    return _real_insert(db, bid)


def save(engine, bid, timeout=1.0, scope=None):
    return asyncio.run(save_cotacao(scope or Scope.background(), engine, bid, timeout=timeout))


class TestInitDb:
    """Schema creation."""

    def test_creates_cotacoes_table(self, db_url):
        engine = create_db_engine(db_url)
        init_db(engine)
        columns = {c["name"] for c in inspect(engine).get_columns("cotacoes")}
        assert columns == {"id", "cotacao"}
        engine.dispose()

    def test_is_idempotent(self, db_url):
        """Running startup twice keeps the table and its rows."""
        engine = create_db_engine(db_url)
        init_db(engine)
        save(engine, "5.43")
        init_db(engine)
        assert inspect(engine).get_table_names() == ["cotacoes"]
        assert stored_cotacoes(engine) == [(1, "5.43")]
        engine.dispose()


class TestSaveCotacao:
    """Test save_cotacao."""

    def test_inserts_row_and_returns_id(self, engine):
        assert save(engine, "5.43") == 1
        assert save(engine, "5.44") == 2
        assert stored_cotacoes(engine) == [(1, "5.43"), (2, "5.44")]

    def test_database_failure_is_storage_error(self):
        """Without the table the insert fails at the storage layer."""
        engine = create_db_engine("sqlite://")
        with pytest.raises(StorageError, match="banco de dados"):
            save(engine, "5.43")
        engine.dispose()

    @patch("cotacao.services.storage._insert_cotacao", side_effect=slow_insert)
    def test_slow_insert_times_out_and_is_not_committed(self, mock_insert, engine):
        async def scenario():
            start = time.monotonic()
            with pytest.raises(QuoteTimeoutError):
                await save_cotacao(Scope.background(), engine, "5.43", timeout=0.01)
            return time.monotonic() - start

        # o erro sai no prazo, sem esperar o insert lento
        assert asyncio.run(scenario()) < 0.09

        # espera a thread abandonada terminar (rollback)
        time.sleep(0.3)
        assert mock_insert.called
        assert stored_cotacoes(engine) == []

    def test_expired_parent_scope_times_out(self, engine):
        parent = Scope.background().with_timeout(0)
        with pytest.raises(QuoteTimeoutError):
            save(engine, "5.43", scope=parent)
        time.sleep(0.1)
        assert stored_cotacoes(engine) == []

    def test_slow_commit_is_vetoed_without_blocking(self, engine):
        """A commit still pending at the deadline is rolled back, and the caller is not held up."""
        def slow_commit(conn):
            time.sleep(0.1)

        event.listen(engine, "commit", slow_commit)

        async def scenario():
            start = time.monotonic()
            with pytest.raises(QuoteTimeoutError):
                await save_cotacao(Scope.background(), engine, "5.43", timeout=0.01)
            return time.monotonic() - start

        try:
            assert asyncio.run(scenario()) < 0.05
        finally:
            event.remove(engine, "commit", slow_commit)

        time.sleep(0.1)
        assert stored_cotacoes(engine) == []


class TestGuardedConnection:
    """Commit veto on the sqlite3 connection."""

    def test_sqlite_engines_use_guarded_connections(self, engine):
        with engine.connect() as conn:
            assert isinstance(conn.connection.dbapi_connection, GuardedConnection)

    def test_refused_guard_rolls_back(self, engine):
        with Session(engine) as db:
            raw = db.connection().connection.dbapi_connection
            raw.commit_guard = lambda: False
            try:
                db.execute(text("INSERT INTO cotacoes (cotacao) VALUES ('5.43')"))
                with pytest.raises(OperationalError, match="commit cancelado"):
                    db.commit()
            finally:
                raw.commit_guard = None
        assert stored_cotacoes(engine) == []

    def test_accepting_guard_commits(self, engine):
        with Session(engine) as db:
            raw = db.connection().connection.dbapi_connection
            raw.commit_guard = lambda: True
            try:
                db.execute(text("INSERT INTO cotacoes (cotacao) VALUES ('5.43')"))
                db.commit()
            finally:
                raw.commit_guard = None
        assert stored_cotacoes(engine) == [(1, "5.43")]
