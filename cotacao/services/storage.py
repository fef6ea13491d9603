from __future__ import annotations

import asyncio
import logging

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cotacao.core.config import settings
from cotacao.core.database import GuardedConnection
from cotacao.core.deadline import Scope
from cotacao.core.exceptions import QuoteTimeoutError, StorageError
from cotacao.models.cotacao import Cotacao

STAGE = "banco de dados"

logger = logging.getLogger("cotacao.storage")


def _insert_cotacao(db: Session, bid: str) -> Cotacao:
    cotacao = Cotacao(cotacao=bid)
    db.add(cotacao)
    db.flush()
    return cotacao


class _InsertJob:
    """
    Insert executado numa thread do executor.

    A thread (commit) e o event loop (abort) disputam uma única decisão; quem
    chegar primeiro ganha, sem lock. Com a conexão GuardedConnection a decisão
    do commit acontece dentro do próprio COMMIT do sqlite3, depois de qualquer
    listener do SQLAlchemy. Se o abort ganhar, a transação é desfeita.
    """

    def __init__(self, engine: Engine, bid: str) -> None:
        self.engine = engine
        self.bid = bid
        # dict.setdefault é atômico: a primeira chamada fixa o desfecho
        self._outcome: dict = {}
        self._dbapi_connection = None

    def _claim(self, outcome: str) -> bool:
        return self._outcome.setdefault("outcome", outcome) == outcome

    def run(self) -> int:
        with Session(self.engine) as db:
            if self._outcome.get("outcome") == "abort":
                raise QuoteTimeoutError("insert abandonado antes de começar", stage=STAGE)

            raw = db.connection().connection.dbapi_connection
            guarded = isinstance(raw, GuardedConnection)
            if guarded:
                raw.commit_guard = lambda: self._claim("commit")
            self._dbapi_connection = raw

            try:
                cotacao_id = _insert_cotacao(db, self.bid).id
                if not guarded and not self._claim("commit"):
                    db.rollback()
                    raise QuoteTimeoutError("insert abandonado", stage=STAGE)
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
            finally:
                self._dbapi_connection = None
                if guarded:
                    raw.commit_guard = None
            return cotacao_id

    def abort(self) -> None:
        """Chamado no event loop quando o prazo vence; nunca bloqueia."""
        if not self._claim("abort"):
            logger.warning("Prazo venceu com o COMMIT já em andamento; tentando interromper")

        conn = self._dbapi_connection
        # sqlite3.Connection.interrupt() pode ser chamado de outra thread
        if conn is not None and hasattr(conn, "interrupt"):
            conn.interrupt()


async def save_cotacao(
    scope: Scope,
    engine: Engine,
    bid: str,
    *,
    timeout: float = settings.PERSIST_TIMEOUT,
) -> int:
    """
    Grava uma nova linha em "cotacoes" e devolve o id gerado.
    Preparação + execução + commit precisam caber em `timeout` (10ms por padrão).
    """
    job = _InsertJob(engine, bid)

    with scope.with_timeout(timeout) as db_scope:
        try:
            return await db_scope.run(asyncio.to_thread(job.run), on_abort=job.abort, stage=STAGE)
        except QuoteTimeoutError:
            logger.warning(f"Insert da cotação {bid!r} excedeu {timeout * 1000:.0f}ms")
            raise
        except SQLAlchemyError as e:
            logger.error(f"Erro ao salvar cotação {bid!r}: {e}")
            raise StorageError(str(e), stage=STAGE) from e
