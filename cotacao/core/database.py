# cotacao/core/database.py

import sqlite3

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class GuardedConnection(sqlite3.Connection):
    """
    Conexão sqlite3 cujo COMMIT pode ser vetado no último instante.

    Quem grava define `commit_guard`; se ele devolver False na hora do commit,
    a transação é desfeita e o commit falha.
    """

    commit_guard = None

    def commit(self):
        guard = self.commit_guard
        if guard is not None and not guard():
            self.rollback()
            raise sqlite3.OperationalError("commit cancelado: prazo excedido")
        super().commit()


def create_db_engine(url: str, **kwargs) -> Engine:
    # Para SQLite, é importante usar connect_args={"check_same_thread": False}:
    # a mesma conexão é usada pelas threads que gravam as cotações
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("factory", GuardedConnection)
        return create_engine(
            url,
            connect_args=connect_args,
            echo=False,
            future=True,
            **kwargs,
        )

    return create_engine(url, echo=False, future=True, **kwargs)


def init_db(engine: Engine) -> None:
    """
    Cria a tabela "cotacoes" caso ainda não exista.
    Pode ser chamada várias vezes sobre o mesmo banco.
    """
    # Importa os models para registrá-los no Base.metadata
    from cotacao.models.cotacao import Cotacao  # noqa: F401

    Base.metadata.create_all(bind=engine)


# Dependência: o engine é criado uma vez no lifespan e vive em app.state
def get_engine(request: Request) -> Engine:
    return request.app.state.engine
