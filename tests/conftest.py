"""Pytest configuration and shared fixtures."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from cotacao.api.cotacao import get_quote_transport
from cotacao.core.config import settings
from cotacao.core.database import create_db_engine, init_db
from helpers import AWESOMEAPI_PAYLOAD, json_transport
from main import app


@pytest.fixture
def engine():
    """SQLite em memória, compartilhado entre threads."""
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cotacoes.db'}"


@pytest.fixture
def quote_transport():
    """Transporte usado pelo servidor para falar com a API externa; trocável por teste."""
    holder = {"transport": json_transport(AWESOMEAPI_PAYLOAD)}
    app.dependency_overrides[get_quote_transport] = lambda: holder["transport"]
    yield holder
    app.dependency_overrides.pop(get_quote_transport, None)


@pytest.fixture
def server(monkeypatch, db_url, quote_transport):
    """FastAPI test client com lifespan (engine + tabela) num banco temporário."""
    monkeypatch.setattr(settings, "DATABASE_URL", db_url)
    # orçamento folgado para não depender da velocidade do disco do CI
    monkeypatch.setattr(settings, "PERSIST_TIMEOUT", 1.0)
    with TestClient(app) as client:
        yield client
