# main.py

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from cotacao.api.cotacao import router as cotacao_router
from cotacao.core.config import settings
from cotacao.core.database import create_db_engine, init_db
from cotacao.core.logging import setup_logging

logger = logging.getLogger("cotacao.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    # Conexão aberta uma vez e reutilizada por todas as requisições
    engine = create_db_engine(settings.DATABASE_URL)
    # Cria a tabela "cotacoes" se não existir; falha aqui derruba o processo
    init_db(engine)
    app.state.engine = engine

    logger.info(f"Servidor iniciado na porta {settings.SERVER_PORT}...")
    try:
        yield
    finally:
        engine.dispose()


app = FastAPI(
    title="Cotação USD-BRL",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(cotacao_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


def main():
    uvicorn.run(app, host=settings.SERVER_HOST, port=settings.SERVER_PORT)


if __name__ == "__main__":
    main()
