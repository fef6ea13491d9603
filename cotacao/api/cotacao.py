# cotacao/api/cotacao.py

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.engine import Engine

from cotacao.core.config import settings
from cotacao.core.database import get_engine
from cotacao.core.deadline import Scope
from cotacao.core.exceptions import QuoteError
from cotacao.schemas.cotacao import CotacaoOut
from cotacao.services.exchange import fetch_usd_brl_bid
from cotacao.services.storage import save_cotacao

router = APIRouter(tags=["cotacao"])

logger = logging.getLogger("cotacao.api")


async def _watch_disconnect(request: Request, scope: Scope) -> None:
    while not scope.cancelled:
        if await request.is_disconnected():
            logger.info("Cliente desconectou, cancelando a requisição")
            scope.cancel()
            return
        await asyncio.sleep(settings.DISCONNECT_POLL)


# Dependência: escopo raiz de cada requisição.
# É cancelado se o cliente desconectar e, sempre, ao fim da requisição.
async def get_request_scope(request: Request) -> AsyncIterator[Scope]:
    scope = Scope.background()
    watcher = asyncio.create_task(_watch_disconnect(request, scope))
    try:
        yield scope
    finally:
        scope.cancel()
        watcher.cancel()


# Dependência: transporte HTTP da API externa (None = rede real).
# Os testes sobrescrevem com httpx.MockTransport.
def get_quote_transport() -> httpx.AsyncBaseTransport | None:
    return None


@router.get("/cotacao", response_model=CotacaoOut)
async def get_cotacao(
    scope: Scope = Depends(get_request_scope),
    engine: Engine = Depends(get_engine),
    transport: httpx.AsyncBaseTransport | None = Depends(get_quote_transport),
):
    """
    Busca a cotação do dólar na API externa, grava no banco e devolve {"bid": ...}.
    Qualquer falha vira 500 com a mensagem em texto puro.
    """
    # 1) Buscar a cotação (200ms)
    try:
        bid = await fetch_usd_brl_bid(
            scope,
            url=settings.QUOTE_API_URL,
            timeout=settings.FETCH_TIMEOUT,
            transport=transport,
        )
    except QuoteError as e:
        logger.error(f"Erro ao obter cotação: {e}")
        return PlainTextResponse(f"Erro ao obter cotação: {e}", status_code=500)

    # 2) Salvar no banco (10ms)
    try:
        await save_cotacao(scope, engine, bid, timeout=settings.PERSIST_TIMEOUT)
    except QuoteError as e:
        logger.error(f"Erro ao salvar cotação: {e}")
        return PlainTextResponse(f"Erro ao salvar cotação: {e}", status_code=500)

    # 3) Responder
    return CotacaoOut(bid=bid)
