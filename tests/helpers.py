"""Shared test helpers (mock transports, payloads, DB queries)."""
import asyncio
import json

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from cotacao.models.cotacao import Cotacao

AWESOMEAPI_PAYLOAD = {
    "USDBRL": {
        "code": "USD",
        "codein": "BRL",
        "name": "Dólar Americano/Real Brasileiro",
        "high": "5.4612",
        "low": "5.4021",
        "bid": "5.43",
        "ask": "5.4315",
        "timestamp": "1727385596",
    }
}


def json_transport(payload, status_code=200, delay=0.0):
    """MockTransport que responde sempre o mesmo JSON (opcionalmente com atraso)."""
    async def handler(request):
        if delay:
            await asyncio.sleep(delay)
        return httpx.Response(status_code, content=json.dumps(payload).encode())
    return httpx.MockTransport(handler)


def raising_transport(exc):
    def handler(request):
        raise exc
    return httpx.MockTransport(handler)


def stored_cotacoes(engine):
    with Session(engine) as db:
        return [(c.id, c.cotacao) for c in db.scalars(select(Cotacao).order_by(Cotacao.id))]
