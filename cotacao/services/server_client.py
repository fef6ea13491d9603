from __future__ import annotations

import logging

import httpx

from cotacao.core.config import settings
from cotacao.core.deadline import Scope
from cotacao.core.exceptions import (
    DecodeError,
    QuoteTimeoutError,
    TransportError,
    UnexpectedStatusError,
)

STAGE = "servidor de cotação"

logger = logging.getLogger("cotacao.client")


async def _get(url: str, timeout: float | None, transport: httpx.AsyncBaseTransport | None) -> httpx.Response:
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        return await client.get(url)


async def fetch_cotacao(
    scope: Scope,
    *,
    url: str = settings.SERVER_URL,
    timeout: float = settings.CLIENT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """
    Chama o GET /cotacao do servidor local e devolve o campo "bid".
    O prazo (300ms) cobre os 200ms + 10ms do servidor e a folga do handler.
    """
    with scope.with_timeout(timeout) as req_scope:
        try:
            r = await req_scope.run(_get(url, req_scope.remaining(), transport), stage=STAGE)
        except httpx.TimeoutException as e:
            raise QuoteTimeoutError(f"timeout ao chamar {url}", stage=STAGE) from e
        except httpx.TransportError as e:
            raise TransportError(f"erro ao chamar {url}: {e}", stage=STAGE) from e
        except httpx.DecodingError as e:
            raise DecodeError(f"corpo da resposta corrompido: {e}", stage=STAGE) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise TransportError(f"erro ao chamar {url}: {e}", stage=STAGE) from e

    if r.status_code != httpx.codes.OK:
        logger.debug(f"Resposta {r.status_code} do servidor: {r.text}")
        raise UnexpectedStatusError(r.status_code, stage=STAGE)

    try:
        data = r.json()
    except ValueError as e:
        raise DecodeError(f"JSON inválido: {e}", stage=STAGE) from e

    bid = data.get("bid") if isinstance(data, dict) else None
    if not isinstance(bid, str):
        raise DecodeError('resposta sem o campo "bid"', stage=STAGE)

    return bid
