from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from cotacao.core.config import settings
from cotacao.core.deadline import Scope
from cotacao.core.exceptions import (
    DecodeError,
    QuoteTimeoutError,
    TransportError,
    UnexpectedStatusError,
)
from cotacao.schemas.cotacao import AwesomeApiResponse

USD_BRL_URL = settings.QUOTE_API_URL
STAGE = "API de cotação"

logger = logging.getLogger("cotacao.exchange")


async def _get(url: str, timeout: float | None, transport: httpx.AsyncBaseTransport | None) -> httpx.Response:
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        return await client.get(url)


async def fetch_usd_brl_bid(
    scope: Scope,
    *,
    url: str = USD_BRL_URL,
    timeout: float = settings.FETCH_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """
    Busca a cotação atual do dólar na API externa e devolve o bid como string
    (ex.: "5.2345"), sem converter para número.
    """
    with scope.with_timeout(timeout) as req_scope:
        try:
            r = await req_scope.run(_get(url, req_scope.remaining(), transport), stage=STAGE)
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout ao chamar a API {url}: {e!r}")
            raise QuoteTimeoutError(f"timeout ao chamar {url}", stage=STAGE) from e
        except httpx.TransportError as e:
            logger.warning(f"Erro ao chamar a API {url}: {e!r}")
            raise TransportError(f"erro ao chamar {url}: {e}", stage=STAGE) from e
        except httpx.DecodingError as e:
            logger.warning(f"Corpo da resposta da API {url} corrompido: {e!r}")
            raise DecodeError(f"corpo da resposta corrompido: {e}", stage=STAGE) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.warning(f"Erro ao chamar a API {url}: {e!r}")
            raise TransportError(f"erro ao chamar {url}: {e}", stage=STAGE) from e
        except QuoteTimeoutError:
            logger.warning(f"API {url} não respondeu em {timeout * 1000:.0f}ms")
            raise

    if not r.is_success:
        logger.warning(f"API {url} respondeu com status {r.status_code}")
        raise UnexpectedStatusError(r.status_code, stage=STAGE)

    try:
        data = AwesomeApiResponse.model_validate_json(r.content)
    except ValidationError as e:
        logger.warning(f"Erro ao realizar o decode do payload: {e}")
        raise DecodeError(f"payload inválido: {e.errors()[0]['msg']}", stage=STAGE) from e

    return data.USDBRL.bid
