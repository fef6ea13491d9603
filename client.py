#!/usr/bin/env python3
# client.py

import argparse
import asyncio
import logging
import sys

from cotacao.core.config import settings
from cotacao.core.deadline import Scope
from cotacao.core.exceptions import QuoteError
from cotacao.core.logging import setup_logging
from cotacao.services.output import write_cotacao
from cotacao.services.server_client import fetch_cotacao

logger = logging.getLogger("cotacao.client")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Busca a cotação do dólar no servidor local e salva em arquivo.")
    parser.add_argument("--url", default=settings.SERVER_URL, help="endpoint /cotacao do servidor")
    parser.add_argument("--output", default=settings.OUTPUT_FILE, help="arquivo de saída")
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=int(settings.CLIENT_TIMEOUT * 1000),
        help="prazo da requisição em milissegundos",
    )
    return parser.parse_args(argv)


async def _fetch(url: str, timeout: float) -> str:
    with Scope.background() as scope:
        return await fetch_cotacao(scope, url=url, timeout=timeout)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()

    try:
        bid = asyncio.run(_fetch(args.url, args.timeout_ms / 1000))
    except QuoteError as e:
        logger.error(f"Erro ao obter cotação: {e}")
        return 1

    try:
        path = write_cotacao(bid, args.output)
    except OSError as e:
        logger.error(f"Erro ao salvar cotação no arquivo: {e}")
        return 1

    logger.info(f"Cotação salva em '{path}'")
    return 0


if __name__ == "__main__":
    sys.exit(main())
