# cotacao/core/logging.py

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configura o logger "cotacao" (console, stderr).
    Chamado uma vez por processo: no lifespan do servidor e no main do cliente.
    """
    from cotacao.core.config import settings

    level = level or settings.LOG_LEVEL

    logger = logging.getLogger("cotacao")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # evita handlers duplicados se for chamado de novo (ex.: reload do uvicorn)
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)

    return logger
