# cotacao/core/exceptions.py

from typing import Optional


class QuoteError(Exception):
    """Base de todos os erros do pipeline de cotação."""

    def __init__(self, message: str, stage: Optional[str] = None):
        self.stage = stage
        self.message = message
        super().__init__(f"{stage}: {message}" if stage else message)


class QuoteTimeoutError(QuoteError, TimeoutError):
    """Uma operação limitada estourou o prazo."""


class ScopeCancelledError(QuoteError):
    """O escopo (ou um escopo pai) foi cancelado antes do fim da operação."""


class TransportError(QuoteError):
    """Falha de rede: DNS, conexão recusada, conexão resetada..."""


class DecodeError(QuoteError):
    """Corpo da resposta não é JSON válido ou não tem o campo esperado."""


class UnexpectedStatusError(QuoteError):
    def __init__(self, status_code: int, stage: Optional[str] = None):
        self.status_code = status_code
        super().__init__(f"status code {status_code}", stage=stage)


class StorageError(QuoteError):
    """Falha do banco que não seja estouro de prazo."""
