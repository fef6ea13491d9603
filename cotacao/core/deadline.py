# cotacao/core/deadline.py
"""
Escopo de cancelamento com prazo (deadline).

Cada operação limitada recebe um Scope e deriva um filho com o próprio
orçamento de tempo. O prazo do filho nunca passa do prazo do pai, e cancelar
o pai cancela todos os filhos ainda abertos:

    with scope.with_timeout(0.2) as child:
        bid = await child.run(buscar_cotacao())
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Set, TypeVar

from cotacao.core.exceptions import QuoteTimeoutError, ScopeCancelledError

T = TypeVar("T")

logger = logging.getLogger("cotacao.deadline")


class Scope:
    def __init__(self, deadline: Optional[float] = None, parent: Optional["Scope"] = None) -> None:
        # deadline em tempo absoluto de time.monotonic()
        self.deadline = deadline
        self.parent = parent
        self.timeout: Optional[float] = None
        self._cancelled = False
        self._children: Set["Scope"] = set()
        self._waiters: Set[asyncio.Future] = set()

    @classmethod
    def background(cls) -> "Scope":
        """Escopo raiz: sem prazo, só termina via cancel()."""
        return cls()

    def with_timeout(self, seconds: float) -> "Scope":
        deadline = time.monotonic() + seconds
        if self.deadline is not None:
            deadline = min(deadline, self.deadline)

        child = Scope(deadline=deadline, parent=self)
        child.timeout = seconds
        if self._cancelled:
            child._cancelled = True
        else:
            self._children.add(child)
        return child

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        for waiter in list(self._waiters):
            if not waiter.done():
                waiter.set_result(None)
        for child in list(self._children):
            child.cancel()
        self._children.clear()

    def close(self) -> None:
        """Libera o escopo: cancela o que estiver pendente e solta do pai."""
        self.cancel()
        if self.parent is not None:
            self.parent._children.discard(self)

    def __enter__(self) -> "Scope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _describe(self) -> str:
        if self.timeout is not None:
            return f"prazo de {self.timeout * 1000:.0f}ms excedido"
        return "prazo excedido"

    async def run(
        self,
        awaitable: Awaitable[T],
        on_abort: Optional[Callable[[], None]] = None,
        stage: Optional[str] = None,
    ) -> T:
        """
        Executa `awaitable` respeitando o prazo e o cancelamento do escopo.

        Se o prazo vencer (ou o escopo for cancelado) antes do fim, a task
        interna é cancelada, `on_abort` é chamado e o erro correspondente é
        levantado. Se quem chamou for cancelado, a task interna também é.
        """
        task = asyncio.ensure_future(awaitable)

        if self._cancelled:
            await self._abort(task, on_abort)
            raise ScopeCancelledError("escopo cancelado", stage=stage)

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.add(waiter)
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            await self._abort(task, on_abort)
            raise
        finally:
            self._waiters.discard(waiter)
            if not waiter.done():
                waiter.cancel()

        if task in done:
            return task.result()

        await self._abort(task, on_abort)
        if self._cancelled:
            raise ScopeCancelledError("escopo cancelado", stage=stage)
        raise QuoteTimeoutError(self._describe(), stage=stage)

    @staticmethod
    async def _abort(task: asyncio.Future, on_abort: Optional[Callable[[], None]]) -> None:
        if on_abort is not None:
            on_abort()
        if task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            # a task já foi abandonada; o erro dela não muda o resultado
            logger.debug(f"Erro em operação abandonada: {e!r}")
