from __future__ import annotations

import os
from pathlib import Path

from cotacao.core.config import settings


def format_cotacao(bid: str) -> str:
    return f"Dólar: {bid}"


def write_cotacao(bid: str, path: str | os.PathLike = settings.OUTPUT_FILE) -> Path:
    """
    Sobrescreve `path` com "Dólar: <bid>".

    Escreve num arquivo temporário ao lado e troca de uma vez, então o arquivo
    final ou fica como estava ou recebe o conteúdo inteiro.
    Erros de I/O (OSError) sobem para quem chamou.
    """
    target = Path(path)
    temp_path = target.with_name(target.name + ".tmp")

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(format_cotacao(bid))
        temp_path.replace(target)
    except OSError:
        if temp_path.exists():
            temp_path.unlink()
        raise

    return target
