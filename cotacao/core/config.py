# cotacao/core/config.py

import os
from dotenv import load_dotenv

# Caminho da raiz do projeto (onde estão o main.py, o client.py e o .env)
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
ENV_PATH = os.path.join(BASE_DIR, ".env")

# Carrega variáveis do arquivo .env, se existir
if os.path.exists(ENV_PATH):
    load_dotenv(ENV_PATH)


def _millis(name: str, default: int) -> float:
    """Lê um tempo em milissegundos do ambiente e devolve em segundos."""
    return int(os.getenv(name, str(default))) / 1000


class Settings:
    def __init__(self) -> None:
        # Banco SQLite local (./cotacoes.db)
        self.DATABASE_URL: str = os.getenv(
            "DATABASE_URL",
            "sqlite:///./cotacoes.db",
        )

        self.QUOTE_API_URL: str = os.getenv(
            "QUOTE_API_URL",
            "https://economia.awesomeapi.com.br/json/last/USD-BRL",
        )

        # Orçamentos de tempo de cada etapa (em segundos)
        self.FETCH_TIMEOUT: float = _millis("FETCH_TIMEOUT_MS", 200)
        self.PERSIST_TIMEOUT: float = _millis("PERSIST_TIMEOUT_MS", 10)
        self.CLIENT_TIMEOUT: float = _millis("CLIENT_TIMEOUT_MS", 300)
        self.DISCONNECT_POLL: float = _millis("DISCONNECT_POLL_MS", 50)

        self.SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
        self.SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8080"))

        # Lado do cliente
        self.SERVER_URL: str = os.getenv("SERVER_URL", "http://localhost:8080/cotacao")
        self.OUTPUT_FILE: str = os.getenv("OUTPUT_FILE", "cotacao.txt")

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
