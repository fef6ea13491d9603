# cotacao/schemas/cotacao.py

from pydantic import BaseModel, ConfigDict


class UsdBrl(BaseModel):
    # a API devolve muitos outros campos (high, low, ask...); só o bid interessa
    model_config = ConfigDict(extra="ignore")

    bid: str


class AwesomeApiResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    USDBRL: UsdBrl


class CotacaoOut(BaseModel):
    """Corpo de resposta do GET /cotacao."""
    model_config = ConfigDict(extra="forbid")

    bid: str
