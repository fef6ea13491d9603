# cotacao/models/cotacao.py

from sqlalchemy import Column, Integer, Text

from cotacao.core.database import Base


class Cotacao(Base):
    """
    Uma cotação USD-BRL obtida pelo servidor.
    Só recebe inserts: nunca é atualizada nem apagada.
    """
    __tablename__ = "cotacoes"

    id = Column(Integer, primary_key=True)
    cotacao = Column(Text)  # bid como veio da API, ex.: "5.4321"
