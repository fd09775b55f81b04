# checkoutpages/core/ports.py
"""
Definição das Portas (Interfaces/Protocolos) da Arquitetura Limpa.

O Core conversa com um único colaborador externo: o serviço de dados
(banco relacional com política de acesso por linha + feed de alterações).
As linhas trafegam como dicionários com os nomes das colunas; a conversão
para Entidades fica em checkoutpages.core.mappers.

Filtros são mapeamentos coluna -> valor (igualdade). A chave pode levar um
operador com o sufixo '__ne', '__in' ou '__gte'. A ordenação é o nome de uma
coluna, com prefixo '-' para ordem decrescente.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol
from abc import abstractmethod
from dataclasses import dataclass, field


TABELA_PAGINAS = 'checkout_pages'
TABELA_PRODUTOS = 'products'
TABELA_PEDIDOS = 'orders'

OPERADORES_FILTRO = ('ne', 'in', 'gte')

Linha = Dict[str, Any]
Filtro = Mapping[str, Any]


@dataclass
class EventoAlteracao:
    """Evento entregue pelo feed de alterações."""
    tipo: str  # 'INSERT' | 'UPDATE' | 'DELETE'
    tabela: str
    novo: Optional[Linha] = None
    antigo: Optional[Linha] = None


class IAssinatura(Protocol):
    """Handle de uma assinatura do feed. Quem assina é dono do handle e deve cancelá-lo."""

    @abstractmethod
    def unsubscribe(self) -> None: ...

    @property
    @abstractmethod
    def ativa(self) -> bool: ...


class IServicoDados(Protocol):
    """Protocolo do serviço de persistência/consulta."""

    @abstractmethod
    def select(self, tabela: str, filtro: Filtro, ordem: Optional[str] = None) -> List[Linha]: ...

    @abstractmethod
    def insert(self, tabela: str, registro: Linha) -> Linha:
        """Levanta ConflitoError ou PermissaoNegadaError."""
        ...

    @abstractmethod
    def update(self, tabela: str, registro_id: str, patch: Linha, filtro_dono: Filtro) -> None:
        """Levanta ItemNaoEncontradoError ou PermissaoNegadaError."""
        ...

    @abstractmethod
    def delete(self, tabela: str, registro_id: str, filtro_dono: Filtro) -> None:
        """Levanta ItemNaoEncontradoError."""
        ...

    @abstractmethod
    def subscribe(
        self, tabela: str, filtro: Filtro, ao_alterar: Callable[[EventoAlteracao], None]
    ) -> IAssinatura: ...


@dataclass
class Aviso:
    """Mensagem visível ao usuário (ex: renomeação automática do slug)."""
    codigo: str
    mensagem: str
    dados: Dict[str, Any] = field(default_factory=dict)


def separar_operador(chave: str):
    """Divide 'coluna__op' em ('coluna', 'op'); sem operador devolve ('coluna', 'eq')."""
    coluna, _, operador = chave.rpartition('__')
    if coluna and operador in OPERADORES_FILTRO:
        return coluna, operador
    return chave, 'eq'


def linha_atende_filtro(linha: Linha, filtro: Filtro) -> bool:
    """Avalia um filtro sobre uma linha já carregada (usado pelo feed de alterações)."""
    for chave, esperado in filtro.items():
        coluna, operador = separar_operador(chave)
        valor = linha.get(coluna)
        if operador == 'eq' and str(valor) != str(esperado):
            return False
        if operador == 'ne' and str(valor) == str(esperado):
            return False
        if operador == 'in' and str(valor) not in {str(v) for v in esperado}:
            return False
        if operador == 'gte' and (valor is None or valor < esperado):
            return False
    return True
