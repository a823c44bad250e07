# ==============================================================================
# INTERFACES DE ARMAZENAMENTO
# ==============================================================================
#
# Os serviços (carrinho, comandas, vendas) dependem apenas deste protocolo,
# nunca de uma implementação concreta. Isso permite:
#
# 1. INDEPENDÊNCIA DE ARMAZENAMENTO
#    - Memória, arquivo JSON ou sessão Flask, sem mudar os serviços
#
# 2. TESTES
#    - Fácil criar dublês que implementem o protocolo (inclusive com falhas)
#
# ==============================================================================

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IKeyValueStorage(Protocol):
    """
    Armazenamento chave/valor de estruturas compatíveis com JSON.

    Implementações podem lançar exceções em get/set/delete; os serviços
    capturam essas falhas na fronteira e as registram como STORAGE_ERROR.
    """

    def get(self, key: str, default: Any = None) -> Any:
        """Lê o valor de uma chave (default se ausente)."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Grava o valor de uma chave (substituição completa)."""
        ...

    def delete(self, key: str) -> None:
        """Remove uma chave (sem erro se ausente)."""
        ...
