# ==============================================================================
# CAMADA DE REPOSITÓRIOS - Acesso a dados
# ==============================================================================
# Esta camada encapsula toda a persistência do PDV.
# Os serviços recebem um IKeyValueStorage e não sabem onde os dados vivem.
#
# ESTRUTURA:
# ├── interfaces.py      → Protocolo IKeyValueStorage
# ├── base.py            → MemoryStorage, JsonFileStorage
# └── session_storage.py → FlaskSessionStorage (carrinho por sessão)
# ==============================================================================

from .interfaces import IKeyValueStorage
from .base import MemoryStorage, JsonFileStorage
from .session_storage import FlaskSessionStorage

__all__ = [
    'IKeyValueStorage',
    'MemoryStorage',
    'JsonFileStorage',
    'FlaskSessionStorage',
]
