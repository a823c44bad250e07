# ==============================================================================
# ARMAZENAMENTO NA SESSÃO FLASK
# ==============================================================================
# O carrinho de um caixa vive na sessão do navegador (flask.session).
# Só funciona dentro de um contexto de requisição; fora dele o Flask lança
# RuntimeError, que os serviços registram como STORAGE_ERROR.
# ==============================================================================

import copy
from typing import Any

from flask import session


class FlaskSessionStorage:
    """Armazenamento chave/valor com escopo de sessão."""

    def get(self, key: str, default: Any = None) -> Any:
        return copy.deepcopy(session.get(key, default))

    def set(self, key: str, value: Any) -> None:
        session[key] = value
        session.modified = True

    def delete(self, key: str) -> None:
        session.pop(key, None)
        session.modified = True
