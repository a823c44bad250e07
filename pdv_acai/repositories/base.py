# ==============================================================================
# ARMAZENAMENTOS BASE - Memória e arquivo JSON
# ==============================================================================

import copy
import json
import logging
import os
import shutil
import threading
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


class MemoryStorage:
    """
    Armazenamento chave/valor em memória do processo.
    Guarda cópias profundas para que o chamador não altere o estado por engano.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.RLock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._data))


class JsonFileStorage:
    """
    Armazenamento chave/valor durável em um único arquivo JSON.

    O arquivo contém um objeto {chave: valor}. Cada escrita regrava o arquivo
    inteiro através de um arquivo temporário + os.replace, protegida por lock.
    """

    # Lock global para evitar escritas concorrentes a arquivos
    _file_lock = threading.RLock()

    def __init__(self, file_path: str):
        """
        Inicializa o armazenamento com o caminho do arquivo JSON.

        Args:
            file_path: Caminho absoluto do arquivo de dados
        """
        self.file_path = file_path
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        """Cria o arquivo (e o diretório) com um objeto vazio se não existir."""
        directory = os.path.dirname(self.file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if not os.path.exists(self.file_path):
            self._write_raw({})

    def _read_raw(self) -> Dict[str, Any]:
        """
        Lê o conteúdo do arquivo.

        Returns:
            Dicionário com todas as chaves; vazio se o arquivo não existir

        Raises:
            ValueError: Se o arquivo estiver corrompido ou não contiver um objeto
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except FileNotFoundError:
                return {}
            if not isinstance(data, dict):
                raise ValueError(f"esperado um objeto JSON, obtido {type(data).__name__}")
            return data

    def _read_for_update(self) -> Dict[str, Any]:
        """
        Lê o conteúdo antes de uma escrita.
        Arquivo ilegível nunca é sobrescrito: uma cópia vai para .bak e o erro sobe.
        """
        try:
            return self._read_raw()
        except ValueError as exc:
            backup_path = self.file_path + '.bak'
            shutil.copyfile(self.file_path, backup_path)
            logger.error(
                "Arquivo de dados ilegível (%s), cópia salva em %s: %s",
                self.file_path, backup_path, exc
            )
            raise

    def _write_raw(self, data: Dict[str, Any]) -> None:
        """
        Escreve o conteúdo completo no arquivo.

        Raises:
            OSError: Se houver erro de escrita
            TypeError: Se algum valor não for serializável em JSON
        """
        with self._file_lock:
            # Arquivo temporário primeiro para atomicidade
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except Exception:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise

    def get(self, key: str, default: Any = None) -> Any:
        return self._read_raw().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._file_lock:
            data = self._read_for_update()
            data[key] = value
            self._write_raw(data)

    def delete(self, key: str) -> None:
        with self._file_lock:
            data = self._read_for_update()
            if key in data:
                del data[key]
                self._write_raw(data)
