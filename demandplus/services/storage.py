# Document store boundary
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Protocol

logger = logging.getLogger(__name__)

DEMANDS_KEY = "demand_plus_data_v1"
SIS_KEY = "demand_plus_si_data_v1"


class DocumentStore(Protocol):
    """Key-value store holding whole collections of records."""

    def get_collection(self, name: str) -> List[Dict[str, Any]]:
        ...

    def set_collection(self, name: str, records: List[Dict[str, Any]]) -> None:
        ...

    def clear(self) -> None:
        ...


class JsonFileStore:
    """
    Stores every collection under its key in a single local JSON file,
    the way the browser build kept them in localStorage.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except OSError as e:
            logger.error(f"Erro ao ler '{self.path}': {e}", exc_info=True)
            return {}
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Erro ao ler '{self.path}': {e}")
            self._quarantine()
            return {}
        if not isinstance(data, dict):
            logger.error(f"Conteúdo inesperado em '{self.path}': esperado objeto JSON.")
            self._quarantine()
            return {}
        return data

    @property
    def corrupt_path(self) -> Path:
        return self.path.with_suffix(self.path.suffix + ".corrupt")

    def _quarantine(self) -> None:
        """Moves an unreadable file to ``<name>.corrupt``; the next write starts a new file."""
        self.path.replace(self.corrupt_path)
        logger.warning(f"Arquivo ilegível preservado em '{self.corrupt_path}'.")

    def _write_all(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    def get_collection(self, name: str) -> List[Dict[str, Any]]:
        records = self._read_all().get(name, [])
        if not isinstance(records, list):
            logger.error(f"Coleção '{name}' corrompida em '{self.path}'; ignorada.")
            return []
        return records

    def set_collection(self, name: str, records: List[Dict[str, Any]]) -> None:
        data = self._read_all()
        data[name] = records
        self._write_all(data)

    def clear(self) -> None:
        data = self._read_all()
        for key in (DEMANDS_KEY, SIS_KEY):
            data.pop(key, None)
        self._write_all(data)
