# Backup export/import
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Sequence, Union

from pydantic import ValidationError

from demandplus.core.exceptions import InvalidBackupError
from demandplus.core.status_engine import refresh_statuses
from demandplus.models.demanda import Demand
from demandplus.models.si import SI

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.2.0"


@dataclass(frozen=True)
class BackupPayload:
    demands: List[Demand]
    sis: List[SI]
    export_date: str = ""
    version: str = ""


def export_backup(demands: Sequence[Demand], sis: Sequence[SI], now: datetime) -> Dict[str, Any]:
    return {
        "demands": [d.to_record() for d in demands],
        "sis": [s.to_record() for s in sis],
        "exportDate": now.isoformat(),
        "version": BACKUP_VERSION,
    }


def backup_to_json(backup: Dict[str, Any]) -> bytes:
    return json.dumps(backup, ensure_ascii=False, indent=2).encode('utf-8')


def backup_filename(today: date) -> str:
    return f"backup_demand_plus_{today.isoformat()}.json"


def import_backup(raw: Union[bytes, str, Dict[str, Any]], today: date) -> BackupPayload:
    """
    Parses a backup document and recomputes every SI status for ``today``.

    The document is accepted whole or not at all: a missing key or an
    invalid record raises InvalidBackupError.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise InvalidBackupError("Erro ao ler o arquivo JSON.") from e
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidBackupError("Erro ao ler o arquivo JSON.") from e

    if not isinstance(raw, dict) or not isinstance(raw.get("demands"), list) or not isinstance(raw.get("sis"), list):
        raise InvalidBackupError("Arquivo inválido. Certifique-se de que é um backup do DEMAND+.")

    try:
        demands = [Demand.model_validate(record) for record in raw["demands"]]
        sis = [SI.model_validate(record) for record in raw["sis"]]
    except ValidationError as e:
        raise InvalidBackupError(f"Registro inválido no backup: {e.errors()[0]['msg']}") from e

    logger.info(f"Backup lido: {len(demands)} demandas, {len(sis)} SIs (versão {raw.get('version', '?')}).")
    return BackupPayload(
        demands=demands,
        sis=refresh_statuses(sis, today),
        export_date=str(raw.get("exportDate", "")),
        version=str(raw.get("version", "")),
    )
