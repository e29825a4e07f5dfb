# Pydantic models
import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Difficulty(str, Enum):
    LOW = "BAIXA"
    MEDIUM = "MÉDIA"
    HIGH = "ALTA"


class DemandStatus(str, Enum):
    NOT_STARTED = "NÃO INICIADO"
    REQUEST_CALL = "FNZ / SOLICITAR CHAMADO"
    IN_PROGRESS = "EM EXECUÇÃO"
    COMPLETED = "CONCLUÍDO"


class Demand(BaseModel):
    """Ordem de serviço de manutenção (Demanda)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    opening_date: str = ""
    created_at: str = Field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))
    deadline: str = ""
    difficulty: Difficulty = Difficulty.LOW
    location: str = ""
    service_order: str = ""
    description: str = ""
    status: DemandStatus = DemandStatus.NOT_STARTED
    observation: str = ""

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
