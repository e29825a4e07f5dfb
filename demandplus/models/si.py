# Pydantic models
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SIStatus(str, Enum):
    VIGENTE = "VIGENTE"
    EXPIRING = "PRÓXIMA DO VENCIMENTO"
    EXPIRED = "VENCIDA"
    EXTENDED = "PRORROGADA"
    CLOSED = "ENCERRADA"


LOCATIONS = [
    'UHE SOBRADINHO',
    'SE SOB', 'SE JGR', 'SE JZD', 'SE JZT', 'SE SNB',
    'SE CND', 'SE CFO', 'SE OUR', 'SE BMC', 'SE IRE', 'SE MPD',
    'SE IGD', 'SE IGT', 'SE BRA', 'SE BRD', 'SE TBV', 'SE BJS',
    'SE BJD', 'SE PND', 'SE GPX', 'SE FUT', 'CRESP',
]


class SI(BaseModel):
    """Solicitação de Intervenção: autorização com prazo para executar uma demanda.

    ``status`` is a cached projection of the expiration fields; it is
    recomputed by the status engine whenever the record is loaded or saved.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    number: str = ""
    demand_id: Optional[str] = None
    location: str = ""
    description: str = ""
    issue_date: str = ""
    expiration_date: str = ""
    status: SIStatus = SIStatus.VIGENTE

    extension_date: Optional[str] = None
    new_expiration_date: Optional[str] = None
    extension_justification: Optional[str] = None

    responsible: str = ""
    responsible_area: str = ""
    observations: str = ""

    @property
    def is_closed(self) -> bool:
        return self.status == SIStatus.CLOSED

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
