# Regras dos formulários de Demanda e SI
from datetime import date
from typing import List, Optional

from demandplus.models.demanda import Demand
from demandplus.models.si import SI, SIStatus

REQUIRED_DEMAND_FIELDS = {
    "opening_date": "Data de Abertura",
    "deadline": "Prazo",
    "location": "Local",
    "service_order": "Ordem de Serviço",
    "description": "Descrição",
}

REQUIRED_SI_FIELDS = {
    "number": "Número da SI",
    "location": "Local",
    "expiration_date": "Data de Vencimento",
    "responsible": "Responsável pela SI",
}


def validate_demand_form(demand: Demand) -> List[str]:
    """Returns the labels of required fields left blank."""
    return [label for field, label in REQUIRED_DEMAND_FIELDS.items() if not str(getattr(demand, field) or "").strip()]


def validate_si_form(si: SI, extension_mode: bool) -> List[str]:
    errors = [label for field, label in REQUIRED_SI_FIELDS.items() if not str(getattr(si, field) or "").strip()]
    if extension_mode and (not si.new_expiration_date or not si.extension_justification):
        errors.append("Para prorrogação, a nova data e a justificativa são obrigatórias.")
    return errors


def prepare_si_for_save(si: SI, extension_mode: bool, close: bool, today: date,
                        previous: Optional[SI] = None) -> SI:
    """
    Applies the SI form rules before the record is handed to the service.

    Without extension mode the extension fields are dropped. The extension
    grant date is stamped the first time an extension is saved and kept on
    later edits. An extension with a new date takes precedence over
    ``close``; otherwise ``close`` marks the SI as CLOSED. Unchecking it
    reopens the SI as VIGENTE and the status engine takes over on save.
    """
    update = {}
    if extension_mode:
        update["extension_date"] = (previous.extension_date if previous and previous.extension_date
                                    else today.isoformat())
        status = SIStatus.EXTENDED
    else:
        update["new_expiration_date"] = None
        update["extension_justification"] = None
        update["extension_date"] = previous.extension_date if previous else None
        status = SIStatus.VIGENTE

    if close and not (extension_mode and si.new_expiration_date):
        status = SIStatus.CLOSED
    update["status"] = status
    update["demand_id"] = si.demand_id or None
    return si.model_copy(update=update)
