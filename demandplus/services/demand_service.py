# Business logic for demands and SIs
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from demandplus.auth.auth_service import Role
from demandplus.core.exceptions import ClearConfirmationError, PermissionDeniedError, RecordNotFoundError
from demandplus.core.status_engine import compute_status, refresh_statuses
from demandplus.core.workflow_guard import CompletionDecision, CompletionResult, can_complete, complete_demand
from demandplus.models.demanda import Demand
from demandplus.models.si import SI
from demandplus.services.notification_service import NotificationService
from demandplus.services.storage import DEMANDS_KEY, SIS_KEY, DocumentStore

logger = logging.getLogger(__name__)

CLEAR_CONFIRMATION_PHRASE = "APAGAR TUDO"

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse_records(records: List[Any], model: Type[ModelT],
                   collection: str) -> Tuple[List[ModelT], List[Any]]:
    """Splits stored records into parsed models and the raw records that failed validation."""
    parsed, unreadable = [], []
    for index, record in enumerate(records):
        try:
            parsed.append(model.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Registro {index} de '{collection}' ignorado: {e.errors()[0]['msg']}")
            unreadable.append(record)
    return parsed, unreadable


class DemandService:
    """
    Holds the Demand and SI collections and persists them through a store.

    Both collections are kept as tuples and replaced wholesale on every
    mutation, then written back. Mutations require the ADMIN role.
    """

    def __init__(self, store: DocumentStore, notifier: Optional[NotificationService] = None,
                 clock: Callable[[], date] = date.today):
        self.store = store
        self.notifier = notifier or NotificationService(enabled=False)
        self.clock = clock
        self._demands: Tuple[Demand, ...] = ()
        self._sis: Tuple[SI, ...] = ()
        # Registros ilegíveis são regravados como vieram
        self._unreadable: Dict[str, List[Any]] = {DEMANDS_KEY: [], SIS_KEY: []}

    @property
    def demands(self) -> Tuple[Demand, ...]:
        return self._demands

    @property
    def sis(self) -> Tuple[SI, ...]:
        return self._sis

    # --- carga e persistência ---

    def load(self) -> None:
        """Reads both collections and recomputes every SI status for today.

        The store is written back only when a status actually changed.
        """
        demands, self._unreadable[DEMANDS_KEY] = _parse_records(
            self.store.get_collection(DEMANDS_KEY), Demand, DEMANDS_KEY)
        sis, self._unreadable[SIS_KEY] = _parse_records(self.store.get_collection(SIS_KEY), SI, SIS_KEY)
        self._demands = tuple(demands)
        self._sis = tuple(sis)
        self.refresh()
        logger.info(f"Dados carregados: {len(self._demands)} demandas, {len(self._sis)} SIs.")

    def _set_demands(self, demands: Sequence[Demand]) -> None:
        self._demands = tuple(demands)
        records = [d.to_record() for d in self._demands] + self._unreadable[DEMANDS_KEY]
        self.store.set_collection(DEMANDS_KEY, records)

    def _set_sis(self, sis: Sequence[SI]) -> None:
        self._sis = tuple(sis)
        records = [s.to_record() for s in self._sis] + self._unreadable[SIS_KEY]
        self.store.set_collection(SIS_KEY, records)

    def replace_all(self, demands: Sequence[Demand], sis: Sequence[SI], role: Role) -> None:
        """Replaces both collections, e.g. after a backup import."""
        self._require_admin(role)
        self._unreadable = {DEMANDS_KEY: [], SIS_KEY: []}
        self._set_demands(demands)
        self._set_sis(refresh_statuses(sis, self.clock()))
        self.notifier.send("Dados Importados", "O banco de dados foi atualizado via arquivo.")

    def clear_all(self, role: Role, confirmation: str) -> None:
        self._require_admin(role)
        if confirmation != CLEAR_CONFIRMATION_PHRASE:
            raise ClearConfirmationError(f"Digite '{CLEAR_CONFIRMATION_PHRASE}' para confirmar a exclusão total.")
        self._demands, self._sis = (), ()
        self._unreadable = {DEMANDS_KEY: [], SIS_KEY: []}
        self.store.clear()
        logger.warning("Banco de dados limpo.")

    # --- consultas ---

    def get_demand(self, demand_id: str) -> Optional[Demand]:
        return next((d for d in self._demands if d.id == demand_id), None)

    def get_si(self, si_id: str) -> Optional[SI]:
        return next((s for s in self._sis if s.id == si_id), None)

    def refresh(self) -> None:
        """Recomputes SI statuses when the day changed since the last load."""
        refreshed = refresh_statuses(self._sis, self.clock())
        if list(refreshed) != list(self._sis):
            self._set_sis(refreshed)

    # --- demandas ---

    def save_demand(self, demand: Demand, role: Role) -> Demand:
        """Creates or replaces a demand.

        The edit path accepts any status, including COMPLETED, without going
        through the completion guard.
        """
        self._require_admin(role)
        is_new = self.get_demand(demand.id) is None
        if is_new:
            self._set_demands((demand,) + self._demands)
        else:
            self._set_demands(tuple(demand if d.id == demand.id else d for d in self._demands))

        self.notifier.send("Nova Demanda" if is_new else "Demanda Atualizada",
                           f"OS {demand.service_order} em {demand.location}")
        return demand

    def delete_demand(self, demand_id: str, role: Role) -> None:
        self._require_admin(role)
        demand = self.get_demand(demand_id)
        if demand is None:
            raise RecordNotFoundError(f"Demanda '{demand_id}' não encontrada.")
        self._set_demands(tuple(d for d in self._demands if d.id != demand_id))
        self.notifier.send("Demanda Excluída", f"A OS {demand.service_order} foi removida.")

    def check_completion(self, demand_id: str) -> CompletionDecision:
        demand = self._get_demand_or_raise(demand_id)
        self.refresh()
        return can_complete(demand, self._sis)

    def complete_demand(self, demand_id: str, role: Role, override: bool = False,
                        confirmed: bool = False) -> CompletionResult:
        self._require_admin(role)
        demand = self._get_demand_or_raise(demand_id)
        self.refresh()

        result = complete_demand(demand, self._sis, override=override, confirmed=confirmed)
        if not result.completed:
            logger.info(f"Conclusão da OS {demand.service_order} não realizada: {result.decision.reason}")
            return result

        self._set_demands(tuple(result.demand if d.id == demand_id else d for d in self._demands))
        self.notifier.send("Demanda Concluída", f"OS {demand.service_order} finalizada com sucesso.")
        return result

    # --- SIs ---

    def save_si(self, si: SI, role: Role) -> SI:
        """Creates or replaces an SI, recomputing its status with the save-time date."""
        self._require_admin(role)
        is_new = self.get_si(si.id) is None
        processed = compute_status(si, self.clock())
        if is_new:
            self._set_sis((processed,) + self._sis)
        else:
            self._set_sis(tuple(processed if s.id == si.id else s for s in self._sis))

        self.notifier.send("Nova SI Criada" if is_new else "SI Atualizada",
                           f"Nº {processed.number} - Status: {processed.status.value}")
        return processed

    def delete_si(self, si_id: str, role: Role) -> None:
        self._require_admin(role)
        si = self.get_si(si_id)
        if si is None:
            raise RecordNotFoundError(f"SI '{si_id}' não encontrada.")
        self._set_sis(tuple(s for s in self._sis if s.id != si_id))
        self.notifier.send("SI Excluída", f"A SI {si.number} foi removida.")

    # --- auxiliares ---

    def _get_demand_or_raise(self, demand_id: str) -> Demand:
        demand = self.get_demand(demand_id)
        if demand is None:
            raise RecordNotFoundError(f"Demanda '{demand_id}' não encontrada.")
        return demand

    @staticmethod
    def _require_admin(role: Role) -> None:
        if role != Role.ADMIN:
            raise PermissionDeniedError("Apenas administradores podem alterar os dados.")
