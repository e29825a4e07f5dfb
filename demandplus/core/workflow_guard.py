"""Completion guard for Demands.

A Demand may only be marked COMPLETED when the SI authorizing it is still
valid. An EXPIRED linked SI blocks completion outright; a missing link only
asks the caller for an explicit override. Outcomes are return values, the
guard never raises for either case.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from demandplus.models.demanda import Demand, DemandStatus
from demandplus.models.si import SI, SIStatus


class CompletionOutcome(str, Enum):
    ALLOWED = "allowed"
    BLOCKED_EXPIRED_SI = "blocked_expired_si"
    NO_ACTIVE_SI = "no_active_si"


@dataclass(frozen=True)
class CompletionDecision:
    outcome: CompletionOutcome
    allowed: bool
    requires_override: bool
    reason: str
    linked_si: Optional[SI] = None


@dataclass(frozen=True)
class CompletionResult:
    demand: Demand
    decision: CompletionDecision
    completed: bool


def find_linked_si(demand_id: str, sis: Iterable[SI]) -> Optional[SI]:
    """First non-closed SI pointing at ``demand_id``.

    With several active SIs for the same demand the pick follows the
    collection order; there is no "most recent" rule.
    """
    if not demand_id:
        return None
    return next((si for si in sis if si.demand_id == demand_id and not si.is_closed), None)


def can_complete(demand: Demand, sis: Iterable[SI]) -> CompletionDecision:
    linked_si = find_linked_si(demand.id, sis)

    if linked_si is None:
        return CompletionDecision(
            outcome=CompletionOutcome.NO_ACTIVE_SI,
            allowed=True,
            requires_override=True,
            reason="AVISO: Não foi encontrada uma SI ativa vinculada a esta demanda.",
        )

    if linked_si.status == SIStatus.EXPIRED:
        return CompletionDecision(
            outcome=CompletionOutcome.BLOCKED_EXPIRED_SI,
            allowed=False,
            requires_override=False,
            reason=(f"BLOQUEADO: A SI vinculada ({linked_si.number}) está VENCIDA. "
                    f"Não é possível executar a demanda."),
            linked_si=linked_si,
        )

    return CompletionDecision(
        outcome=CompletionOutcome.ALLOWED,
        allowed=True,
        requires_override=False,
        reason=f"SI vinculada ({linked_si.number}) com status {linked_si.status.value}.",
        linked_si=linked_si,
    )


def complete_demand(demand: Demand, sis: Iterable[SI], override: bool = False,
                    confirmed: bool = False) -> CompletionResult:
    """Applies the guard and, when every gate passes, returns the demand as COMPLETED.

    ``override`` acknowledges a missing SI; ``confirmed`` is the final
    "dar baixa" confirmation. Any closed gate returns the demand unchanged.
    """
    decision = can_complete(demand, sis)

    if not decision.allowed:
        return CompletionResult(demand=demand, decision=decision, completed=False)
    if decision.requires_override and not override:
        return CompletionResult(demand=demand, decision=decision, completed=False)
    if not confirmed:
        return CompletionResult(demand=demand, decision=decision, completed=False)

    completed = demand.model_copy(update={"status": DemandStatus.COMPLETED})
    return CompletionResult(demand=completed, decision=decision, completed=True)
