import pytest

from demandplus.core.workflow_guard import CompletionOutcome, can_complete, complete_demand, find_linked_si
from demandplus.models.demanda import DemandStatus
from demandplus.models.si import SIStatus
from tests.factories import make_demand, make_si


def test_expired_linked_si_blocks_without_override():
    demand = make_demand()
    sis = [make_si(demand_id=demand.id, status=SIStatus.EXPIRED, number="SI-2025-0099")]

    decision = can_complete(demand, sis)
    assert decision.outcome == CompletionOutcome.BLOCKED_EXPIRED_SI
    assert not decision.allowed
    assert not decision.requires_override
    assert "SI-2025-0099" in decision.reason

    result = complete_demand(demand, sis, override=True, confirmed=True)
    assert not result.completed
    assert result.demand.status == DemandStatus.NOT_STARTED


@pytest.mark.parametrize("status", [SIStatus.VIGENTE, SIStatus.EXPIRING, SIStatus.EXTENDED])
def test_valid_linked_si_allows_completion(status):
    demand = make_demand()
    sis = [make_si(demand_id=demand.id, status=status)]

    decision = can_complete(demand, sis)
    assert decision.allowed and not decision.requires_override
    assert decision.linked_si == sis[0]

    result = complete_demand(demand, sis, confirmed=True)
    assert result.completed
    assert result.demand.status == DemandStatus.COMPLETED


def test_final_confirmation_is_required():
    demand = make_demand(status=DemandStatus.IN_PROGRESS)
    sis = [make_si(demand_id=demand.id)]

    result = complete_demand(demand, sis, confirmed=False)
    assert not result.completed
    assert result.demand == demand


def test_missing_si_requires_override():
    demand = make_demand()

    decision = can_complete(demand, [])
    assert decision.outcome == CompletionOutcome.NO_ACTIVE_SI
    assert decision.allowed and decision.requires_override
    assert decision.linked_si is None

    without_override = complete_demand(demand, [], confirmed=True)
    assert not without_override.completed
    assert without_override.demand.status == DemandStatus.NOT_STARTED

    with_override = complete_demand(demand, [], override=True, confirmed=True)
    assert with_override.completed
    assert with_override.demand.status == DemandStatus.COMPLETED


def test_closed_si_does_not_count_as_link():
    demand = make_demand()
    sis = [make_si(demand_id=demand.id, status=SIStatus.CLOSED)]

    assert find_linked_si(demand.id, sis) is None
    assert can_complete(demand, sis).requires_override


def test_closed_expired_history_does_not_block_when_active_si_exists():
    demand = make_demand()
    sis = [
        make_si(id="old", demand_id=demand.id, status=SIStatus.CLOSED),
        make_si(id="new", demand_id=demand.id, status=SIStatus.VIGENTE),
    ]
    assert can_complete(demand, sis).linked_si.id == "new"


def test_si_of_other_demand_is_ignored():
    demand = make_demand()
    sis = [make_si(demand_id="outra-demanda", status=SIStatus.EXPIRED)]
    assert can_complete(demand, sis).outcome == CompletionOutcome.NO_ACTIVE_SI


def test_unlinked_si_never_matches_demand_without_id():
    demand = make_demand(id="")
    sis = [make_si(demand_id="", status=SIStatus.EXPIRED)]
    assert find_linked_si(demand.id, sis) is None


def test_multiple_active_sis_pick_first_in_collection_order():
    # Ambiguous case: selection follows collection order, not recency.
    demand = make_demand()
    expired_first = [
        make_si(id="a", demand_id=demand.id, status=SIStatus.EXPIRED),
        make_si(id="b", demand_id=demand.id, status=SIStatus.VIGENTE),
    ]
    valid_first = list(reversed(expired_first))

    assert can_complete(demand, expired_first).outcome == CompletionOutcome.BLOCKED_EXPIRED_SI
    assert can_complete(demand, valid_first).outcome == CompletionOutcome.ALLOWED
