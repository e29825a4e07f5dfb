from datetime import datetime

import pytest

from demandplus.models.demanda import DemandStatus, Difficulty
from demandplus.models.si import SIStatus
from demandplus.services.queries import (DEMAND_STATUS_COLORS, OVERDUE_FILTER, PENDING_FILTER, chart_data,
                                         completion_report_text, demand_stats, filter_demands, filter_sis,
                                         is_overdue, linked_service_order, si_stats, sis_by_location,
                                         time_ago_label)
from tests.factories import TODAY, iso, make_demand, make_si


def _demands():
    return [
        make_demand(id="d1", service_order="OS-100", created_at="2025-03-01T08:00:00", deadline=iso(-1)),
        make_demand(id="d2", service_order="OS-200", created_at="2025-03-03T08:00:00", deadline=iso(-1),
                    status=DemandStatus.COMPLETED, difficulty=Difficulty.HIGH),
        make_demand(id="d3", service_order="OS-300", created_at="2025-03-02T08:00:00", deadline=iso(0),
                    location="SE JGR", description="Troca de para-raios"),
    ]


def test_overdue_ignores_completed_and_deadline_today():
    demands = _demands()
    assert is_overdue(demands[0], TODAY)
    assert not is_overdue(demands[1], TODAY)
    assert not is_overdue(demands[2], TODAY)
    assert not is_overdue(make_demand(deadline=""), TODAY)


def test_filter_demands_sorted_newest_first():
    assert [d.id for d in filter_demands(_demands(), TODAY)] == ["d2", "d3", "d1"]


def test_filter_demands_shortcuts():
    assert [d.id for d in filter_demands(_demands(), TODAY, status=PENDING_FILTER)] == ["d3", "d1"]
    assert [d.id for d in filter_demands(_demands(), TODAY, status=OVERDUE_FILTER)] == ["d1"]
    assert [d.id for d in filter_demands(_demands(), TODAY, status=DemandStatus.COMPLETED.value)] == ["d2"]


def test_filter_demands_by_search_difficulty_and_location():
    assert [d.id for d in filter_demands(_demands(), TODAY, search="para-RAIOS")] == ["d3"]
    assert [d.id for d in filter_demands(_demands(), TODAY, search="os-1")] == ["d1"]
    assert [d.id for d in filter_demands(_demands(), TODAY, difficulty="ALTA")] == ["d2"]
    assert [d.id for d in filter_demands(_demands(), TODAY, location="SE JGR")] == ["d3"]


def test_filter_sis_sorted_by_urgency_then_date():
    sis = [
        make_si(id="closed", status=SIStatus.CLOSED, expiration_date=iso(-50)),
        make_si(id="vig-late", status=SIStatus.VIGENTE, expiration_date=iso(40)),
        make_si(id="ext", status=SIStatus.EXTENDED, expiration_date=iso(-5), new_expiration_date=iso(20)),
        make_si(id="expired", status=SIStatus.EXPIRED, expiration_date=iso(-2)),
        make_si(id="expiring", status=SIStatus.EXPIRING, expiration_date=iso(2)),
    ]
    assert [s.id for s in filter_sis(sis, [])] == ["expired", "expiring", "ext", "vig-late", "closed"]


def test_filter_sis_search_includes_linked_service_order():
    demands = [make_demand(id="d1", service_order="OS-4242")]
    sis = [make_si(id="a", demand_id="d1"), make_si(id="b", number="SI-2025-0200")]
    assert [s.id for s in filter_sis(sis, demands, search="4242")] == ["a"]
    assert [s.id for s in filter_sis(sis, demands, search="0200")] == ["b"]
    assert [s.id for s in filter_sis(sis, demands, status=SIStatus.VIGENTE.value, location="SE SOB")] == ["a", "b"]


def test_linked_service_order():
    demands = [make_demand(id="d1", service_order="OS-1")]
    assert linked_service_order(make_si(demand_id="d1"), demands) == "OS-1"
    assert linked_service_order(make_si(demand_id="sumiu"), demands) == "Demanda não encontrada"
    assert linked_service_order(make_si(), demands) is None


def test_demand_stats():
    stats = demand_stats(_demands(), TODAY)
    assert (stats.total, stats.completed, stats.pending, stats.overdue) == (3, 1, 2, 1)


def test_si_stats_counts_extended_as_active():
    sis = [make_si(status=s) for s in
           (SIStatus.VIGENTE, SIStatus.EXTENDED, SIStatus.EXPIRING, SIStatus.EXPIRED, SIStatus.CLOSED)]
    stats = si_stats(sis)
    assert (stats.total, stats.active, stats.expiring, stats.expired, stats.closed) == (5, 2, 1, 1, 1)


def test_chart_data_drops_empty_categories():
    df = chart_data([d.status.value for d in _demands()], DEMAND_STATUS_COLORS)
    assert list(df["name"]) == [DemandStatus.NOT_STARTED.value, DemandStatus.COMPLETED.value]
    assert list(df["value"]) == [2, 1]
    assert chart_data([], DEMAND_STATUS_COLORS).empty


def test_sis_by_location():
    df = sis_by_location([make_si(location="SE SOB"), make_si(location="SE SOB"), make_si(location="CRESP")])
    assert dict(zip(df["name"], df["value"])) == {"SE SOB": 2, "CRESP": 1}
    assert sis_by_location([]).empty


def test_filter_demands_all_and_completed_shortcuts():
    assert len(filter_demands(_demands(), TODAY, status="")) == 3
    assert [d.id for d in filter_demands(_demands(), TODAY, status=DemandStatus.COMPLETED.value)] == ["d2"]


@pytest.mark.parametrize("created_at, expected", [
    ("2025-03-10T11:59:30", "Criado há pouco"),
    ("2025-03-10T11:15:00", "Criado há 45m"),
    ("2025-03-10T07:00:00", "Criado há 5h"),
    ("2025-03-07T12:00:00", "Criado há 3d"),
    ("2025-03-10T12:05:00", "Criado há pouco"),
    ("", ""),
    (None, ""),
    ("ontem", ""),
])
def test_time_ago_label(created_at, expected):
    assert time_ago_label(created_at, datetime(2025, 3, 10, 12, 0)) == expected


def test_completion_report_text():
    demand = make_demand(description="Troca de para-raios", service_order="OS-300")
    assert completion_report_text(demand) == "🔧 MANUTENÇÃO CONCLUÍDA\nDescrição: Troca de para-raios\nOS: OS-300"
