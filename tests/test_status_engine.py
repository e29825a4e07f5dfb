from datetime import datetime

import pytest

from demandplus.core.status_engine import compute_status, days_to_expiration, effective_expiration_date, \
    refresh_statuses
from demandplus.models.si import SIStatus
from tests.factories import TODAY, iso, make_si


def test_closed_si_is_left_untouched():
    si = make_si(status=SIStatus.CLOSED, expiration_date=iso(-30))
    assert si.is_closed
    assert compute_status(si, TODAY) == si

    other = make_si(status=SIStatus.CLOSED, expiration_date=iso(100), new_expiration_date=iso(200))
    assert compute_status(other, TODAY).status == SIStatus.CLOSED


def test_expires_today_is_expiring():
    si = make_si(expiration_date=iso(0))
    assert compute_status(si, TODAY).status == SIStatus.EXPIRING


def test_expired_yesterday():
    si = make_si(expiration_date=iso(-1))
    assert compute_status(si, TODAY).status == SIStatus.EXPIRED


@pytest.mark.parametrize("days", [1, 2, 3])
def test_within_three_days_is_expiring(days):
    assert compute_status(make_si(expiration_date=iso(days)), TODAY).status == SIStatus.EXPIRING


def test_four_days_ahead_is_vigente():
    si = make_si(expiration_date=iso(4))
    assert compute_status(si, TODAY).status == SIStatus.VIGENTE


def test_four_days_ahead_with_extension_is_extended():
    si = make_si(expiration_date=iso(-2), new_expiration_date=iso(4))
    assert compute_status(si, TODAY).status == SIStatus.EXTENDED


def test_extension_overrides_stale_original_date():
    si = make_si(expiration_date=iso(-10), new_expiration_date=iso(10))
    assert compute_status(si, TODAY).status == SIStatus.EXTENDED


def test_lapsed_extension_is_expired():
    si = make_si(expiration_date=iso(-10), new_expiration_date=iso(-1))
    assert compute_status(si, TODAY).status == SIStatus.EXPIRED


def test_extension_within_threshold_is_expiring_not_extended():
    si = make_si(expiration_date=iso(-10), new_expiration_date=iso(2))
    assert compute_status(si, TODAY).status == SIStatus.EXPIRING


def test_empty_extension_falls_back_to_original_date():
    si = make_si(expiration_date=iso(20), new_expiration_date="")
    assert compute_status(si, TODAY).status == SIStatus.VIGENTE


@pytest.mark.parametrize("raw", ["", "não informado", "2025-13-45"])
def test_unusable_date_leaves_si_unchanged(raw):
    si = make_si(expiration_date=raw, status=SIStatus.EXTENDED)
    assert compute_status(si, TODAY) == si


def test_extended_status_drops_back_when_extension_removed():
    si = make_si(status=SIStatus.EXTENDED, expiration_date=iso(30))
    assert compute_status(si, TODAY).status == SIStatus.VIGENTE


def test_does_not_mutate_input():
    si = make_si(expiration_date=iso(-1))
    compute_status(si, TODAY)
    assert si.status == SIStatus.VIGENTE


def test_other_fields_untouched():
    si = make_si(expiration_date=iso(-1), observations="Aguardando liberação", responsible_area="Manutenção")
    result = compute_status(si, TODAY)
    assert result.model_dump(exclude={"status"}) == si.model_dump(exclude={"status"})


@pytest.mark.parametrize("offset", [-10, -1, 0, 3, 4, 30])
@pytest.mark.parametrize("extended", [False, True])
def test_idempotent(offset, extended):
    si = make_si(expiration_date=iso(offset - 5), new_expiration_date=iso(offset) if extended else None)
    once = compute_status(si, TODAY)
    assert compute_status(once, TODAY) == once


def test_time_of_day_is_ignored():
    si = make_si(expiration_date=iso(0))
    late_evening = datetime(TODAY.year, TODAY.month, TODAY.day, 23, 59)
    assert compute_status(si, late_evening).status == SIStatus.EXPIRING


def test_timestamp_date_is_taken_literally():
    si = make_si(expiration_date=f"{iso(-1)}T23:30:00.000Z")
    assert compute_status(si, TODAY).status == SIStatus.EXPIRED


def test_effective_date_helpers():
    si = make_si(expiration_date=iso(1), new_expiration_date=iso(8))
    assert effective_expiration_date(si).isoformat() == iso(8)
    assert days_to_expiration(si, TODAY) == 8
    assert days_to_expiration(make_si(expiration_date=""), TODAY) is None


def test_refresh_statuses_keeps_order():
    sis = [make_si(id="a", expiration_date=iso(-1)), make_si(id="b", expiration_date=iso(20))]
    refreshed = refresh_statuses(sis, TODAY)
    assert [s.id for s in refreshed] == ["a", "b"]
    assert [s.status for s in refreshed] == [SIStatus.EXPIRED, SIStatus.VIGENTE]
