"""Derivation of an SI's status from its expiration fields.

The engine is pure: it never touches storage and never raises for missing or
malformed dates. It must run every time SIs are loaded, imported or saved,
since the reference date moves every day.
"""
import logging
from datetime import date, datetime
from typing import Iterable, List, Optional, Union

from demandplus.core.dates import as_calendar_date, days_between, parse_calendar_date
from demandplus.models.si import SI, SIStatus

logger = logging.getLogger(__name__)

EXPIRING_THRESHOLD_DAYS = 3


def effective_expiration_date(si: SI) -> Optional[date]:
    """The extended expiration date when one was granted, otherwise the original one."""
    raw = si.new_expiration_date or si.expiration_date
    return parse_calendar_date(raw)


def days_to_expiration(si: SI, today: Union[date, datetime]) -> Optional[int]:
    expiration = effective_expiration_date(si)
    if expiration is None:
        return None
    return days_between(today, expiration)


def compute_status(si: SI, today: Union[date, datetime]) -> SI:
    """Returns a copy of ``si`` with ``status`` recomputed for ``today``.

    CLOSED is terminal. When there is no usable expiration date the SI is
    returned as-is.
    """
    if si.is_closed:
        return si

    diff_days = days_to_expiration(si, as_calendar_date(today))
    if diff_days is None:
        logger.debug(f"SI {si.number or si.id} sem data de vencimento valida; status mantido.")
        return si

    if diff_days < 0:
        new_status = SIStatus.EXPIRED
    elif diff_days <= EXPIRING_THRESHOLD_DAYS:
        new_status = SIStatus.EXPIRING
    elif si.new_expiration_date:
        new_status = SIStatus.EXTENDED
    else:
        new_status = SIStatus.VIGENTE

    if new_status == si.status:
        return si
    return si.model_copy(update={"status": new_status})


def refresh_statuses(sis: Iterable[SI], today: Union[date, datetime]) -> List[SI]:
    return [compute_status(si, today) for si in sis]
