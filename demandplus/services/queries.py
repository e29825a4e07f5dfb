# Filtros, ordenação e métricas dos painéis
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from demandplus.core.dates import parse_calendar_date
from demandplus.core.status_engine import effective_expiration_date
from demandplus.models.demanda import Demand, DemandStatus, Difficulty
from demandplus.models.si import SI, SIStatus

PENDING_FILTER = "PENDING"
OVERDUE_FILTER = "OVERDUE"

DIFFICULTY_COLORS = {
    Difficulty.LOW: '#22c55e',
    Difficulty.MEDIUM: '#fbbf24',
    Difficulty.HIGH: '#ef4444',
}

DEMAND_STATUS_COLORS = {
    DemandStatus.NOT_STARTED: '#94a3b8',
    DemandStatus.REQUEST_CALL: '#f97316',
    DemandStatus.IN_PROGRESS: '#3b82f6',
    DemandStatus.COMPLETED: '#10b981',
}

SI_STATUS_COLORS = {
    SIStatus.VIGENTE: '#10b981',
    SIStatus.EXPIRING: '#fbbf24',
    SIStatus.EXPIRED: '#ef4444',
    SIStatus.EXTENDED: '#3b82f6',
    SIStatus.CLOSED: '#64748b',
}

# Vencidas primeiro, encerradas por último
SI_STATUS_PRIORITY = {
    SIStatus.EXPIRED: 0,
    SIStatus.EXPIRING: 1,
    SIStatus.VIGENTE: 2,
    SIStatus.EXTENDED: 2,
    SIStatus.CLOSED: 3,
}


@dataclass(frozen=True)
class DemandStats:
    total: int
    completed: int
    pending: int
    overdue: int


@dataclass(frozen=True)
class SIStats:
    total: int
    active: int
    expiring: int
    expired: int
    closed: int


def is_overdue(demand: Demand, today: date) -> bool:
    """Display-only projection: deadline already passed and demand not completed."""
    if demand.status == DemandStatus.COMPLETED:
        return False
    deadline = parse_calendar_date(demand.deadline)
    return deadline is not None and deadline < today


def _parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    """Parses an ISO timestamp into a naive local datetime."""
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _created_sort_key(demand: Demand) -> datetime:
    return _parse_timestamp(demand.created_at or demand.opening_date) or datetime.min


def time_ago_label(created_at: Optional[str], now: datetime) -> str:
    """'Criado há 5m' style label; empty when the timestamp is missing or unreadable."""
    created = _parse_timestamp(created_at)
    if created is None:
        return ""
    seconds = int((now - created).total_seconds())
    if seconds < 60:
        return "Criado há pouco"
    minutes = seconds // 60
    if minutes < 60:
        return f"Criado há {minutes}m"
    hours = minutes // 60
    if hours < 24:
        return f"Criado há {hours}h"
    return f"Criado há {hours // 24}d"


def completion_report_text(demand: Demand) -> str:
    """Closing message shared after a demand is completed."""
    return f"🔧 MANUTENÇÃO CONCLUÍDA\nDescrição: {demand.description}\nOS: {demand.service_order}"


def filter_demands(demands: Iterable[Demand], today: date, search: str = "", status: str = "",
                   difficulty: str = "", location: str = "") -> List[Demand]:
    """
    Filters demands the way the list screen does and sorts them newest first.

    ``status`` accepts a DemandStatus value or the PENDING/OVERDUE shortcuts.
    """
    result = list(demands)
    if search:
        term = search.lower()
        result = [d for d in result if term in d.service_order.lower() or term in d.description.lower()]
    if status:
        if status == PENDING_FILTER:
            result = [d for d in result if d.status != DemandStatus.COMPLETED]
        elif status == OVERDUE_FILTER:
            result = [d for d in result if is_overdue(d, today)]
        else:
            result = [d for d in result if d.status.value == status]
    if difficulty:
        result = [d for d in result if d.difficulty.value == difficulty]
    if location:
        result = [d for d in result if d.location == location]
    return sorted(result, key=_created_sort_key, reverse=True)


def filter_sis(sis: Iterable[SI], demands: Sequence[Demand], search: str = "", status: str = "",
               location: str = "") -> List[SI]:
    """Filters SIs; most urgent first, then by effective expiration date."""
    orders = {d.id: d.service_order for d in demands}
    result = list(sis)
    if search:
        term = search.lower()
        result = [s for s in result
                  if term in s.number.lower()
                  or term in s.description.lower()
                  or term in orders.get(s.demand_id or "", "").lower()]
    if status:
        result = [s for s in result if s.status.value == status]
    if location:
        result = [s for s in result if s.location == location]

    def sort_key(si: SI):
        expiration = effective_expiration_date(si) or date.max
        return SI_STATUS_PRIORITY[si.status], expiration

    return sorted(result, key=sort_key)


def linked_service_order(si: SI, demands: Sequence[Demand]) -> Optional[str]:
    if not si.demand_id:
        return None
    demand = next((d for d in demands if d.id == si.demand_id), None)
    return demand.service_order if demand else "Demanda não encontrada"


def demand_stats(demands: Sequence[Demand], today: date) -> DemandStats:
    completed = sum(1 for d in demands if d.status == DemandStatus.COMPLETED)
    return DemandStats(
        total=len(demands),
        completed=completed,
        pending=len(demands) - completed,
        overdue=sum(1 for d in demands if is_overdue(d, today)),
    )


def si_stats(sis: Sequence[SI]) -> SIStats:
    def count(*statuses: SIStatus) -> int:
        return sum(1 for s in sis if s.status in statuses)

    return SIStats(
        total=len(sis),
        active=count(SIStatus.VIGENTE, SIStatus.EXTENDED),
        expiring=count(SIStatus.EXPIRING),
        expired=count(SIStatus.EXPIRED),
        closed=count(SIStatus.CLOSED),
    )


def chart_data(values: Iterable[str], colors: Dict) -> pd.DataFrame:
    """Counts per category in enum order, dropping empty categories."""
    counts = pd.Series(list(values), dtype="object").value_counts()
    rows = [{"name": key.value, "value": int(counts.get(key.value, 0)), "color": color}
            for key, color in colors.items()]
    df = pd.DataFrame(rows, columns=["name", "value", "color"])
    return df[df["value"] > 0].reset_index(drop=True)


def sis_by_location(sis: Sequence[SI]) -> pd.DataFrame:
    if not sis:
        return pd.DataFrame(columns=["name", "value"])
    counts = pd.Series([s.location for s in sis]).value_counts()
    return counts.rename_axis("name").reset_index(name="value")
