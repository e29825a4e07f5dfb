from datetime import date, timedelta

from demandplus.models.demanda import Demand
from demandplus.models.si import SI, SIStatus

TODAY = date(2025, 3, 10)


def iso(days_from_today: int) -> str:
    return (TODAY + timedelta(days=days_from_today)).isoformat()


def make_si(**overrides) -> SI:
    data = {
        "id": "si-1",
        "number": "SI-2025-0145",
        "location": "SE SOB",
        "issue_date": iso(-30),
        "expiration_date": iso(10),
        "responsible": "Carlos Lima",
        "status": SIStatus.VIGENTE,
    }
    data.update(overrides)
    return SI(**data)


def make_demand(**overrides) -> Demand:
    data = {
        "id": "dem-1",
        "opening_date": iso(-5),
        "created_at": "2025-03-05T08:00:00",
        "deadline": iso(5),
        "location": "SE SOB",
        "service_order": "OS-1001",
        "description": "Substituição de disjuntor do vão 04",
    }
    data.update(overrides)
    return Demand(**data)
