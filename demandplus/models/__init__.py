from demandplus.models.demanda import Demand, DemandStatus, Difficulty
from demandplus.models.si import LOCATIONS, SI, SIStatus

__all__ = ["Demand", "DemandStatus", "Difficulty", "LOCATIONS", "SI", "SIStatus"]
