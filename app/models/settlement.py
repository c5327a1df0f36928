from pydantic import BaseModel
from typing import Optional

class SettlementSummary(BaseModel):
    """Virement Square résumé pour la page financière (montants en dollars)"""
    id: str
    date: Optional[str] = None
    status: Optional[str] = None
    grossSales: float = 0.0
    tax: float = 0.0
    fees: float = 0.0
    deposited: float = 0.0
