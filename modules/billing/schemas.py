# modules/billing/schemas.py
from pydantic import BaseModel
from typing import List

class BillingKpis(BaseModel):
    total_presented: float
    total_released: float
    total_denied: float
    count: int

class StatusStat(BaseModel):
    status: str
    total_value: float
    quantity: int

class StatusCardStat(BaseModel):
    card: str
    quantity: int
    value: float
    pct: float

class ProviderDenial(BaseModel):
    provider: str
    denied: float

class ProviderVolume(BaseModel):
    provider: str
    presented: float

class TreatmentStat(BaseModel):
    treatment: str
    total_value: float
    quantity: int

class ProductivityStat(BaseModel):
    responsible: str
    total_value: float
    quantity: int

class BillingData(BaseModel):
    kpis: BillingKpis
    status_stats: List[StatusStat]
    status_cards: List[StatusCardStat]
    top_denied_providers: List[ProviderDenial]
    top_volume_providers: List[ProviderVolume]
    treatments: List[TreatmentStat]
    productivity: List[ProductivityStat]

class BillingResponse(BaseModel):
    success: bool = True
    data: BillingData

class AnalysisProgress(BaseModel):
    total_processes: int
    analyzed_processes: int
    analyzed_pct: float

class AnalysisProgressResponse(BaseModel):
    success: bool = True
    data: AnalysisProgress
