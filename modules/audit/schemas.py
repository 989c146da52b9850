# modules/audit/schemas.py
from pydantic import BaseModel
from typing import List, Optional

class AuditKpis(BaseModel):
    total_submitted: float
    total_denied: float
    total_approved: float
    claim_count: int
    average_length_of_stay: float
    average_cost: float
    average_denial: float
    denial_rate_pct: float

class ProviderDenial(BaseModel):
    provider: str
    denied: float
    submitted: float
    claims: int

class AuditorDenial(BaseModel):
    auditor: str
    denied: float
    claims: int

class ProcedureDenial(BaseModel):
    code: str
    description: str
    denied: float
    occurrences: int

class CategoryBreakdown(BaseModel):
    category: str
    label: str
    submitted: float
    denied: float
    approved: float
    denial_share_pct: float

class DenialReason(BaseModel):
    reason: str
    denied: float

class MonthlyPoint(BaseModel):
    month: str
    submitted: float
    denied: float
    claims: int

class StayCostPoint(BaseModel):
    length_of_stay: int
    submitted: float
    specialty: Optional[str] = None

class AuditCharts(BaseModel):
    providers: List[ProviderDenial]
    auditors: List[AuditorDenial]
    procedures: List[ProcedureDenial]
    categories: List[CategoryBreakdown]
    reasons: List[DenialReason]
    monthly: List[MonthlyPoint]
    scatter: List[StayCostPoint]

class AuditDashboardResponse(BaseModel):
    success: bool = True
    kpis: AuditKpis
    charts: AuditCharts
