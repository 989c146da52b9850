# modules/regulation/schemas.py
from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional

class DeniedItem(BaseModel):
    code: str
    description: str
    quantity_requested: float
    quantity_authorized: float
    quantity_denied: float
    unit_price: float
    denied: float

class DeniedGuide(BaseModel):
    guide_number: str
    request_date: Optional[datetime] = None
    regulation_date: Optional[datetime] = None
    status: str
    provider: str
    total_denied: float
    items: List[DeniedItem]

class DeniedGuidesResponse(BaseModel):
    success: bool = True
    data: List[DeniedGuide]
    total: int

class ProcedureDenial(BaseModel):
    code: str
    description: str
    denied: float
    occurrences: int

class ProviderDenial(BaseModel):
    provider: str
    denied: float
    claims: int

class GuideTypeDenial(BaseModel):
    guide_type: str
    denied: float
    claims: int

class DenialStatistics(BaseModel):
    total_denied: float
    claim_count: int
    average_denial: float
    largest_denial: float
    top_procedures: List[ProcedureDenial]
    top_providers: List[ProviderDenial]
    guide_types: List[GuideTypeDenial]

class DenialStatisticsResponse(BaseModel):
    success: bool = True
    data: DenialStatistics

class GuideTypeSla(BaseModel):
    guide_type: str
    total: int
    compliant: int
    non_compliant: int
    compliance_pct: float

class WeeklySla(BaseModel):
    week: str
    total: int
    compliant: int
    non_compliant: int
    compliance_pct: float

class HandlerSla(BaseModel):
    name: str
    automated: bool
    total: int
    compliant: int
    non_compliant: int
    compliance_pct: float

class AutomationShare(BaseModel):
    handler_class: str
    label: str
    count: int
    share_pct: float

class AutomationWeek(BaseModel):
    week: str
    ai: int
    robotic: int
    others: int

class SlaPerformance(BaseModel):
    total: int
    compliant: int
    compliance_pct: float
    by_guide_type: List[GuideTypeSla]
    weekly_trend: List[WeeklySla]
    handlers: List[HandlerSla]
    automation_share: List[AutomationShare]
    automation_timeline: List[AutomationWeek]

class SlaPerformanceResponse(BaseModel):
    success: bool = True
    data: SlaPerformance

class RegulationDashboard(BaseModel):
    statistics: DenialStatistics
    sla: SlaPerformance

class RegulationDashboardResponse(BaseModel):
    success: bool = True
    data: RegulationDashboard

class QueueStatus(BaseModel):
    queue: str
    request_type: str
    priority: str
    success: bool
    error: Optional[str] = None
    partial: bool = False
    count: int = 0
    compliant: int = 0
    compliance_pct: Optional[float] = None
    status: Optional[str] = None
    overdue: List[str] = []
    approaching: List[str] = []

class LiveSla(BaseModel):
    generated_at: datetime
    queues: List[QueueStatus]

class LiveSlaResponse(BaseModel):
    success: bool = True
    data: LiveSla
