# modules/audit/routes.py
from fastapi import APIRouter, Query
from datetime import date
from typing import Optional
from modules.audit.service import run_audit_dashboard
from modules.audit.schemas import AuditDashboardResponse

router = APIRouter(prefix="/api/auditoria", tags=["Auditoria"])

@router.get("/dashboard", response_model=AuditDashboardResponse)
def get_audit_dashboard(
    start_date: Optional[date] = Query(None, alias="startDate", description="Audit date from (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, alias="endDate", description="Audit date to (YYYY-MM-DD)"),
):
    result = run_audit_dashboard(start_date, end_date)
    return AuditDashboardResponse(kpis=result["kpis"], charts=result["charts"])
