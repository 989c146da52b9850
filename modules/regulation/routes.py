# modules/regulation/routes.py
from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from datetime import date
from typing import Optional
from config.settings import get_settings
from modules.regulation.service import (
    run_denied_guides, run_denial_statistics, run_sla_performance, run_regulation_dashboard
)
from modules.regulation.queues import QueueApiClient, build_queues, fetch_live_sla
from modules.regulation.schemas import (
    DeniedGuidesResponse, DenialStatisticsResponse, SlaPerformanceResponse,
    RegulationDashboardResponse, LiveSlaResponse
)

router = APIRouter(prefix="/api/regulacao", tags=["Regulacao"])

@router.get("/guias-negadas", response_model=DeniedGuidesResponse)
def get_denied_guides(
    search: Optional[str] = Query(None, description="Guide number or provider"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
):
    guides = run_denied_guides(search, start_date, end_date)
    return DeniedGuidesResponse(data=guides, total=len(guides))

@router.get("/estatisticas", response_model=DenialStatisticsResponse)
def get_denial_statistics(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
):
    return DenialStatisticsResponse(data=run_denial_statistics(start_date, end_date))

@router.get("/sla-desempenho", response_model=SlaPerformanceResponse)
def get_sla_performance(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
):
    return SlaPerformanceResponse(data=run_sla_performance(start_date, end_date))

@router.get("/dashboard", response_model=RegulationDashboardResponse)
async def get_regulation_dashboard(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
):
    statistics, sla = await run_regulation_dashboard(start_date, end_date)
    return RegulationDashboardResponse(data={"statistics": statistics, "sla": sla})

@router.get("/sla-tempo-real", response_model=LiveSlaResponse)
async def get_live_sla():
    settings = get_settings()
    if not settings.QUEUE_API_BASE_URL:
        return JSONResponse(
            status_code=503,
            content={"success": False, "error": "Queue API is not configured."},
        )
    client = QueueApiClient.from_settings(settings)
    return LiveSlaResponse(data=await fetch_live_sla(client, build_queues(settings)))
