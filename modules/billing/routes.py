# modules/billing/routes.py
from fastapi import APIRouter, Query
from typing import Optional
from modules.billing.service import run_billing_analysis, run_analysis_progress
from modules.billing.schemas import BillingResponse, AnalysisProgressResponse

router = APIRouter(prefix="/api/faturamento", tags=["Faturamento"])

@router.get("/estatisticas", response_model=BillingResponse)
def get_billing_statistics(
    producao: Optional[str] = Query(None, description="Production period (MM/YYYY or YYYY-MM)")
):
    return BillingResponse(data=run_billing_analysis(producao))

@router.get("/processos-analisados", response_model=AnalysisProgressResponse)
def get_analysis_progress(
    producao: Optional[str] = Query(None, description="Production period (MM/YYYY or YYYY-MM)")
):
    return AnalysisProgressResponse(data=run_analysis_progress(producao))
