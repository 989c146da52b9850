# main.py
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from config.settings import get_settings
from core.database import DataSourceError

# === IMPORT ALL ROUTERS ===
from modules.audit.routes import router as audit_router
from modules.regulation.routes import router as regulation_router
from modules.billing.routes import router as billing_router

load_dotenv()
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Claims Analytics API",
    version="1.0.0",
    description="Auditoria • Regulação • Faturamento"
)

# === CORS: Allow dashboards to call the API ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DataSourceError)
async def data_source_error_handler(request: Request, exc: DataSourceError):
    logger.error("Request %s failed: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


# === INCLUDE ROUTERS ===
app.include_router(audit_router)
app.include_router(regulation_router)
app.include_router(billing_router)


@app.get("/")
async def root():
    return {
        "message": "Claims Analytics API",
        "endpoints": {
            "auditoria": ["/api/auditoria/dashboard"],
            "regulacao": [
                "/api/regulacao/guias-negadas",
                "/api/regulacao/estatisticas",
                "/api/regulacao/sla-desempenho",
                "/api/regulacao/dashboard",
                "/api/regulacao/sla-tempo-real",
            ],
            "faturamento": [
                "/api/faturamento/estatisticas",
                "/api/faturamento/processos-analisados",
            ],
        },
    }


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "database": bool(settings.SUPABASE_URL),
        "queue_api": bool(settings.QUEUE_API_BASE_URL),
    }


# === Run with uvicorn ===
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
