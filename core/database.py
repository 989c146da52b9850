# core/database.py
import logging
import re
from datetime import date
from functools import lru_cache
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from config.settings import get_settings

logger = logging.getLogger(__name__)

# Columns the SLA evaluation needs from the guides table
SLA_COLUMNS = "tipoDeGuia,situacaoSla,reguladaAutomaticamente,reguladores,dataRegulacao"

# PostgREST filter syntax characters that cannot appear in a search term
_FILTER_SYNTAX = re.compile(r"[,()*%]")


class DataSourceError(RuntimeError):
    """A read against the database failed."""


@lru_cache
def get_client() -> Client:
    settings = get_settings()
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


def _table(name: str):
    try:
        return get_client().table(name)
    except Exception as e:
        logger.exception("Cannot connect to %s: %s", name, e)
        raise DataSourceError(f"Failed to connect to {name}: {e}") from e


def _date_range(query, column: str, start_date: Optional[date], end_date: Optional[date]):
    # Dates are stored as ISO text; only a complete range is applied
    if start_date and end_date:
        query = query.gte(column, start_date.isoformat()).lte(column, f"{end_date.isoformat()}T23:59:59")
    return query


def _run(query, source: str) -> List[Dict[str, Any]]:
    try:
        response = query.execute()
    except Exception as e:
        logger.exception("Query on %s failed: %s", source, e)
        raise DataSourceError(f"Failed to read {source}: {e}") from e
    rows = response.data or []
    logger.info("Loaded %d rows from %s", len(rows), source)
    return rows


def fetch_audit_documents(start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[Dict[str, Any]]:
    settings = get_settings()
    query = _table(settings.AUDIT_TABLE).select("*")
    query = _date_range(query, "auditoria->>dataAuditoria", start_date, end_date)
    return _run(query.limit(settings.MAX_RECORDS), settings.AUDIT_TABLE)


def fetch_guides(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    exclude_cancelled: bool = True,
) -> List[Dict[str, Any]]:
    """Regulation guides, newest first, optionally filtered by free text."""
    settings = get_settings()
    query = _table(settings.GUIDES_TABLE).select("*")
    query = _date_range(query, "dataRegulacao", start_date, end_date)
    if exclude_cancelled:
        query = query.neq("statusRegulacao", "CANCELADA")
    term = _FILTER_SYNTAX.sub("", search or "").strip()
    if term:
        query = query.or_(f"autorizacaoGuia.ilike.*{term}*,prestador.ilike.*{term}*")
    query = query.order("dataRegulacao", desc=True).limit(settings.MAX_RECORDS)
    return _run(query, settings.GUIDES_TABLE)


def fetch_guides_for_sla(start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[Dict[str, Any]]:
    settings = get_settings()
    query = _table(settings.GUIDES_TABLE).select(SLA_COLUMNS)
    query = _date_range(query, "dataRegulacao", start_date, end_date)
    query = query.not_.is_("statusRegulacao", "null").limit(settings.MAX_RECORDS)
    return _run(query, settings.GUIDES_TABLE)


def fetch_billing_processes(production: Optional[str] = None) -> List[Dict[str, Any]]:
    """Billing processes of one production period ("MM/YYYY"), or all when omitted."""
    settings = get_settings()
    query = _table(settings.BILLING_TABLE).select("*")
    if production:
        query = query.eq("producao", production)
    return _run(query.limit(settings.MAX_RECORDS), settings.BILLING_TABLE)
