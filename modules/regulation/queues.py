# modules/regulation/queues.py
"""Live SLA status of requests still waiting in the regulation queues.

The third-party regulation platform exposes pending requests through a
paginated REST API behind a bearer token. Each logical queue (request type x
priority class) is fetched in its own worker thread; a failure in one queue
is reported for that queue only.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import pandas as pd
import requests

from config.settings import Settings
from core.aggregation import pct
from core.records import first_present, normalize_text, parse_number

logger = logging.getLogger(__name__)

PENDING_STATUSES = frozenset({"EM_ANALISE", "EM_REANALISE"})

HEALTHY_PCT = 98.0
WARNING_PCT = 90.0
UNKNOWN_STATUS = "unknown"


class QueueAuthError(RuntimeError):
    """The token endpoint refused us or answered something unusable."""


class PriorityClass(str, Enum):
    ELECTIVE = "ELETIVA"
    URGENT = "URGENCIA"


# Words of the free-text queue name that identify its priority class.
# Names with none of these words are treated as elective.
PRIORITY_KEYWORDS: Dict[str, PriorityClass] = {
    "eletiva": PriorityClass.ELECTIVE,
    "eletivo": PriorityClass.ELECTIVE,
    "eletivas": PriorityClass.ELECTIVE,
    "urgencia": PriorityClass.URGENT,
    "urgente": PriorityClass.URGENT,
    "urgencias": PriorityClass.URGENT,
    "emergencia": PriorityClass.URGENT,
    "emergencial": PriorityClass.URGENT,
}
DEFAULT_PRIORITY = PriorityClass.ELECTIVE


def infer_priority(queue_name: Any) -> PriorityClass:
    words = normalize_text(queue_name).replace("_", " ").replace("/", " ").replace("-", " ").split()
    for word in words:
        if word in PRIORITY_KEYWORDS:
            return PRIORITY_KEYWORDS[word]
    return DEFAULT_PRIORITY


def normalize_status(status: Any) -> str:
    return normalize_text(status).upper().replace(" ", "_")


def _utc(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    try:
        ts = pd.to_datetime(value, errors="coerce", utc=True)
    except (TypeError, ValueError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


@dataclass(frozen=True)
class QueueConfig:
    request_type: str
    priority: PriorityClass
    allowed_hours: float
    alert_hours: float

    @property
    def name(self) -> str:
        return f"{self.request_type}_{self.priority.value}"


def build_queues(settings: Settings) -> List[QueueConfig]:
    """Every configured request type crossed with both priority classes."""
    hours = {
        PriorityClass.ELECTIVE: (settings.ELECTIVE_SLA_HOURS, settings.ELECTIVE_ALERT_HOURS),
        PriorityClass.URGENT: (settings.URGENT_SLA_HOURS, settings.URGENT_ALERT_HOURS),
    }
    return [
        QueueConfig(request_type, priority, *hours[priority])
        for request_type in settings.QUEUE_REQUEST_TYPES
        for priority in PriorityClass
    ]


def item_deadline(item: Dict[str, Any], queue: QueueConfig) -> Optional[datetime]:
    explicit = _utc(first_present(item.get("prazoSla"), item.get("dataLimiteSla")))
    if explicit is not None:
        return explicit
    submitted = _utc(first_present(item.get("dataSolicitacao"), item.get("dataCriacao")))
    if submitted is None:
        return None
    return submitted + timedelta(hours=queue.allowed_hours)


def traffic_light(compliance_pct: float) -> str:
    if compliance_pct >= HEALTHY_PCT:
        return "healthy"
    if compliance_pct >= WARNING_PCT:
        return "warning"
    return "critical"


def evaluate_queue(items: List[Dict[str, Any]], queue: QueueConfig, now: datetime) -> Dict[str, Any]:
    """Count pending items of `queue` and split them into overdue / approaching."""
    alert = timedelta(hours=queue.alert_hours)
    count = 0
    overdue = []
    approaching = []
    for item in items:
        if normalize_status(item.get("status")) not in PENDING_STATUSES:
            continue
        if infer_priority(first_present(item.get("fila"), item.get("nomeFila"))) is not queue.priority:
            continue
        deadline = item_deadline(item, queue)
        if deadline is None:
            logger.debug("Queue %s: item without usable dates skipped", queue.name)
            continue
        identifier = str(first_present(item.get("numeroGuia"), item.get("protocolo"), item.get("id"), default="N/A"))
        count += 1
        remaining = deadline - now
        if remaining <= timedelta(0):
            overdue.append(identifier)
        elif remaining <= alert:
            approaching.append(identifier)

    compliant = count - len(overdue)
    # nothing pending means nothing late
    compliance_pct = pct(compliant, count) if count else 100.0
    return {
        "queue": queue.name,
        "request_type": queue.request_type,
        "priority": queue.priority.value,
        "count": count,
        "compliant": compliant,
        "compliance_pct": compliance_pct,
        "status": traffic_light(compliance_pct),
        "overdue": overdue,
        "approaching": approaching,
    }


def _failure(queue: QueueConfig, error: str) -> Dict[str, Any]:
    return {
        "queue": queue.name,
        "request_type": queue.request_type,
        "priority": queue.priority.value,
        "success": False,
        "error": error,
    }


class QueueApiClient:
    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        page_size: int = 100,
        page_delay: float = 0.3,
        timeout: float = 30.0,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.page_size = page_size
        self.page_delay = page_delay
        self.timeout = timeout
        self.session_factory = session_factory

    @classmethod
    def from_settings(cls, settings: Settings) -> "QueueApiClient":
        return cls(
            settings.QUEUE_API_BASE_URL,
            settings.QUEUE_API_USERNAME,
            settings.QUEUE_API_PASSWORD,
            page_size=settings.QUEUE_PAGE_SIZE,
            page_delay=settings.QUEUE_PAGE_DELAY_SECONDS,
            timeout=settings.QUEUE_HTTP_TIMEOUT,
        )

    def authenticate(self, session: requests.Session) -> str:
        try:
            r = session.post(
                f"{self.base_url}/auth/token",
                json={"username": self.username, "password": self.password},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise QueueAuthError(f"Token request failed: {e}") from e
        if not r.ok:
            raise QueueAuthError(f"Token endpoint returned HTTP {r.status_code}")
        try:
            payload = r.json()
        except ValueError as e:
            raise QueueAuthError("Token endpoint returned a non-JSON body") from e
        token = first_present(payload.get("access_token"), payload.get("token")) if isinstance(payload, dict) else None
        if not isinstance(token, str):
            raise QueueAuthError("Token endpoint response has no token")
        return token

    def fetch_items(
        self, session: requests.Session, token: str, queue: QueueConfig
    ) -> Tuple[List[Dict[str, Any]], bool]:
        """All pages of a request type; the flag is True when pagination stopped early."""
        items: List[Dict[str, Any]] = []
        page = 0
        total_pages = 1
        while page < total_pages:
            if page:
                time.sleep(self.page_delay)
            try:
                r = session.get(
                    f"{self.base_url}/solicitacoes",
                    params={"tipo": queue.request_type, "page": page, "size": self.page_size},
                    headers={"Authorization": f"Bearer {token}"},
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                logger.warning("Queue %s: page %d failed (%s), keeping %d items", queue.name, page, e, len(items))
                return items, True
            if not r.ok:
                logger.warning("Queue %s: page %d returned HTTP %d, keeping %d items",
                               queue.name, page, r.status_code, len(items))
                return items, True
            try:
                payload = r.json()
            except ValueError:
                payload = None
            if not isinstance(payload, dict):
                logger.warning("Queue %s: page %d is not a JSON object, keeping %d items", queue.name, page, len(items))
                return items, True
            items.extend(entry for entry in payload.get("content") or [] if isinstance(entry, dict))
            total_pages = int(parse_number(payload.get("totalPages"), default=1))
            page += 1
        return items, False

    def queue_status(self, queue: QueueConfig, now: Optional[datetime] = None) -> Dict[str, Any]:
        # one session per call; sessions are not shared between worker threads
        with self.session_factory() as session:
            try:
                token = self.authenticate(session)
            except QueueAuthError as e:
                logger.error("Queue %s: authentication failed: %s", queue.name, e)
                return _failure(queue, str(e))
            items, partial = self.fetch_items(session, token, queue)
        status = evaluate_queue(items, queue, now or datetime.now(timezone.utc))
        if partial and not items:
            # nothing was read, so there is no basis for a traffic light
            status.update(compliance_pct=None, status=UNKNOWN_STATUS)
        return {**status, "success": True, "partial": partial, "error": None}


async def fetch_live_sla(
    client: QueueApiClient,
    queues: List[QueueConfig],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    results = await asyncio.gather(
        *(asyncio.to_thread(client.queue_status, queue, now) for queue in queues),
        return_exceptions=True,
    )
    queue_results = []
    for queue, result in zip(queues, results):
        if isinstance(result, Exception):
            logger.error("Queue %s: fetch failed: %s", queue.name, result)
            queue_results.append(_failure(queue, str(result)))
        else:
            queue_results.append(result)
    return {"generated_at": now.isoformat(), "queues": queue_results}
