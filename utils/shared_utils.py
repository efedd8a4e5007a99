import json
import logging
from datetime import datetime, timezone
from typing import Optional, Any, Dict, Iterable, List

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for the BaaS (ISO-8601, UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp as returned by the BaaS. Returns None if unparseable."""
    if value is None or isinstance(value, datetime):
        return value
    try:
        # Postgres emits "Z" or "+00:00"; fromisoformat on older Pythons rejects "Z"
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def index_by_id(rows: Iterable[Dict[str, Any]]) -> Dict[Any, Dict[str, Any]]:
    return {row["id"]: row for row in rows}


def unique_values(rows: Iterable[Dict[str, Any]], key: str) -> List[Any]:
    """Distinct non-null values of ``key`` in insertion order."""
    seen = []
    for row in rows:
        value = row.get(key)
        if value is not None and value not in seen:
            seen.append(value)
    return seen


def log_endpoint_event(endpoint: str, subject_id: Optional[str] = None, result: str = "success", details: Optional[dict] = None):
    """Log endpoint execution to app.log"""
    logger.info(f"{endpoint} | subject={subject_id or 'none'} | {result} | {json.dumps(details or {}, default=str)}")
