"""
Detección heurística de patrones de clonación sobre el historial de lecturas.

El veredicto sólo anota la respuesta; nunca invalida una verificación.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from core.records import ScanEvent

BURST_WINDOW = timedelta(seconds=60)
BURST_MAX_SCANS = 5
IP_WINDOW = timedelta(hours=24)
IP_MAX_DISTINCT = 10

BURST_REASON = "too many scans in under one minute"
IP_DIVERSITY_REASON = "too many distinct source IPs in 24 hours"


@dataclass(frozen=True)
class CloneVerdict:
    suspicious: bool
    reason: Optional[str] = None


def _within(events, now: datetime, window: timedelta):
    return [e for e in events if now - e.timestamp < window]


def detect_clone_pattern(history: Iterable[ScanEvent], now: datetime) -> CloneVerdict:
    """Evalúa ráfagas (>5 en 1 min) y diversidad de IPs (>10 en 24 h)."""
    events = list(history)
    if len(events) < 2:
        return CloneVerdict(suspicious=False)

    if len(_within(events, now, BURST_WINDOW)) > BURST_MAX_SCANS:
        return CloneVerdict(suspicious=True, reason=BURST_REASON)

    distinct_ips = {e.ip_address for e in _within(events, now, IP_WINDOW) if e.ip_address}
    if len(distinct_ips) > IP_MAX_DISTINCT:
        return CloneVerdict(suspicious=True, reason=IP_DIVERSITY_REASON)

    return CloneVerdict(suspicious=False)
