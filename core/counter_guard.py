"""
Control de contador monótono por tag (anti-replay).
"""
from typing import Optional

from core.errors import InvalidCounter, ReplaySuspected

# Límite de la columna `scan_count` (BIGINT con signo)
MAX_SCAN_COUNTER = 2**63 - 1


def check_counter(stored: int, supplied: int) -> int:
    """Acepta `supplied` sólo si es estrictamente mayor que `stored`."""
    if supplied > MAX_SCAN_COUNTER:
        raise InvalidCounter(f"contador {supplied} fuera de rango")
    if supplied <= stored:
        raise ReplaySuspected(stored=stored, supplied=supplied)
    return supplied


def next_counter(stored: int, supplied: Optional[int], waived: bool) -> int:
    """Valor a persistir tras una lectura aceptada.

    Las tags exentas (confiables/demo) siempre avanzan de uno en uno; el resto
    adopta el contador presentado o, sin contador, `stored + 1`.
    """
    if waived or supplied is None:
        return stored + 1
    return check_counter(stored, supplied)
