"""
Tipos de dominio del registro de tags y contrato del almacenamiento.

`TagRecord` y `ScanEvent` son inmutables: el historial sólo crece mediante
`TagStore.compare_and_update`, nunca editando un registro en sitio.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol


def utc_now() -> datetime:
    """Reloj por defecto: `datetime` UTC con zona horaria."""
    return datetime.now(timezone.utc)


Clock = Callable[[], datetime]


@dataclass(frozen=True)
class ScanEvent:
    """Lectura aceptada de una tag."""
    timestamp: datetime
    location: str
    ip_address: str = ""
    user_agent: str = ""


@dataclass(frozen=True)
class ScanContext:
    """Datos del cliente ya resueltos por la capa HTTP (IP y user-agent)."""
    ip_address: str = "Unknown"
    user_agent: str = "Unknown"


@dataclass(frozen=True)
class TagRecord:
    identifier: str
    product_id: str
    secret: Optional[str] = None
    scan_counter: int = 0
    active: bool = True
    trusted_source: bool = False
    scan_history: tuple[ScanEvent, ...] = field(default_factory=tuple)
    product_name: Optional[str] = None
    batch_number: Optional[str] = None
    manufacturing_location: Optional[str] = None
    manufacturing_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def last_scan(self) -> Optional[ScanEvent]:
        return self.scan_history[-1] if self.scan_history else None


class TagStore(Protocol):
    """Colaborador de almacenamiento consultado por el verificador.

    Ambas operaciones pueden lanzar `StorageUnavailable` al agotar su timeout.
    """

    def find_by_identifier(self, identifier: str) -> Optional[TagRecord]:
        ...

    def compare_and_update(
        self,
        identifier: str,
        expected_counter: int,
        new_counter: int,
        event: ScanEvent,
    ) -> bool:
        """Aplica contador+evento sólo si el contador sigue en `expected_counter`.

        Devuelve False en caso de conflicto (otra lectura ganó la carrera).
        """
        ...
