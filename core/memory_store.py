"""
Registro de tags en memoria (tests y demos).

Cada tag tiene su propio `threading.Lock`; la comparación y la escritura del
contador se hacen bajo ese lock, adquirido con timeout acotado.
"""
import threading
from dataclasses import replace
from typing import Optional

from core.errors import StorageUnavailable
from core.records import ScanEvent, TagRecord


class InMemoryTagStore:
    """Implementación de `TagStore` sobre un diccionario uid -> `TagRecord`."""
    def __init__(self, records=(), timeout: float = 5.0):
        self.timeout = timeout
        self._records: dict[str, TagRecord] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        for record in records:
            self.add(record)

    def add(self, record: TagRecord) -> None:
        """Registra una tag nueva; el UID debe venir ya normalizado."""
        with self._registry_lock:
            if record.identifier in self._records:
                raise ValueError(f"Tag {record.identifier} ya registrada")
            self._records[record.identifier] = record
            self._locks[record.identifier] = threading.Lock()

    def _acquire(self, identifier: str) -> Optional[threading.Lock]:
        lock = self._locks.get(identifier)
        if lock is None:
            return None
        if not lock.acquire(timeout=self.timeout):
            raise StorageUnavailable(f"Timeout esperando el registro {identifier}")
        return lock

    def find_by_identifier(self, identifier: str) -> Optional[TagRecord]:
        lock = self._acquire(identifier)
        if lock is None:
            return None
        try:
            return self._records[identifier]
        finally:
            lock.release()

    def compare_and_update(self, identifier: str, expected_counter: int,
                           new_counter: int, event: ScanEvent) -> bool:
        lock = self._acquire(identifier)
        if lock is None:
            return False
        try:
            current = self._records[identifier]
            if current.scan_counter != expected_counter:
                return False
            self._records[identifier] = replace(
                current,
                scan_counter=new_counter,
                scan_history=current.scan_history + (event,),
                updated_at=event.timestamp,
            )
            return True
        finally:
            lock.release()
