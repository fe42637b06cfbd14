"""
Normalizador de identificadores de tags NFC.

Convierte UIDs crudos (`04:a1:b2...`, `04-A1-B2...`, con espacios) a su forma
canónica: hexadecimal en mayúsculas, sin separadores, de 14 a 20 caracteres.
"""
import re

from core.errors import InvalidIdentifier

_SEPARATORS = re.compile(r"[:\s-]")
_HEX_UID = re.compile(r"^[0-9A-F]{14,20}$")


def normalize_identifier(raw: str | None) -> str:
    """Devuelve el UID canónico o lanza `InvalidIdentifier`."""
    if not raw:
        raise InvalidIdentifier("El UID de la tag NFC es obligatorio")
    normalized = _SEPARATORS.sub("", raw).upper()
    if not _HEX_UID.match(normalized):
        raise InvalidIdentifier(f"Formato de UID inválido: {raw!r}")
    return normalized


def is_valid_identifier(raw: str | None) -> bool:
    try:
        normalize_identifier(raw)
    except InvalidIdentifier:
        return False
    return True


class DemoAllowList:
    """Lista explícita de UIDs de demostración (exentos de firma y contador)."""
    def __init__(self, identifiers=()):
        self.identifiers = frozenset(normalize_identifier(uid) for uid in identifiers)

    def __contains__(self, normalized_uid: str) -> bool:
        return normalized_uid in self.identifiers
