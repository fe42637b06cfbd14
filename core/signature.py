"""
Verificación de firmas HMAC-SHA256 emitidas por las tags.

La tag firma `"<uid>:<contador>"` con su clave; el servidor recalcula la firma
con el secreto almacenado y compara en tiempo constante.
"""
import hashlib
import hmac

from core.errors import MissingSecret, MissingSignature


def signature_message(identifier: str, counter) -> bytes:
    """Mensaje firmado; un contador ausente se serializa como cadena vacía."""
    counter_text = "" if counter is None else str(counter)
    return f"{identifier}:{counter_text}".encode("utf-8")


def compute_signature(secret: str, identifier: str, counter) -> str:
    """Firma hexadecimal (minúsculas) de `identifier:counter` con `secret`."""
    if not secret:
        raise MissingSecret("La tag no tiene secreto registrado")
    return hmac.new(
        secret.encode("utf-8"),
        signature_message(identifier, counter),
        hashlib.sha256,
    ).hexdigest()


def verify_signature(secret: str, identifier: str, counter, signature: str) -> bool:
    """True si `signature` coincide; nunca lanza por desajuste de valores.

    `identifier` es el UID tal como lo envió el cliente, sin normalizar.
    """
    if not signature:
        raise MissingSignature("Firma no proporcionada")
    expected = compute_signature(secret, identifier, counter)
    return hmac.compare_digest(
        expected.encode("ascii"),
        signature.encode("utf-8"),
    )


def hash_secret_key(raw_key: str) -> str:
    """Valor almacenado para la clave entregada al registrar la tag."""
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()
