"""
Tipos de error del verificador de tags.

Cada excepción lleva un `ErrorKind` que la capa HTTP traduce a un código de
estado, y un par `error`/`details` público. Los rechazos de seguridad
(`FORBIDDEN`) comparten el mismo `details` genérico y nunca se reintentan.
"""
from enum import Enum


class ErrorKind(str, Enum):
    BAD_REQUEST = "BadRequest"
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    UNAVAILABLE = "Unavailable"
    INTERNAL = "Internal"


HTTP_STATUS = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.UNAVAILABLE: 503,
    ErrorKind.INTERNAL: 500,
}

FORBIDDEN_DETAILS = "No fue posible confirmar la autenticidad de este producto. Contacte al soporte."


class VerificationError(Exception):
    """Error base; `kind` clasifica el fallo para la respuesta."""
    kind = ErrorKind.INTERNAL
    public_error = "Error interno del servidor"
    public_details = "Ocurrió un error al procesar su solicitud. Intente nuevamente en unos instantes."

    def __init__(self, message: str = ""):
        super().__init__(message or self.public_error)
        self.message = message or self.public_error


class InvalidIdentifier(VerificationError):
    kind = ErrorKind.BAD_REQUEST
    public_error = "Formato de UID inválido"
    public_details = "El UID proporcionado no tiene el formato correcto."


class TagNotFound(VerificationError):
    kind = ErrorKind.NOT_FOUND
    public_error = "Tag NFC no registrada en el sistema"
    public_details = "Este producto no se encuentra en nuestra base de datos."


class TagInactive(VerificationError):
    kind = ErrorKind.FORBIDDEN
    public_error = "Producto bloqueado o retirado"
    public_details = FORBIDDEN_DETAILS


class InvalidSignature(VerificationError):
    kind = ErrorKind.FORBIDDEN
    public_error = "Firma criptográfica inválida"
    public_details = FORBIDDEN_DETAILS


class ReplaySuspected(VerificationError):
    kind = ErrorKind.FORBIDDEN
    public_error = "Contador de lecturas inválido, posible clon"
    public_details = FORBIDDEN_DETAILS

    def __init__(self, stored: int, supplied: int):
        super().__init__(f"contador {supplied} <= almacenado {stored}")
        self.stored = stored
        self.supplied = supplied


class InvalidCounter(VerificationError):
    kind = ErrorKind.BAD_REQUEST
    public_error = "Contador fuera de rango"
    public_details = "El contador enviado por la tag no es válido."


class MissingSecret(VerificationError):
    kind = ErrorKind.INTERNAL


class MissingSignature(VerificationError):
    kind = ErrorKind.BAD_REQUEST
    public_error = "Firma no proporcionada"
    public_details = "La solicitud no incluye la firma de la tag."


class StorageUnavailable(VerificationError):
    """Timeout o conflictos agotados en el almacenamiento."""
    kind = ErrorKind.UNAVAILABLE
    public_error = "Servicio temporalmente no disponible"
    public_details = "No fue posible acceder al registro de productos. Intente nuevamente."
