"""
Errores de negocio
==================

- ValidacionError: datos faltantes o mal formados (400)
- NoEncontradoError: el recurso no existe (404)
- ConflictoEstadoError: el estado actual no permite la operación (409)
- PermisoDenegadoError: el usuario no puede operar sobre el recurso (403)

Ninguno se silencia: el handler de main.py los convierte en {"detail": mensaje}
y la sesión se deshace.
"""


class HaciendaError(Exception):
    """Excepción base para errores de negocio"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidacionError(HaciendaError):
    status_code = 400


class NoEncontradoError(HaciendaError):
    status_code = 404


class PermisoDenegadoError(HaciendaError):
    status_code = 403


class ConflictoEstadoError(HaciendaError):
    status_code = 409


class TransicionInvalidaError(ConflictoEstadoError):
    """Cambio de estado no permitido para el pedido"""
    pass


class MontoExcedeSaldoError(ConflictoEstadoError):
    """El monto supera el saldo pendiente del pedido"""
    pass


class MontoExcedeDeudaError(ConflictoEstadoError):
    """El monto supera la deuda total del cliente"""
    pass


class CorteCerradoError(ConflictoEstadoError):
    """El corte ya fue cerrado y es de solo lectura"""
    pass
