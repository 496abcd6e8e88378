from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    ENCARGADO = "encargado"
    REPARTIDOR = "repartidor"
    ADMINISTRADOR_REPARTIDOR = "administrador_repartidor"
    INVITADO = "invitado"
    CLIENTE = "cliente"


class TipoSucursal(str, Enum):
    FISICA = "fisica"
    VIRTUAL = "virtual"


class EstadoPedido(str, Enum):
    PENDIENTE = "pendiente"
    PREPARADO = "preparado"
    EN_CAMINO = "en_camino"
    ENTREGADO = "entregado"
    CANCELADO = "cancelado"


class MetodoPago(str, Enum):
    EFECTIVO = "efectivo"
    TRANSFERENCIA = "transferencia"
    OTRO = "otro"


class OrigenAbono(str, Enum):
    ENTREGA = "entrega"  # cobrado al entregar
    ABONO = "abono"      # pago posterior, independiente de la entrega


class EstadoCorte(str, Enum):
    BORRADOR = "borrador"
    COMPLETADO = "completado"


class TipoDetalleCierre(str, Enum):
    ENTREGA = "entrega"
    ABONO = "abono"


class TipoGasto(str, Enum):
    OPERATIVO = "operativo"
    NOMINA = "nomina"


class AccionHistorial(str, Enum):
    CREADO = "creado"
    EDITADO = "editado"
    ESTADO_PENDIENTE = "estado_pendiente"
    ESTADO_PREPARADO = "estado_preparado"
    ESTADO_EN_CAMINO = "estado_en_camino"
    ESTADO_ENTREGADO = "estado_entregado"
    ESTADO_CANCELADO = "estado_cancelado"
    REPARTIDOR_ASIGNADO = "repartidor_asignado"
    REPARTIDOR_CAMBIADO = "repartidor_cambiado"
    PAGO_REGISTRADO = "pago_registrado"
    ABONO_REGISTRADO = "abono_registrado"
    NOTA_AGREGADA = "nota_agregada"


def valores(enum_cls) -> list[str]:
    return [e.value for e in enum_cls]


def check_in(columna: str, enum_cls) -> str:
    """Expresión SQL para CHECK (columna IN (...)) con los valores cerrados del enum."""
    lista = ", ".join(f"'{v}'" for v in valores(enum_cls))
    return f"{columna} IN ({lista})"
