"""
Historial de Pedidos
====================
Registro inmutable de cada acción sobre un pedido.
- Se escribe en la MISMA sesión que la operación: si el historial falla,
  la operación completa se deshace (no hay movimientos de dinero sin rastro)
- Solo INSERT, prohibido UPDATE/DELETE
"""
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session, joinedload

from ..domain.enums import AccionHistorial
from ..domain.models_historial import HistorialPedido
from ..security.context import RequestContext

ACCION_LABELS: Dict[str, str] = {
    AccionHistorial.CREADO.value: "Pedido creado",
    AccionHistorial.EDITADO.value: "Pedido editado",
    AccionHistorial.ESTADO_PENDIENTE.value: "Cambió a Pendiente",
    AccionHistorial.ESTADO_PREPARADO.value: "Cambió a Preparado",
    AccionHistorial.ESTADO_EN_CAMINO.value: "Cambió a En Camino",
    AccionHistorial.ESTADO_ENTREGADO.value: "Cambió a Entregado",
    AccionHistorial.ESTADO_CANCELADO.value: "Pedido cancelado",
    AccionHistorial.REPARTIDOR_ASIGNADO.value: "Repartidor asignado",
    AccionHistorial.REPARTIDOR_CAMBIADO.value: "Repartidor cambiado",
    AccionHistorial.PAGO_REGISTRADO.value: "Pago registrado",
    AccionHistorial.ABONO_REGISTRADO.value: "Abono registrado",
    AccionHistorial.NOTA_AGREGADA.value: "Nota agregada",
}


def registrar_historial(
    db: Session,
    pedido_id: int,
    accion: AccionHistorial,
    descripcion: str,
    ctx: Optional[RequestContext] = None,
    datos_anteriores: Optional[Dict[str, Any]] = None,
    datos_nuevos: Optional[Dict[str, Any]] = None,
) -> HistorialPedido:
    """Agrega una entrada al historial. Los errores se propagan al llamador."""
    entrada = HistorialPedido(
        pedido_id=pedido_id,
        usuario_id=ctx.usuario_id if ctx else None,
        accion=AccionHistorial(accion).value,
        descripcion=descripcion,
        datos_anteriores=datos_anteriores,
        datos_nuevos=datos_nuevos,
        ip_address=ctx.ip_address if ctx else None,
    )
    db.add(entrada)
    db.flush()
    return entrada


def listar_historial(db: Session, pedido_id: int) -> List[dict]:
    """Entradas del pedido, de la más reciente a la más antigua."""
    entradas = (
        db.query(HistorialPedido)
        .options(joinedload(HistorialPedido.usuario))
        .filter(HistorialPedido.pedido_id == pedido_id)
        .order_by(HistorialPedido.created_at.desc(), HistorialPedido.id.desc())
        .all()
    )
    return [
        {
            "id": e.id,
            "accion": e.accion,
            "accion_label": ACCION_LABELS.get(e.accion, e.accion),
            "descripcion": e.descripcion,
            "datos_anteriores": e.datos_anteriores,
            "datos_nuevos": e.datos_nuevos,
            "usuario_id": e.usuario_id,
            "usuario_nombre": e.usuario.nombre if e.usuario else "Sistema",
            "usuario_rol": e.usuario.rol if e.usuario else None,
            "ip_address": e.ip_address,
            "created_at": e.created_at.isoformat() if e.created_at else None,
        }
        for e in entradas
    ]
