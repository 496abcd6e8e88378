"""
Router de Pedidos

Endpoints:
- GET/POST /pedidos                      - Listar / crear
- GET/PUT  /pedidos/{id}                 - Detalle / editar (solo pendientes)
- POST     /pedidos/{id}/preparar|despachar|entregar|cancelar
- POST     /pedidos/{id}/notas           - Agregar nota
- POST     /pedidos/{id}/sucursal-ocupada, /pedidos/{id}/tomar
- GET/POST /pedidos/{id}/abonos          - Abonos del pedido
- GET      /pedidos/{id}/historial       - Historial (más reciente primero)
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from ...dependencies import get_db
from ...security.auth import require_permission
from ...security.context import RequestContext
from ...domain.enums import EstadoPedido
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.dtos import AbonoPedidoIn, EntregaIn, NotaIn, PedidoIn, PedidoUpdate, TomarPedidoIn
from ...application.services_pedidos import PedidosService, serializar_pedido
from ...application.services_abonos import AbonosService, serializar_abono
from ...application.services_historial import listar_historial

router = APIRouter(prefix="/pedidos", tags=["pedidos"])


@router.get("")
def listar_pedidos(
    fecha: Optional[date] = Query(None),
    estado: Optional[EstadoPedido] = Query(None),
    cliente_id: Optional[int] = Query(None),
    repartidor_id: Optional[int] = Query(None),
    sucursal_id: Optional[int] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.view")),
):
    total, items = PedidosService(UnitOfWork(db)).listar(
        ctx, fecha=fecha, estado=estado, cliente_id=cliente_id,
        repartidor_id=repartidor_id, sucursal_id=sucursal_id, limit=limit, offset=offset,
    )
    return {"total": total, "items": [serializar_pedido(p) for p in items]}


@router.post("", status_code=201)
def crear_pedido(
    payload: PedidoIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.create")),
):
    uow = UnitOfWork(db)
    pedido = PedidosService(uow).crear(payload, ctx)
    uow.commit()
    return serializar_pedido(pedido)


@router.get("/resumen-dia")
def resumen_dia(
    fecha: Optional[date] = Query(None, description="Por defecto hoy"),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.view")),
):
    return PedidosService(UnitOfWork(db)).resumen_dia(fecha or date.today(), ctx)


@router.get("/repartos-pendientes")
def repartos_pendientes(
    fecha: Optional[date] = Query(None, description="Por defecto hoy"),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.view")),
):
    return PedidosService(UnitOfWork(db)).repartos_pendientes(fecha or date.today(), ctx)


@router.get("/repartidores")
def listar_repartidores(
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.view")),
):
    return [
        {"id": u.id, "nombre": u.nombre, "sucursal_id": u.sucursal_id}
        for u in PedidosService(UnitOfWork(db)).listar_repartidores()
    ]


@router.get("/{pedido_id}")
def obtener_pedido(
    pedido_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.view")),
):
    return serializar_pedido(PedidosService(UnitOfWork(db)).obtener(pedido_id, ctx))


@router.put("/{pedido_id}")
def actualizar_pedido(
    pedido_id: int,
    payload: PedidoUpdate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.edit")),
):
    uow = UnitOfWork(db)
    pedido = PedidosService(uow).actualizar(pedido_id, payload, ctx)
    uow.commit()
    return serializar_pedido(pedido)


# ===== transiciones =====

@router.post("/{pedido_id}/preparar")
def preparar_pedido(
    pedido_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.estado")),
):
    uow = UnitOfWork(db)
    pedido = PedidosService(uow).preparar(pedido_id, ctx)
    uow.commit()
    return serializar_pedido(pedido)


@router.post("/{pedido_id}/despachar")
def despachar_pedido(
    pedido_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.estado")),
):
    uow = UnitOfWork(db)
    pedido = PedidosService(uow).despachar(pedido_id, ctx)
    uow.commit()
    return serializar_pedido(pedido)


@router.post("/{pedido_id}/entregar")
def entregar_pedido(
    pedido_id: int,
    payload: EntregaIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.entregar")),
):
    """
    Confirma la entrega.

    Valida:
    - El pedido no está entregado ni cancelado
    - Hay monto cobrado o una observación que justifique la entrega sin pago
    - El cobro no excede el saldo pendiente
    """
    uow = UnitOfWork(db)
    pedido = PedidosService(uow).entregar(pedido_id, payload, ctx)
    uow.commit()
    return serializar_pedido(pedido)


@router.post("/{pedido_id}/cancelar")
def cancelar_pedido(
    pedido_id: int,
    motivo: Optional[str] = Body(None, embed=True),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.estado")),
):
    uow = UnitOfWork(db)
    pedido = PedidosService(uow).cancelar(pedido_id, ctx, motivo)
    uow.commit()
    return serializar_pedido(pedido)


@router.post("/{pedido_id}/notas")
def agregar_nota(
    pedido_id: int,
    payload: NotaIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.edit")),
):
    uow = UnitOfWork(db)
    pedido = PedidosService(uow).agregar_nota(pedido_id, payload.nota, ctx)
    uow.commit()
    return serializar_pedido(pedido)


@router.post("/{pedido_id}/sucursal-ocupada")
def marcar_sucursal_ocupada(
    pedido_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.tomar")),
):
    uow = UnitOfWork(db)
    pedido = PedidosService(uow).marcar_sucursal_ocupada(pedido_id, ctx)
    uow.commit()
    return serializar_pedido(pedido)


@router.post("/{pedido_id}/tomar")
def tomar_pedido(
    pedido_id: int,
    payload: TomarPedidoIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.tomar")),
):
    uow = UnitOfWork(db)
    pedido = PedidosService(uow).tomar_pedido(pedido_id, payload.sucursal_id, ctx)
    uow.commit()
    return serializar_pedido(pedido)


# ===== abonos e historial =====

@router.get("/{pedido_id}/abonos")
def listar_abonos(
    pedido_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pagos.view")),
):
    return [serializar_abono(a) for a in AbonosService(UnitOfWork(db)).listar_abonos_pedido(pedido_id, ctx)]


@router.post("/{pedido_id}/abonos", status_code=201)
def registrar_abono(
    pedido_id: int,
    payload: AbonoPedidoIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pagos.create")),
):
    uow = UnitOfWork(db)
    resumen = AbonosService(uow).registrar_pago(
        payload.monto, ctx, tipo=payload.tipo, pedido_id=pedido_id, notas=payload.notas, fecha=payload.fecha,
    )
    uow.commit()
    return resumen


@router.get("/{pedido_id}/historial")
def historial_pedido(
    pedido_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pedidos.view")),
):
    """Historial del pedido, solo lectura."""
    PedidosService(UnitOfWork(db)).obtener(pedido_id, ctx)
    return listar_historial(db, pedido_id)
