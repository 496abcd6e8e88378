"""
Router del Portal de Clientes

Endpoints (usuario con rol cliente, ya aprobado):
- GET/PUT /cliente/perfil                 - Perfil y crédito / datos de contacto
- GET     /cliente/inicio                 - Resumen del mes y últimos pedidos
- GET     /cliente/productos              - Productos con el precio del cliente
- GET/POST /cliente/pedidos               - Pedidos propios / levantar pedido
- GET     /cliente/pedidos/{id}           - Detalle con abonos
- POST    /cliente/pedidos/{id}/cancelar  - Solo pendientes
- GET     /cliente/adeudo                 - Pedidos con saldo y crédito disponible
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...dependencies import get_db
from ...security.auth import require_permission
from ...security.context import RequestContext
from ...domain.enums import EstadoPedido
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.dtos import PedidoClienteIn, PerfilClienteUpdate
from ...application.services_portal import PortalClienteService

router = APIRouter(prefix="/cliente", tags=["portal cliente"])


@router.get("/perfil")
def perfil(
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("portal.view")),
):
    return PortalClienteService(UnitOfWork(db)).perfil(ctx)


@router.put("/perfil")
def actualizar_perfil(
    payload: PerfilClienteUpdate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("portal.view")),
):
    uow = UnitOfWork(db)
    perfil = PortalClienteService(uow).actualizar_perfil(payload, ctx)
    uow.commit()
    return perfil


@router.get("/inicio")
def inicio(
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("portal.view")),
):
    return PortalClienteService(UnitOfWork(db)).inicio(ctx)


@router.get("/productos")
def productos(
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("portal.view")),
):
    return PortalClienteService(UnitOfWork(db)).productos(ctx)


@router.get("/pedidos")
def listar_pedidos(
    estado: Optional[EstadoPedido] = Query(None),
    fecha: Optional[date] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("portal.view")),
):
    service = PortalClienteService(UnitOfWork(db))
    total, items = service.listar_pedidos(ctx, estado=estado, fecha=fecha, limit=limit, offset=offset)
    return {"total": total, "items": [service.serializar_pedido(p, incluir_abonos=False) for p in items]}


@router.post("/pedidos", status_code=201)
def crear_pedido(
    payload: PedidoClienteIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("portal.pedidos")),
):
    uow = UnitOfWork(db)
    service = PortalClienteService(uow)
    pedido, credito = service.crear_pedido(payload, ctx)
    uow.commit()
    return {"pedido": service.serializar_pedido(pedido, incluir_abonos=False), "credito": credito}


@router.get("/pedidos/{pedido_id}")
def obtener_pedido(
    pedido_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("portal.view")),
):
    service = PortalClienteService(UnitOfWork(db))
    return service.serializar_pedido(service.obtener_pedido(pedido_id, ctx))


@router.post("/pedidos/{pedido_id}/cancelar")
def cancelar_pedido(
    pedido_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("portal.pedidos")),
):
    uow = UnitOfWork(db)
    service = PortalClienteService(uow)
    pedido = service.cancelar_pedido(pedido_id, ctx)
    uow.commit()
    return service.serializar_pedido(pedido, incluir_abonos=False)


@router.get("/adeudo")
def adeudo(
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("portal.view")),
):
    return PortalClienteService(UnitOfWork(db)).adeudo(ctx)
