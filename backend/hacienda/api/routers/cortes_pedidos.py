"""
Router de Corte de Pedidos (cierre de caja del repartidor)

Las líneas del cierre (entregas cobradas y abonos del día) se calculan en el
servidor. El cliente solo envía las marcas recibido / no recibido.
"""
from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ...dependencies import get_db
from ...security.auth import require_permission
from ...security.context import RequestContext
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.dtos import CierreIn
from ...application.services_cortes_pedidos import CortesPedidosService, serializar_corte

router = APIRouter(prefix="/cortes-pedidos", tags=["cortes-pedidos"])
logger = logging.getLogger(__name__)


@router.get("/historial")
def historial_cierres(
    mes: Optional[int] = Query(None, ge=1, le=12),
    anio: Optional[int] = Query(None, ge=2000),
    repartidor_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes_pedidos.view")),
):
    cortes = CortesPedidosService(UnitOfWork(db)).historial(ctx, mes=mes, anio=anio, repartidor_id=repartidor_id)
    return [serializar_corte(c) for c in cortes]


@router.get("/cierre/{fecha}/{repartidor_id}")
def detalle_cierre(
    fecha: date,
    repartidor_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes_pedidos.view")),
):
    """Líneas del cierre con sus marcas y totales esperado / recibido / diferencia."""
    return CortesPedidosService(UnitOfWork(db)).obtener_detalle_cierre(fecha, repartidor_id, ctx)


@router.post("/cierre/{fecha}/{repartidor_id}/borrador")
def guardar_borrador(
    fecha: date,
    repartidor_id: int,
    payload: CierreIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes_pedidos.close")),
):
    uow = UnitOfWork(db)
    service = CortesPedidosService(uow)
    service.guardar_borrador(fecha, repartidor_id, payload.detalles, payload.notas_generales, ctx)
    uow.commit()
    return service.obtener_detalle_cierre(fecha, repartidor_id, ctx)


@router.post("/cierre/{fecha}/{repartidor_id}")
def confirmar_cierre(
    fecha: date,
    repartidor_id: int,
    payload: CierreIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes_pedidos.close")),
):
    """
    Confirma el cierre de caja. Una vez completado no se puede volver a cerrar
    ni modificar.
    """
    uow = UnitOfWork(db)
    service = CortesPedidosService(uow)
    service.confirmar_cierre(fecha, repartidor_id, payload.detalles, payload.notas_generales, ctx)
    uow.commit()
    return service.obtener_detalle_cierre(fecha, repartidor_id, ctx)


@router.get("/ticket/{fecha}/{repartidor_id}")
def ticket_cierre(
    fecha: date,
    repartidor_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes_pedidos.view")),
):
    return CortesPedidosService(UnitOfWork(db)).datos_ticket(fecha, repartidor_id, ctx)


@router.get("/ticket/{fecha}/{repartidor_id}/pdf")
def ticket_cierre_pdf(
    fecha: date,
    repartidor_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes_pedidos.view")),
):
    buffer = CortesPedidosService(UnitOfWork(db)).ticket_pdf(fecha, repartidor_id, ctx)
    contenido = buffer.getvalue()
    logger.info("Ticket de cierre %s repartidor=%s generado (%s bytes)", fecha, repartidor_id, len(contenido))
    return Response(
        content=contenido,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="cierre_{fecha.isoformat()}_{repartidor_id}.pdf"',
            "Content-Length": str(len(contenido)),
        },
    )
