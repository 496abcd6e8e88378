"""
Router de Pagos de clientes

Endpoints:
- POST /pagos                          - Pago a un pedido o a la deuda del cliente
- GET  /pagos/clientes-con-deuda       - Clientes con saldo pendiente
- GET  /pagos/clientes/{id}/resumen    - Deuda, crédito disponible y pedidos pendientes
- GET  /pagos/clientes/{id}/historial  - Pagos del cliente
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...dependencies import get_db
from ...security.auth import require_permission
from ...security.context import RequestContext
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.dtos import PagoIn
from ...application.services_abonos import AbonosService

router = APIRouter(prefix="/pagos", tags=["pagos"])


@router.post("", status_code=201)
def registrar_pago(
    payload: PagoIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pagos.create")),
):
    """
    Registra un pago.

    - Con pedido_id: se aplica completo a ese pedido (no puede exceder su saldo)
    - Solo cliente_id: se reparte del pedido más antiguo al más reciente
      (no puede exceder la deuda total)
    """
    uow = UnitOfWork(db)
    resumen = AbonosService(uow).registrar_pago(
        payload.monto,
        ctx,
        tipo=payload.tipo,
        pedido_id=payload.pedido_id,
        cliente_id=payload.cliente_id,
        notas=payload.notas,
        fecha=payload.fecha,
    )
    uow.commit()
    return resumen


@router.get("/clientes-con-deuda")
def clientes_con_deuda(
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pagos.view")),
):
    return AbonosService(UnitOfWork(db)).clientes_con_deuda()


@router.get("/clientes/{cliente_id}/resumen")
def resumen_deuda_cliente(
    cliente_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pagos.view")),
):
    return AbonosService(UnitOfWork(db)).resumen_deuda_cliente(cliente_id)


@router.get("/clientes/{cliente_id}/historial")
def historial_pagos_cliente(
    cliente_id: int,
    desde: Optional[date] = Query(None),
    hasta: Optional[date] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("pagos.view")),
):
    return AbonosService(UnitOfWork(db)).historial_pagos_cliente(cliente_id, desde, hasta, limit)
