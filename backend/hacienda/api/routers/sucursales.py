from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...dependencies import get_db
from ...security.auth import require_permission
from ...security.context import RequestContext
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.dtos import PrecioIn, SucursalIn, SucursalUpdate
from ...application.services_catalogos import CatalogosService, serializar_sucursal
from ...application.montos import a_float

router = APIRouter(prefix="/sucursales", tags=["sucursales"])


@router.get("")
def listar_sucursales(
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("sucursales.view")),
):
    return [serializar_sucursal(s) for s in CatalogosService(UnitOfWork(db)).listar_sucursales()]


@router.post("", status_code=201)
def crear_sucursal(
    payload: SucursalIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("sucursales.edit")),
):
    uow = UnitOfWork(db)
    sucursal = CatalogosService(uow).crear_sucursal(payload)
    uow.commit()
    return serializar_sucursal(sucursal)


@router.put("/{sucursal_id}")
def actualizar_sucursal(
    sucursal_id: int,
    payload: SucursalUpdate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("sucursales.edit")),
):
    uow = UnitOfWork(db)
    sucursal = CatalogosService(uow).actualizar_sucursal(sucursal_id, payload)
    uow.commit()
    return serializar_sucursal(sucursal)


@router.get("/{sucursal_id}/precios")
def precios_sucursal(
    sucursal_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("sucursales.view")),
):
    """Precios por sucursal (tienen prioridad sobre el precio de lista)."""
    return [
        {
            "producto_id": p.producto_id,
            "producto_nombre": p.producto.nombre if p.producto else None,
            "precio": a_float(p.precio),
        }
        for p in CatalogosService(UnitOfWork(db)).precios_sucursal(sucursal_id)
    ]


@router.put("/{sucursal_id}/precio/{producto_id}")
def fijar_precio_sucursal(
    sucursal_id: int,
    producto_id: int,
    payload: PrecioIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("sucursales.edit")),
):
    uow = UnitOfWork(db)
    precio = CatalogosService(uow).fijar_precio_sucursal(sucursal_id, producto_id, payload.precio)
    uow.commit()
    return {"sucursal_id": sucursal_id, "producto_id": producto_id, "precio": a_float(precio.precio)}
