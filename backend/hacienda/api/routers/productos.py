from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...dependencies import get_db
from ...security.auth import require_permission
from ...security.context import RequestContext
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.dtos import ProductoIn, ProductoUpdate
from ...application.services_catalogos import CatalogosService, serializar_producto

router = APIRouter(prefix="/productos", tags=["productos"])


@router.get("")
def listar_productos(
    incluir_inactivos: bool = Query(False),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("productos.view")),
):
    return [serializar_producto(p) for p in CatalogosService(UnitOfWork(db)).listar_productos(incluir_inactivos)]


@router.post("", status_code=201)
def crear_producto(
    payload: ProductoIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("productos.edit")),
):
    uow = UnitOfWork(db)
    producto = CatalogosService(uow).crear_producto(payload)
    uow.commit()
    return serializar_producto(producto)


@router.put("/{producto_id}")
def actualizar_producto(
    producto_id: int,
    payload: ProductoUpdate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("productos.edit")),
):
    uow = UnitOfWork(db)
    producto = CatalogosService(uow).actualizar_producto(producto_id, payload)
    uow.commit()
    return serializar_producto(producto)
