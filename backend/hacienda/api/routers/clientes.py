from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from ...dependencies import get_db
from ...security.auth import require_permission
from ...security.context import RequestContext
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.dtos import ClienteIn, ClienteUpdate, PrecioIn
from ...application.services_clientes import ClientesService, serializar_cliente
from ...application.montos import a_float

router = APIRouter(prefix="/clientes", tags=["clientes"])


def _precio_out(p) -> dict:
    return {
        "cliente_id": p.cliente_id,
        "producto_id": p.producto_id,
        "producto_nombre": p.producto.nombre if p.producto else None,
        "precio": a_float(p.precio),
    }


@router.get("")
def listar_clientes(
    buscar: Optional[str] = Query(None),
    incluir_inactivos: bool = Query(False),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("clientes.view")),
):
    """Clientes aprobados con su adeudo actual."""
    return ClientesService(UnitOfWork(db)).listar(buscar=buscar, incluir_inactivos=incluir_inactivos)


@router.post("", status_code=201)
def crear_cliente(
    payload: ClienteIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("clientes.create")),
):
    uow = UnitOfWork(db)
    cliente = ClientesService(uow).crear(payload, ctx)
    uow.commit()
    return serializar_cliente(cliente)


@router.get("/pendientes")
def clientes_pendientes(
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("clientes.aprobar")),
):
    """Registros de clientes en espera de aprobación."""
    return [serializar_cliente(c) for c in ClientesService(UnitOfWork(db)).pendientes()]


@router.get("/{cliente_id}")
def obtener_cliente(
    cliente_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("clientes.view")),
):
    return serializar_cliente(ClientesService(UnitOfWork(db)).obtener(cliente_id))


@router.put("/{cliente_id}")
def actualizar_cliente(
    cliente_id: int,
    payload: ClienteUpdate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("clientes.edit")),
):
    uow = UnitOfWork(db)
    cliente = ClientesService(uow).actualizar(cliente_id, payload)
    uow.commit()
    return serializar_cliente(cliente)


@router.delete("/{cliente_id}")
def desactivar_cliente(
    cliente_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("clientes.edit")),
):
    uow = UnitOfWork(db)
    ClientesService(uow).desactivar(cliente_id)
    uow.commit()
    return {"message": "Cliente desactivado"}


@router.post("/{cliente_id}/aprobar")
def aprobar_cliente(
    cliente_id: int,
    sucursal_id: Optional[int] = Body(None, embed=True),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("clientes.aprobar")),
):
    uow = UnitOfWork(db)
    cliente = ClientesService(uow).aprobar(cliente_id, ctx, sucursal_id=sucursal_id)
    uow.commit()
    return serializar_cliente(cliente)


@router.post("/{cliente_id}/rechazar")
def rechazar_cliente(
    cliente_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("clientes.aprobar")),
):
    uow = UnitOfWork(db)
    cliente = ClientesService(uow).rechazar(cliente_id, ctx)
    uow.commit()
    return serializar_cliente(cliente)


# ===== precios especiales =====

@router.get("/{cliente_id}/precios")
def precios_cliente(
    cliente_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("clientes.view")),
):
    return [_precio_out(p) for p in ClientesService(UnitOfWork(db)).listar_precios(cliente_id)]


@router.put("/{cliente_id}/precio/{producto_id}")
def fijar_precio_cliente(
    cliente_id: int,
    producto_id: int,
    payload: PrecioIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("clientes.edit")),
):
    uow = UnitOfWork(db)
    precio = ClientesService(uow).fijar_precio(cliente_id, producto_id, payload.precio)
    uow.commit()
    return _precio_out(precio)


@router.delete("/{cliente_id}/precio/{producto_id}")
def eliminar_precio_cliente(
    cliente_id: int,
    producto_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("clientes.edit")),
):
    uow = UnitOfWork(db)
    ClientesService(uow).eliminar_precio(cliente_id, producto_id)
    uow.commit()
    return {"message": "Precio especial eliminado"}
