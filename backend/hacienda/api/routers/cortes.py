"""
Router de Cortes de Sucursal

Endpoints:
- GET/POST      /cortes                 - Listar / crear corte del día
- GET/PUT/DELETE /cortes/{id}
- POST          /cortes/{id}/finalizar  - Calcula venta total y completa el corte
- POST          /cortes/{id}/gastos     - Agregar gasto
- PUT/DELETE    /gastos/{id}
- GET/POST      /categorias-gasto
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...dependencies import get_db
from ...security.auth import require_permission
from ...security.context import RequestContext
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.dtos import CategoriaGastoIn, CorteIn, CorteUpdate, GastoIn, GastoUpdate
from ...application.services_cortes import CortesService, serializar_corte_sucursal
from ...application.montos import a_float

router = APIRouter(tags=["cortes"])


def _gasto_out(g) -> dict:
    return {
        "id": g.id,
        "corte_id": g.corte_id,
        "categoria_id": g.categoria_id,
        "descripcion": g.descripcion,
        "monto": a_float(g.monto),
    }


@router.get("/cortes")
def listar_cortes(
    sucursal_id: Optional[int] = Query(None),
    desde: Optional[date] = Query(None),
    hasta: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes.view")),
):
    cortes = CortesService(UnitOfWork(db)).listar(ctx, sucursal_id=sucursal_id, desde=desde, hasta=hasta)
    return [serializar_corte_sucursal(c, incluir_gastos=False) for c in cortes]


@router.post("/cortes", status_code=201)
def crear_corte(
    payload: CorteIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes.create")),
):
    uow = UnitOfWork(db)
    corte = CortesService(uow).crear(payload, ctx)
    uow.commit()
    return serializar_corte_sucursal(corte)


@router.get("/cortes/{corte_id}")
def obtener_corte(
    corte_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes.view")),
):
    return serializar_corte_sucursal(CortesService(UnitOfWork(db)).obtener(corte_id, ctx))


@router.put("/cortes/{corte_id}")
def actualizar_corte(
    corte_id: int,
    payload: CorteUpdate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes.edit")),
):
    uow = UnitOfWork(db)
    corte = CortesService(uow).actualizar(corte_id, payload, ctx)
    uow.commit()
    return serializar_corte_sucursal(corte)


@router.delete("/cortes/{corte_id}")
def eliminar_corte(
    corte_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes.edit")),
):
    uow = UnitOfWork(db)
    CortesService(uow).eliminar(corte_id, ctx)
    uow.commit()
    return {"message": "Corte eliminado"}


@router.post("/cortes/{corte_id}/finalizar")
def finalizar_corte(
    corte_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes.edit")),
):
    uow = UnitOfWork(db)
    corte = CortesService(uow).finalizar(corte_id, ctx)
    uow.commit()
    return serializar_corte_sucursal(corte)


# ===== gastos =====

@router.post("/cortes/{corte_id}/gastos", status_code=201)
def agregar_gasto(
    corte_id: int,
    payload: GastoIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes.edit")),
):
    uow = UnitOfWork(db)
    gasto = CortesService(uow).agregar_gasto(corte_id, payload, ctx)
    uow.commit()
    return _gasto_out(gasto)


@router.put("/gastos/{gasto_id}")
def actualizar_gasto(
    gasto_id: int,
    payload: GastoUpdate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes.edit")),
):
    uow = UnitOfWork(db)
    gasto = CortesService(uow).actualizar_gasto(gasto_id, payload, ctx)
    uow.commit()
    return _gasto_out(gasto)


@router.delete("/gastos/{gasto_id}")
def eliminar_gasto(
    gasto_id: int,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes.edit")),
):
    uow = UnitOfWork(db)
    CortesService(uow).eliminar_gasto(gasto_id, ctx)
    uow.commit()
    return {"message": "Gasto eliminado"}


# ===== categorías =====

@router.get("/categorias-gasto")
def listar_categorias(
    incluir_inactivas: bool = Query(False),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("cortes.view")),
):
    return [
        {"id": c.id, "nombre": c.nombre, "tipo": c.tipo, "activa": c.activa}
        for c in CortesService(UnitOfWork(db)).listar_categorias(incluir_inactivas)
    ]


@router.post("/categorias-gasto", status_code=201)
def crear_categoria(
    payload: CategoriaGastoIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("categorias.edit")),
):
    uow = UnitOfWork(db)
    categoria = CortesService(uow).crear_categoria(payload)
    uow.commit()
    return {"id": categoria.id, "nombre": categoria.nombre, "tipo": categoria.tipo, "activa": categoria.activa}
