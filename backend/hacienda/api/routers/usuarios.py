from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...dependencies import get_db
from ...security.auth import require_permission
from ...security.context import RequestContext
from ...domain.enums import UserRole
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.dtos import UsuarioIn, UsuarioUpdate
from ...application.errors import ValidacionError
from ...application.services_catalogos import CatalogosService, serializar_usuario

router = APIRouter(prefix="/usuarios", tags=["usuarios"])


@router.get("")
def listar_usuarios(
    rol: Optional[UserRole] = Query(None),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("usuarios.view")),
):
    """Usuarios internos (las cuentas de cliente se gestionan desde /clientes)."""
    return [serializar_usuario(u) for u in CatalogosService(UnitOfWork(db)).listar_usuarios(rol)]


@router.post("", status_code=201)
def crear_usuario(
    payload: UsuarioIn,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("usuarios.edit")),
):
    uow = UnitOfWork(db)
    usuario = CatalogosService(uow).crear_usuario(payload)
    uow.commit()
    return serializar_usuario(usuario)


@router.put("/{usuario_id}")
def actualizar_usuario(
    usuario_id: int,
    payload: UsuarioUpdate,
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(require_permission("usuarios.edit")),
):
    # No permitir que un admin se quite a sí mismo el acceso
    if usuario_id == ctx.usuario_id and (payload.activo is False or (payload.rol is not None and payload.rol != UserRole.ADMIN)):
        raise ValidacionError("No puede desactivarse ni quitarse el rol de administrador a sí mismo")
    uow = UnitOfWork(db)
    usuario = CatalogosService(uow).actualizar_usuario(usuario_id, payload)
    uow.commit()
    return serializar_usuario(usuario)
