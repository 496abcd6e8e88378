import logging
from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from ...dependencies import get_db
from ...security.auth import (
    create_access_token, get_password_hash, verify_password, get_current_user, client_ip, build_context,
)
from ...domain.models import Usuario
from ...domain.enums import UserRole
from ...config import settings
from ...application.dtos import RegistroClienteIn
from ...application.services_clientes import ClientesService
from ...infrastructure.unit_of_work import UnitOfWork

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/login")
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """
    Endpoint de autenticación (username = email).

    En desarrollo, permite crear el usuario admin automáticamente si no existe.
    En producción, requiere que el usuario ya exista.
    """
    email = form_data.username.strip().lower()
    user = db.query(Usuario).filter(Usuario.email == email).first()
    if not user:
        # Solo permitir bootstrap admin en desarrollo
        if settings.is_development and email == settings.admin_email.lower() and form_data.password == settings.admin_pass:
            user = Usuario(
                nombre="Administrador",
                email=email,
                password_hash=get_password_hash(settings.admin_pass),
                rol=UserRole.ADMIN.value,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            logger.info("Usuario admin creado en primer login (desarrollo)")
        else:
            # No dar información sobre si el usuario existe o no
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Usuario/clave inválidos"
            )

    if not user.activo or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuario/clave inválidos"
        )

    if user.rol == UserRole.CLIENTE.value and not (user.cliente and user.cliente.aprobado):
        raise HTTPException(status_code=403, detail="Su cuenta está pendiente de aprobación")

    token = create_access_token({"sub": user.email})
    logger.info("Login exitoso: %s desde %s", user.email, client_ip(request))
    return {"access_token": token, "token_type": "bearer"}

@router.get("/me")
def me(request: Request, current_user: Usuario = Depends(get_current_user)):
    ctx = build_context(current_user, client_ip(request))
    return {
        "id": current_user.id,
        "nombre": current_user.nombre,
        "email": current_user.email,
        "rol": current_user.rol,
        "roles": list(ctx.roles),
        "permisos": sorted(ctx.permisos),
        "sucursal_id": current_user.sucursal_id,
        "cliente_id": current_user.cliente_id,
    }

@router.post("/registro-cliente", status_code=201)
def registro_cliente(payload: RegistroClienteIn, db: Session = Depends(get_db)):
    """Auto-registro de cliente. Queda pendiente hasta que un administrador lo apruebe."""
    uow = UnitOfWork(db)
    usuario = ClientesService(uow).registrar(payload)
    uow.commit()
    return {
        "message": "Registro recibido. Un administrador revisará su cuenta.",
        "usuario_id": usuario.id,
        "cliente_id": usuario.cliente_id,
    }
