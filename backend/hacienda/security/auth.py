from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session, selectinload

from ..config import settings
from ..dependencies import get_db
from ..domain.models import Usuario
from .context import RequestContext
from .permissions import permisos_de

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def create_access_token(data: dict, expires_minutes: int = settings.access_token_expire_minutes):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm="HS256")
    return encoded_jwt


def client_ip(request: Request) -> Optional[str]:
    return (
        request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
        or request.headers.get("X-Real-IP")
        or (request.client.host if request.client else None)
    )


def get_current_user(db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)) -> Usuario:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=["HS256"])
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido")
    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=401, detail="Credenciales inválidas")
    user = (
        db.query(Usuario)
        .options(selectinload(Usuario.roles_extra))
        .filter(Usuario.email == email)
        .first()
    )
    if not user or not user.activo:
        raise HTTPException(status_code=401, detail="Usuario no encontrado")
    return user


def build_context(user: Usuario, ip_address: Optional[str] = None) -> RequestContext:
    roles = tuple(user.roles)
    return RequestContext(
        usuario_id=user.id,
        nombre=user.nombre,
        rol=user.rol,
        roles=roles,
        permisos=permisos_de(roles),
        sucursal_id=user.sucursal_id,
        ip_address=ip_address,
        cliente_id=user.cliente_id,
    )


def get_request_context(request: Request, user: Usuario = Depends(get_current_user)) -> RequestContext:
    return build_context(user, client_ip(request))


def require_permission(permiso: str):
    """Dependencia: exige un permiso de la tabla ROLE_PERMISSIONS y devuelve el contexto."""
    def _dependency(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        if not ctx.puede(permiso):
            raise HTTPException(status_code=403, detail="No tiene permisos para esta operación")
        return ctx
    return _dependency
