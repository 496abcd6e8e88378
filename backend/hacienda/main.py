import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .db import init_db
from .api.routers import health, auth, pedidos, pagos, cortes_pedidos, clientes, productos, sucursales, usuarios, cortes, portal
from .application.errors import HaciendaError
from .infrastructure.logging_config import setup_logging
from .config import settings as app_settings

# Configurar logging al iniciar la aplicación
setup_logging()
logger = logging.getLogger(__name__)

# Inicializar BD (no fallar si la conexión no está configurada - primer arranque)
try:
    init_db()
except SQLAlchemyError as e:
    logger.warning("No se pudo inicializar la base de datos: %s. Puede requerir configuración inicial.", e)

app = FastAPI(
    title="La Hacienda - Pedidos y Cobranza",
    version="0.1.0",
    description="Pedidos, abonos de clientes y cierre de caja de repartidores",
    docs_url="/docs" if app_settings.is_development else None,  # Deshabilitar docs en producción
    redoc_url="/redoc" if app_settings.is_development else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if app_settings.environment == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


# ===== errores de negocio y de base de datos =====
# La sesión ya se revirtió en get_db antes de llegar aquí.

@app.exception_handler(HaciendaError)
async def hacienda_error_handler(request: Request, exc: HaciendaError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Conflicto de integridad en %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"detail": "El registro entra en conflicto con datos existentes"})


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Error de base de datos en %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Error interno del servidor"})


app.include_router(health.router)
app.include_router(auth.router)
app.include_router(pedidos.router)
app.include_router(pagos.router)
app.include_router(cortes_pedidos.router)
app.include_router(clientes.router)
app.include_router(productos.router)
app.include_router(sucursales.router)
app.include_router(usuarios.router)
app.include_router(cortes.router)
app.include_router(portal.router)
