"""
Configuración global de pytest.

Cada test corre contra una base SQLite en memoria (StaticPool: una sola
conexión compartida entre hilos, necesaria para TestClient) con un juego
mínimo de sucursales, usuarios, clientes y productos.
"""
import os
import sys
import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

import pytest

# Agregar el directorio raíz al path para imports
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

# Antes de importar hacienda: BD en memoria y logs fuera del repo
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "hacienda_qa_logs"))

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hacienda.db import init_db
from hacienda.domain.enums import TipoSucursal, UserRole
from hacienda.domain.models import Cliente, Producto, Sucursal, Usuario
from hacienda.infrastructure.unit_of_work import UnitOfWork
from hacienda.security.auth import build_context, get_password_hash
from hacienda.application.dtos import DetallePedidoIn, EntregaIn, PedidoIn
from hacienda.application.services_pedidos import PedidosService

PASSWORD = "clave123"
PASSWORD_HASH = get_password_hash(PASSWORD)  # bcrypt es lento: un solo hash para todos


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def uow(db):
    return UnitOfWork(db)


def _usuario(db, nombre, email, rol, sucursal_id=None):
    u = Usuario(nombre=nombre, email=email, password_hash=PASSWORD_HASH, rol=rol.value, sucursal_id=sucursal_id)
    db.add(u)
    return u


@pytest.fixture
def datos(db):
    """Catálogo base: precios redondos para que las cuentas sean fáciles de seguir."""
    matriz = Sucursal(nombre="Matriz", tipo=TipoSucursal.FISICA.value)
    centro = Sucursal(nombre="Centro", tipo=TipoSucursal.FISICA.value)
    oficina = Sucursal(nombre="Administración", tipo=TipoSucursal.VIRTUAL.value)
    db.add_all([matriz, centro, oficina])
    db.flush()

    d = SimpleNamespace(matriz=matriz, centro=centro, oficina=oficina)
    d.admin = _usuario(db, "Admin", "admin@test.mx", UserRole.ADMIN)
    d.encargado = _usuario(db, "Rosa", "rosa@test.mx", UserRole.ENCARGADO, matriz.id)
    d.repartidor = _usuario(db, "Juan", "juan@test.mx", UserRole.REPARTIDOR, matriz.id)
    d.repartidor2 = _usuario(db, "Pedro", "pedro@test.mx", UserRole.REPARTIDOR, matriz.id)
    d.jefe_reparto = _usuario(db, "Luis", "luis@test.mx", UserRole.ADMINISTRADOR_REPARTIDOR, matriz.id)
    d.invitado = _usuario(db, "Visita", "visita@test.mx", UserRole.INVITADO)

    d.fonda = Cliente(nombre="Fonda Doña Mary", sucursal_id=matriz.id, sucursal_backup_id=centro.id)
    d.taqueria = Cliente(nombre="Taquería El Güero", sucursal_id=matriz.id)
    d.tortilla = Producto(nombre="Tortilla", unidad="kg", precio_lista=Decimal("20.00"))
    d.masa = Producto(nombre="Masa", unidad="kg", precio_lista=Decimal("15.00"))
    db.add_all([d.fonda, d.taqueria, d.tortilla, d.masa])
    db.commit()
    return d


@pytest.fixture
def cuenta_fonda(db, datos):
    """Usuario del portal vinculado a la Fonda (cliente aprobado)."""
    usuario = _usuario(db, "Mary", "mary@fonda.mx", UserRole.CLIENTE)
    usuario.cliente_id = datos.fonda.id
    db.commit()
    return usuario


@pytest.fixture
def ctx(datos):
    """Contextos de request por rol."""
    return SimpleNamespace(
        admin=build_context(datos.admin, "127.0.0.1"),
        encargado=build_context(datos.encargado),
        repartidor=build_context(datos.repartidor),
        repartidor2=build_context(datos.repartidor2),
        jefe_reparto=build_context(datos.jefe_reparto),
        invitado=build_context(datos.invitado),
    )


@pytest.fixture
def nuevo_pedido(uow, datos, ctx):
    """Crea un pedido pendiente de tortilla (20.00/kg)."""
    def _crear(kilos="5", cliente=None, repartidor=None, fecha=None, contexto=None):
        cliente = cliente or datos.fonda
        repartidor = repartidor or datos.repartidor
        payload = PedidoIn(
            fecha=fecha,
            cliente_id=cliente.id,
            repartidor_id=repartidor.id,
            detalles=[DetallePedidoIn(producto_id=datos.tortilla.id, cantidad=Decimal(kilos))],
        )
        return PedidosService(uow).crear(payload, contexto or ctx.admin)
    return _crear


@pytest.fixture
def pedido_entregado(uow, ctx, nuevo_pedido):
    """
    Crea y entrega un pedido; sin pago se justifica con observación.
    El cobro se registra en la fecha del pedido salvo que se indique cobro=.
    """
    def _entregar(kilos="5", pagado="0", cobro=None, **kwargs):
        pedido = nuevo_pedido(kilos, **kwargs)
        monto = Decimal(pagado)
        entrega = EntregaIn(
            monto_pagado=monto,
            observaciones=None if monto > 0 else "Paga el viernes",
            fecha_cobro=cobro or kwargs.get("fecha"),
        )
        return PedidosService(uow).entregar(pedido.id, entrega, ctx.admin)
    return _entregar


@pytest.fixture
def dia():
    return date(2024, 1, 5)
