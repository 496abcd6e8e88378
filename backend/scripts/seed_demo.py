#!/usr/bin/env python3
"""
Script para cargar datos de ejemplo en La Hacienda.

Uso:
  cd backend && python -m scripts.seed_demo
  cd backend && python scripts/seed_demo.py

Crea (si la base está vacía):
- Sucursales Matriz y Centro (físicas) y Administración (virtual)
- Usuarios admin, encargado, repartidor y administrador de repartidores
- Productos con precio de lista, un precio por sucursal y uno especial de cliente
- 3 clientes y categorías de gasto
- Pedidos del día: uno pendiente, uno en camino y uno entregado con pago parcial
"""
import sys
import logging
from pathlib import Path
from decimal import Decimal

# Agregar backend al path
backend_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_dir))

from hacienda.db import SessionLocal, init_db
from hacienda.domain.enums import TipoGasto, TipoSucursal, UserRole
from hacienda.domain.models import Sucursal
from hacienda.domain.models_cortes import CategoriaGasto
from hacienda.infrastructure.logging_config import setup_logging
from hacienda.infrastructure.unit_of_work import UnitOfWork
from hacienda.application.dtos import (
    ClienteIn, DetallePedidoIn, EntregaIn, PedidoIn, ProductoIn, SucursalIn, UsuarioIn,
)
from hacienda.application.services_catalogos import CatalogosService
from hacienda.application.services_clientes import ClientesService
from hacienda.application.services_pedidos import PedidosService
from hacienda.security.context import SISTEMA

logger = logging.getLogger("hacienda.scripts.seed_demo")

DEMO_PASS = "demo1234"


def seed_demo(uow: UnitOfWork) -> dict:
    catalogos = CatalogosService(uow)
    clientes_srv = ClientesService(uow)
    pedidos_srv = PedidosService(uow)

    matriz = catalogos.crear_sucursal(SucursalIn(nombre="Matriz", direccion="Av. Juárez 120"))
    centro = catalogos.crear_sucursal(SucursalIn(nombre="Centro", direccion="Calle Hidalgo 45"))
    catalogos.crear_sucursal(SucursalIn(nombre="Administración", tipo=TipoSucursal.VIRTUAL))

    usuarios = {}
    for email, nombre, rol, sucursal in [
        ("admin@lahacienda.mx", "Administrador", UserRole.ADMIN, None),
        ("encargado@lahacienda.mx", "Rosa Encargada", UserRole.ENCARGADO, matriz.id),
        ("repartidor@lahacienda.mx", "Juan Repartidor", UserRole.REPARTIDOR, matriz.id),
        ("reparto@lahacienda.mx", "Luis Jefe de Reparto", UserRole.ADMINISTRADOR_REPARTIDOR, matriz.id),
    ]:
        usuarios[rol] = catalogos.crear_usuario(
            UsuarioIn(nombre=nombre, email=email, password=DEMO_PASS, rol=rol, sucursal_id=sucursal)
        )

    tortilla = catalogos.crear_producto(ProductoIn(nombre="Tortilla", unidad="kg", precio_lista=Decimal("22.00")))
    masa = catalogos.crear_producto(ProductoIn(nombre="Masa", unidad="kg", precio_lista=Decimal("18.00")))
    catalogos.crear_producto(ProductoIn(nombre="Totopos", unidad="paquete", precio_lista=Decimal("25.00")))
    catalogos.fijar_precio_sucursal(centro.id, tortilla.id, Decimal("23.00"))

    fonda = clientes_srv.crear(
        ClienteIn(nombre="Fonda Doña Mary", telefono="5551234567", sucursal_id=matriz.id, sucursal_backup_id=centro.id),
        SISTEMA,
    )
    taqueria = clientes_srv.crear(
        ClienteIn(nombre="Taquería El Güero", limite_credito=Decimal("500.00"), sucursal_id=matriz.id),
        SISTEMA,
    )
    clientes_srv.crear(ClienteIn(nombre="Abarrotes La Esquina", sucursal_id=centro.id), SISTEMA)
    clientes_srv.fijar_precio(taqueria.id, tortilla.id, Decimal("20.00"))

    for nombre, tipo in [("Gasolina", TipoGasto.OPERATIVO), ("Gas", TipoGasto.OPERATIVO), ("Nómina", TipoGasto.NOMINA)]:
        uow.db.add(CategoriaGasto(nombre=nombre, tipo=tipo.value))

    repartidor_id = usuarios[UserRole.REPARTIDOR].id
    pendiente = pedidos_srv.crear(
        PedidoIn(cliente_id=fonda.id, repartidor_id=repartidor_id, detalles=[DetallePedidoIn(producto_id=tortilla.id, cantidad=Decimal("5"))]),
        SISTEMA,
    )
    en_camino = pedidos_srv.crear(
        PedidoIn(cliente_id=taqueria.id, repartidor_id=repartidor_id, detalles=[
            DetallePedidoIn(producto_id=tortilla.id, cantidad=Decimal("10")),
            DetallePedidoIn(producto_id=masa.id, cantidad=Decimal("2")),
        ]),
        SISTEMA,
    )
    pedidos_srv.despachar(en_camino.id, SISTEMA)
    entregado = pedidos_srv.crear(
        PedidoIn(cliente_id=fonda.id, repartidor_id=repartidor_id, detalles=[DetallePedidoIn(producto_id=masa.id, cantidad=Decimal("4"))]),
        SISTEMA,
    )
    pedidos_srv.entregar(entregado.id, EntregaIn(monto_pagado=Decimal("40.00")), SISTEMA)

    return {
        "sucursales": 3,
        "usuarios": len(usuarios),
        "pedidos": [pendiente.id, en_camino.id, entregado.id],
    }


def main():
    setup_logging()
    print("🌮 La Hacienda - Carga de datos de ejemplo")
    print("=" * 50)

    init_db()
    db = SessionLocal()
    if db.query(Sucursal).first():
        print("   ⚠ La base ya tiene sucursales, no se carga nada")
        db.close()
        return 0

    try:
        with UnitOfWork(db).transaction() as uow:
            resultado = seed_demo(uow)
    except Exception:
        logger.exception("Error cargando datos de ejemplo")
        return 1

    print(f"   ✓ {resultado['sucursales']} sucursales, {resultado['usuarios']} usuarios")
    print(f"   ✓ Pedidos de ejemplo: {resultado['pedidos']}")
    print(f"\n✅ Listo. Usuarios con clave: {DEMO_PASS}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
