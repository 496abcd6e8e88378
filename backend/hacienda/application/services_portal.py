"""
Servicio del Portal de Clientes
===============================

Lo que un cliente aprobado puede hacer con su propia cuenta:
- Ver su perfil, crédito y adeudo
- Consultar productos con sus precios
- Consultar sus pedidos
- Levantar pedidos dentro de su límite de crédito
- Cancelar sus pedidos mientras sigan pendientes

Todo se acota al cliente del contexto (ctx.cliente_id). Un pedido de otro
cliente se reporta como inexistente.
"""
from datetime import date
from typing import List, Optional, Tuple
import logging

from sqlalchemy import func

from ..domain.enums import EstadoPedido
from ..domain.models import Cliente, Producto
from ..domain.models_abonos import Abono
from ..domain.models_pedidos import Pedido
from ..infrastructure.unit_of_work import UnitOfWork
from ..security.context import RequestContext
from .dtos import PedidoClienteIn, PedidoIn, PerfilClienteUpdate
from .errors import ConflictoEstadoError, NoEncontradoError, PermisoDenegadoError, ValidacionError
from .montos import CERO, a_float, dinero
from .services_abonos import AbonosService
from .services_pedidos import PedidosService

logger = logging.getLogger(__name__)


def _sucursal(s) -> Optional[dict]:
    return {"id": s.id, "nombre": s.nombre, "direccion": s.direccion} if s else None


class PortalClienteService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.pedidos = PedidosService(uow)
        self.abonos = AbonosService(uow)

    def _cliente(self, ctx: RequestContext) -> Cliente:
        if ctx.cliente_id is None:
            raise PermisoDenegadoError("La cuenta no está vinculada a un cliente")
        cliente = self.uow.clientes.get(ctx.cliente_id)
        if not cliente or not cliente.activo or not cliente.aprobado:
            raise PermisoDenegadoError("La cuenta de cliente no está activa")
        return cliente

    def _credito(self, cliente: Cliente) -> dict:
        limite = dinero(cliente.limite_credito)
        adeudo = self.abonos.adeudo_cliente(cliente.id)
        return {
            "limite": a_float(limite),
            "adeudo": a_float(adeudo),
            "disponible": a_float(max(limite - adeudo, CERO)),
            "porcentaje_usado": round(float(adeudo / limite * 100), 2) if limite > CERO else 0.0,
        }

    # ===== perfil =====

    def perfil(self, ctx: RequestContext) -> dict:
        cliente = self._cliente(ctx)
        return {
            "id": cliente.id,
            "nombre": cliente.nombre,
            "email": cliente.email,
            "telefono": cliente.telefono,
            "direccion": cliente.direccion,
            "notas": cliente.notas,
            "sucursal": _sucursal(cliente.sucursal),
            "sucursal_backup": _sucursal(cliente.sucursal_backup),
            "credito": self._credito(cliente),
            "created_at": cliente.created_at.isoformat() if cliente.created_at else None,
        }

    def actualizar_perfil(self, datos: PerfilClienteUpdate, ctx: RequestContext) -> dict:
        """Solo datos de contacto; nombre, crédito y sucursales los administra el negocio."""
        cliente = self._cliente(ctx)
        for campo, valor in datos.model_dump(exclude_unset=True).items():
            setattr(cliente, campo, valor)
        self.uow.db.flush()
        return self.perfil(ctx)

    def inicio(self, ctx: RequestContext, hoy: Optional[date] = None) -> dict:
        """Resumen para la pantalla de inicio: crédito, mes en curso y últimos pedidos."""
        cliente = self._cliente(ctx)
        hoy = hoy or date.today()
        inicio_mes = hoy.replace(day=1)

        del_mes = self.uow.db.query(Pedido).filter(
            Pedido.cliente_id == cliente.id,
            Pedido.fecha >= inicio_mes,
            Pedido.fecha <= hoy,
        )
        gastado = (
            del_mes.filter(Pedido.estado == EstadoPedido.ENTREGADO.value)
            .with_entities(func.coalesce(func.sum(Pedido.total), 0))
            .scalar()
        )
        _, ultimos = self.pedidos.listar(ctx, cliente_id=cliente.id, limit=5)
        deuda = self.abonos.resumen_deuda_cliente(cliente.id)
        return {
            "cliente": {"id": cliente.id, "nombre": cliente.nombre},
            "credito": self._credito(cliente),
            "estadisticas": {
                "pedidos_este_mes": del_mes.count(),
                "total_gastado_mes": a_float(dinero(gastado)),
                "pedidos_con_adeudo": len(deuda["pedidos_pendientes"]),
            },
            "ultimos_pedidos": [self.serializar_pedido(p, incluir_abonos=False) for p in ultimos],
        }

    # ===== productos =====

    def productos(self, ctx: RequestContext) -> List[dict]:
        cliente = self._cliente(ctx)
        productos = (
            self.uow.db.query(Producto)
            .filter(Producto.activo == True)  # noqa: E712
            .order_by(Producto.nombre)
            .all()
        )
        resultado = []
        for p in productos:
            precio = self.pedidos.resolver_precio(p, cliente.id, cliente.sucursal_id)
            resultado.append({
                "id": p.id,
                "nombre": p.nombre,
                "unidad": p.unidad,
                "precio_lista": a_float(p.precio_lista),
                "precio_cliente": a_float(precio),
                "tiene_precio_especial": self.uow.precios.de_cliente(cliente.id, p.id) is not None,
            })
        return resultado

    # ===== pedidos =====

    def serializar_pedido(self, pedido: Pedido, incluir_abonos: bool = True) -> dict:
        data = {
            "id": pedido.id,
            "fecha": pedido.fecha.isoformat() if pedido.fecha else None,
            "estado": pedido.estado,
            "total": a_float(pedido.total),
            "monto_pagado": a_float(pedido.monto_pagado),
            "saldo_pendiente": a_float(pedido.saldo_pendiente),
            "notas": pedido.notas,
            "observaciones": pedido.observaciones,
            "fecha_preparado": pedido.fecha_preparado.isoformat() if pedido.fecha_preparado else None,
            "fecha_entrega": pedido.fecha_entrega.isoformat() if pedido.fecha_entrega else None,
            "detalles": [
                {
                    "producto_id": d.producto_id,
                    "producto": d.producto.nombre if d.producto else None,
                    "cantidad": float(d.cantidad),
                    "precio_unitario": a_float(d.precio_unitario),
                    "subtotal": a_float(d.subtotal),
                }
                for d in pedido.detalles
            ],
        }
        if incluir_abonos:
            abonos = (
                self.uow.db.query(Abono)
                .filter(Abono.pedido_id == pedido.id)
                .order_by(Abono.created_at, Abono.id)
                .all()
            )
            data["abonos"] = [
                {"id": a.id, "monto": a_float(a.monto), "tipo": a.tipo, "fecha": a.fecha.isoformat()}
                for a in abonos
            ]
        return data

    def listar_pedidos(
        self,
        ctx: RequestContext,
        estado: Optional[EstadoPedido] = None,
        fecha: Optional[date] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[int, List[Pedido]]:
        cliente = self._cliente(ctx)
        return self.pedidos.listar(
            ctx, fecha=fecha, estado=estado, cliente_id=cliente.id, limit=limit, offset=offset,
        )

    def obtener_pedido(self, pedido_id: int, ctx: RequestContext) -> Pedido:
        cliente = self._cliente(ctx)
        pedido = self.uow.pedidos.get(pedido_id)
        if not pedido or pedido.cliente_id != cliente.id:
            raise NoEncontradoError(f"Pedido {pedido_id} no encontrado")
        return pedido

    def adeudo(self, ctx: RequestContext) -> dict:
        cliente = self._cliente(ctx)
        return self.abonos.resumen_deuda_cliente(cliente.id)

    def crear_pedido(self, datos: PedidoClienteIn, ctx: RequestContext) -> Tuple[Pedido, dict]:
        """
        Pedido del día para el propio cliente.

        Raises:
            ValidacionError: el pedido dejaría el adeudo por encima del límite de crédito
        """
        cliente = self._cliente(ctx)

        total = CERO
        for item in datos.detalles:
            producto = self.uow.productos.get(item.producto_id)
            if not producto or not producto.activo:
                raise NoEncontradoError(f"Producto {item.producto_id} no encontrado")
            precio = self.pedidos.resolver_precio(producto, cliente.id, cliente.sucursal_id)
            total += dinero(precio * dinero(item.cantidad))

        adeudo = self.abonos.adeudo_cliente(cliente.id)
        limite = dinero(cliente.limite_credito)
        if adeudo + total > limite:
            raise ValidacionError(
                f"Límite de crédito excedido: adeudo ${adeudo} + pedido ${dinero(total)} "
                f"supera el límite ${limite}"
            )

        pedido = self.pedidos.crear(
            PedidoIn(cliente_id=cliente.id, notas=datos.notas, detalles=datos.detalles), ctx,
        )
        logger.info("Pedido %s levantado desde el portal por el cliente %s", pedido.id, cliente.id)
        credito = {
            "adeudo_anterior": a_float(adeudo),
            "nuevo_adeudo": a_float(adeudo + dinero(pedido.total)),
            "disponible": a_float(max(limite - adeudo - dinero(pedido.total), CERO)),
        }
        return pedido, credito

    def cancelar_pedido(self, pedido_id: int, ctx: RequestContext) -> Pedido:
        pedido = self.obtener_pedido(pedido_id, ctx)
        if pedido.estado != EstadoPedido.PENDIENTE.value:
            raise ConflictoEstadoError("Solo se pueden cancelar pedidos pendientes")
        return self.pedidos.cancelar(pedido.id, ctx, motivo="Cancelado por el cliente")
