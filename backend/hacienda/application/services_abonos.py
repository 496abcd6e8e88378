"""
Servicio de Abonos (pagos a pedidos y a la deuda del cliente)
=============================================================

Principios:
- Solo se abona a pedidos ENTREGADOS con saldo pendiente
- Un pago dirigido a un pedido no puede exceder su saldo
- Un pago al cliente sin pedido se reparte del pedido más antiguo al más
  reciente; no puede exceder la deuda total (no hay saldo a favor)
- Se crea un abono por cada pedido tocado y una entrada de historial por pedido
- Todo ocurre en la transacción del request: si algo falla no queda nada
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy import func

from ..domain.enums import AccionHistorial, EstadoPedido, MetodoPago, OrigenAbono
from ..domain.models import Cliente
from ..domain.models_abonos import Abono
from ..domain.models_pedidos import Pedido
from ..infrastructure.unit_of_work import UnitOfWork
from ..security.context import RequestContext
from .errors import (
    ConflictoEstadoError, CorteCerradoError, MontoExcedeDeudaError, MontoExcedeSaldoError,
    NoEncontradoError, PermisoDenegadoError, ValidacionError,
)
from .montos import CERO, a_float, dinero
from .services_historial import registrar_historial

logger = logging.getLogger(__name__)


def validar_caja_abierta(uow: UnitOfWork, pedido: Pedido, fecha: date):
    """El cobro entra al cierre de (fecha, repartidor); ese cierre no puede estar completado."""
    if pedido.repartidor_id is None:
        return
    if uow.cortes_pedidos.esta_cerrado(fecha, pedido.repartidor_id):
        raise CorteCerradoError(
            f"El cierre del {fecha.isoformat()} del repartidor ya fue confirmado; "
            "registre el cobro con la fecha de hoy"
        )


def serializar_abono(abono: Abono) -> dict:
    return {
        "id": abono.id,
        "pedido_id": abono.pedido_id,
        "cliente_id": abono.cliente_id,
        "monto": a_float(abono.monto),
        "tipo": abono.tipo,
        "origen": abono.origen,
        "fecha": abono.fecha.isoformat() if abono.fecha else None,
        "notas": abono.notas,
        "registrado_por": abono.registrado_por,
        "registrado_por_nombre": abono.usuario.nombre if abono.usuario else None,
        "created_at": abono.created_at.isoformat() if abono.created_at else None,
    }


class AbonosService:
    """
    Aplica pagos a pedidos.

    Dos modos:
    - Dirigido: todo el monto a un pedido (pedido_id)
    - Distribuido: a la deuda del cliente, pedido más antiguo primero (solo cliente_id)
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def adeudo_cliente(self, cliente_id: int) -> Decimal:
        total = (
            self.uow.db.query(func.coalesce(func.sum(Pedido.saldo_pendiente), 0))
            .filter(
                Pedido.cliente_id == cliente_id,
                Pedido.estado == EstadoPedido.ENTREGADO.value,
                Pedido.saldo_pendiente > 0,
            )
            .scalar()
        )
        return dinero(total)

    def _aplicar(
        self,
        pedido: Pedido,
        monto: Decimal,
        tipo: MetodoPago,
        ctx: RequestContext,
        accion: AccionHistorial,
        notas: Optional[str],
        fecha: date,
        cliente_id: Optional[int],
    ) -> Abono:
        """Crea el abono, actualiza saldos del pedido y escribe su historial."""
        saldo_anterior = dinero(pedido.saldo_pendiente)
        abono = Abono(
            pedido_id=pedido.id,
            cliente_id=cliente_id or pedido.cliente_id,
            monto=monto,
            tipo=MetodoPago(tipo).value,
            origen=OrigenAbono.ABONO.value,
            fecha=fecha,
            registrado_por=ctx.usuario_id,
            notas=notas,
            created_at=datetime.now(),
        )
        self.uow.db.add(abono)

        pedido.monto_pagado = dinero(pedido.monto_pagado) + monto
        pedido.saldo_pendiente = dinero(pedido.total) - pedido.monto_pagado
        self.uow.db.flush()

        registrar_historial(
            self.uow.db, pedido.id, accion,
            f"Abono de ${monto} ({abono.tipo}). Saldo: ${saldo_anterior} → ${pedido.saldo_pendiente}",
            ctx,
            datos_anteriores={"saldo_pendiente": a_float(saldo_anterior)},
            datos_nuevos={
                "abono_id": abono.id,
                "monto": a_float(monto),
                "tipo": abono.tipo,
                "saldo_pendiente": a_float(pedido.saldo_pendiente),
            },
        )
        return abono

    def _validar_pedido_abonable(self, pedido: Pedido, ctx: RequestContext):
        if ctx.solo_propios and pedido.repartidor_id != ctx.usuario_id:
            raise PermisoDenegadoError("Solo puede cobrar los pedidos que tiene asignados")
        if pedido.estado != EstadoPedido.ENTREGADO.value:
            raise ConflictoEstadoError("Solo se pueden registrar abonos en pedidos entregados")
        if dinero(pedido.saldo_pendiente) <= CERO:
            raise ConflictoEstadoError(f"El pedido {pedido.id} ya está pagado")

    def registrar_pago(
        self,
        monto,
        ctx: RequestContext,
        tipo: MetodoPago = MetodoPago.EFECTIVO,
        pedido_id: Optional[int] = None,
        cliente_id: Optional[int] = None,
        notas: Optional[str] = None,
        fecha: Optional[date] = None,
    ) -> dict:
        """
        Registra un pago y devuelve el resumen de aplicación.

        Returns:
            dict con monto_total, monto_aplicado, pedidos_afectados, detalles
            (pedido_id, fecha, monto_aplicado, nuevo_saldo) y nuevo_adeudo_cliente

        Raises:
            ValidacionError: monto <= 0, sin pedido ni cliente, cliente sin deuda
            NoEncontradoError: pedido o cliente inexistente
            MontoExcedeSaldoError: pago dirigido mayor al saldo del pedido
            MontoExcedeDeudaError: pago distribuido mayor a la deuda total
            CorteCerradoError: el cierre del repartidor para esa fecha ya fue confirmado
        """
        monto = dinero(monto)
        if monto <= CERO:
            raise ValidacionError("El monto debe ser mayor a 0")
        if pedido_id is None and cliente_id is None:
            raise ValidacionError("Debe indicar el pedido o el cliente")
        fecha = fecha or date.today()

        if cliente_id is not None:
            cliente = self.uow.clientes.get(cliente_id)
            if not cliente:
                raise NoEncontradoError(f"Cliente {cliente_id} no encontrado")

        detalles: List[dict] = []

        if pedido_id is not None:
            pedido = self.uow.pedidos.get_for_update(pedido_id)
            if not pedido or (cliente_id is not None and pedido.cliente_id != cliente_id):
                raise NoEncontradoError(f"Pedido {pedido_id} no encontrado para este cliente")
            self._validar_pedido_abonable(pedido, ctx)
            saldo = dinero(pedido.saldo_pendiente)
            if monto > saldo:
                raise MontoExcedeSaldoError(f"El monto ${monto} excede el saldo pendiente ${saldo}")
            validar_caja_abierta(self.uow, pedido, fecha)

            self._aplicar(pedido, monto, tipo, ctx, AccionHistorial.PAGO_REGISTRADO, notas, fecha, cliente_id)
            detalles.append({
                "pedido_id": pedido.id,
                "fecha": pedido.fecha.isoformat(),
                "monto_aplicado": a_float(monto),
                "nuevo_saldo": a_float(pedido.saldo_pendiente),
            })
            cliente_id = pedido.cliente_id
            aplicado = monto
        else:
            pendientes = self.uow.pedidos.pendientes_de_cobro(cliente_id)
            if ctx.solo_propios:
                pendientes = [p for p in pendientes if p.repartidor_id == ctx.usuario_id]
            if not pendientes:
                raise ValidacionError("El cliente no tiene pedidos pendientes de pago")
            deuda = dinero(sum((dinero(p.saldo_pendiente) for p in pendientes), CERO))
            if monto > deuda:
                raise MontoExcedeDeudaError(f"El monto ${monto} excede la deuda total ${deuda}")

            plan = []
            restante = monto
            for pedido in pendientes:
                if restante <= CERO:
                    break
                aplicar = min(restante, dinero(pedido.saldo_pendiente))
                plan.append((pedido, aplicar))
                restante -= aplicar
            for pedido, _ in plan:
                validar_caja_abierta(self.uow, pedido, fecha)

            restante = monto
            for pedido, aplicar in plan:
                self._aplicar(
                    pedido, aplicar, tipo, ctx, AccionHistorial.ABONO_REGISTRADO,
                    notas or "Abono a deuda del cliente", fecha, cliente_id,
                )
                restante -= aplicar
                detalles.append({
                    "pedido_id": pedido.id,
                    "fecha": pedido.fecha.isoformat(),
                    "monto_aplicado": a_float(aplicar),
                    "nuevo_saldo": a_float(pedido.saldo_pendiente),
                })
            aplicado = monto - restante

        nuevo_adeudo = self.adeudo_cliente(cliente_id) if cliente_id else CERO
        logger.info(
            "Pago registrado: monto=%s aplicado=%s pedidos=%s cliente=%s usuario=%s",
            monto, aplicado, [d["pedido_id"] for d in detalles], cliente_id, ctx.usuario_id,
        )
        return {
            "monto_total": a_float(monto),
            "monto_aplicado": a_float(aplicado),
            "pedidos_afectados": len(detalles),
            "detalles": detalles,
            "nuevo_adeudo_cliente": a_float(nuevo_adeudo),
        }

    # ===== consultas =====

    def listar_abonos_pedido(self, pedido_id: int, ctx: RequestContext) -> List[Abono]:
        pedido = self.uow.pedidos.get(pedido_id)
        if not pedido:
            raise NoEncontradoError(f"Pedido {pedido_id} no encontrado")
        if ctx.solo_propios and pedido.repartidor_id != ctx.usuario_id:
            raise PermisoDenegadoError("Solo puede consultar los pedidos que tiene asignados")
        return (
            self.uow.db.query(Abono)
            .filter(Abono.pedido_id == pedido_id)
            .order_by(Abono.created_at.desc(), Abono.id.desc())
            .all()
        )

    def resumen_deuda_cliente(self, cliente_id: int) -> dict:
        cliente = self.uow.clientes.get(cliente_id)
        if not cliente:
            raise NoEncontradoError(f"Cliente {cliente_id} no encontrado")
        pendientes = (
            self.uow.db.query(Pedido)
            .filter(
                Pedido.cliente_id == cliente_id,
                Pedido.estado == EstadoPedido.ENTREGADO.value,
                Pedido.saldo_pendiente > 0,
            )
            .order_by(Pedido.fecha.asc(), Pedido.created_at.asc(), Pedido.id.asc())
            .all()
        )
        adeudo = dinero(sum((dinero(p.saldo_pendiente) for p in pendientes), CERO))
        limite = dinero(cliente.limite_credito)
        return {
            "cliente": {"id": cliente.id, "nombre": cliente.nombre, "telefono": cliente.telefono},
            "limite_credito": a_float(limite),
            "adeudo_total": a_float(adeudo),
            "credito_disponible": a_float(max(limite - adeudo, CERO)),
            "pedidos_pendientes": [
                {
                    "id": p.id,
                    "fecha": p.fecha.isoformat(),
                    "total": a_float(p.total),
                    "pagado": a_float(p.monto_pagado),
                    "pendiente": a_float(p.saldo_pendiente),
                }
                for p in pendientes
            ],
        }

    def historial_pagos_cliente(
        self,
        cliente_id: int,
        desde: Optional[date] = None,
        hasta: Optional[date] = None,
        limit: int = 50,
    ) -> dict:
        cliente = self.uow.clientes.get(cliente_id)
        if not cliente:
            raise NoEncontradoError(f"Cliente {cliente_id} no encontrado")

        q = (
            self.uow.db.query(Abono)
            .outerjoin(Pedido, Abono.pedido_id == Pedido.id)
            .filter((Abono.cliente_id == cliente_id) | (Pedido.cliente_id == cliente_id))
        )
        if desde:
            q = q.filter(Abono.fecha >= desde)
        if hasta:
            q = q.filter(Abono.fecha <= hasta)
        abonos = q.order_by(Abono.created_at.desc(), Abono.id.desc()).limit(limit).all()
        # total del rango completo, no solo de la página
        total_pagado = q.with_entities(func.coalesce(func.sum(Abono.monto), 0)).scalar()

        return {
            "cliente": {"id": cliente.id, "nombre": cliente.nombre},
            "pagos": [serializar_abono(a) for a in abonos],
            "total_pagado": a_float(dinero(total_pagado)),
            "adeudo_actual": a_float(self.adeudo_cliente(cliente_id)),
        }

    def clientes_con_deuda(self) -> List[dict]:
        filas = (
            self.uow.db.query(
                Cliente,
                func.sum(Pedido.saldo_pendiente).label("adeudo"),
                func.count(Pedido.id).label("pedidos"),
                func.min(Pedido.fecha).label("mas_antiguo"),
            )
            .join(Pedido, Pedido.cliente_id == Cliente.id)
            .filter(
                Cliente.activo == True,  # noqa: E712
                Pedido.estado == EstadoPedido.ENTREGADO.value,
                Pedido.saldo_pendiente > 0,
            )
            .group_by(Cliente.id)
            .all()
        )
        resultado = [
            {
                "id": cliente.id,
                "nombre": cliente.nombre,
                "telefono": cliente.telefono,
                "limite_credito": a_float(cliente.limite_credito),
                "adeudo": a_float(adeudo),
                "pedidos_pendientes": pedidos,
                "pedido_mas_antiguo": mas_antiguo.isoformat() if mas_antiguo else None,
            }
            for cliente, adeudo, pedidos, mas_antiguo in filas
        ]
        resultado.sort(key=lambda c: c["adeudo"], reverse=True)
        return resultado
