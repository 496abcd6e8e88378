"""
Servicio de Pedidos
===================

Ciclo de vida:
    pendiente → preparado → en_camino → entregado
    pendiente | preparado | en_camino → cancelado

Se permite saltar hacia adelante (p. ej. pendiente → entregado en mostrador).
'entregado' y 'cancelado' son terminales. Una transición inválida no modifica
el pedido ni escribe historial.

Cada operación que muta un pedido escribe exactamente una entrada de historial
en la misma transacción.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple
import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import selectinload

from ..domain.enums import AccionHistorial, EstadoPedido, OrigenAbono, UserRole
from ..domain.models import Cliente, Producto, Usuario, UsuarioRol
from ..domain.models_abonos import Abono
from ..domain.models_pedidos import Pedido, DetallePedido
from ..infrastructure.unit_of_work import UnitOfWork
from ..security.context import RequestContext
from .dtos import DetallePedidoIn, EntregaIn, PedidoIn, PedidoUpdate
from .errors import (
    ConflictoEstadoError, MontoExcedeSaldoError, NoEncontradoError,
    PermisoDenegadoError, TransicionInvalidaError, ValidacionError,
)
from .montos import CERO, a_float, dinero
from .services_abonos import validar_caja_abierta
from .services_historial import registrar_historial

logger = logging.getLogger(__name__)

# destino -> estados de origen permitidos
TRANSICIONES: Dict[str, Set[str]] = {
    EstadoPedido.PREPARADO.value: {EstadoPedido.PENDIENTE.value},
    EstadoPedido.EN_CAMINO.value: {EstadoPedido.PENDIENTE.value, EstadoPedido.PREPARADO.value},
    EstadoPedido.ENTREGADO.value: {
        EstadoPedido.PENDIENTE.value, EstadoPedido.PREPARADO.value, EstadoPedido.EN_CAMINO.value,
    },
    EstadoPedido.CANCELADO.value: {
        EstadoPedido.PENDIENTE.value, EstadoPedido.PREPARADO.value, EstadoPedido.EN_CAMINO.value,
    },
}

ROLES_REPARTO = (UserRole.REPARTIDOR.value, UserRole.ADMINISTRADOR_REPARTIDOR.value)


def puede_transicionar(estado_actual: str, destino: str) -> bool:
    return estado_actual in TRANSICIONES.get(destino, set())


def _segundos(desde: Optional[datetime], hasta: datetime) -> Optional[int]:
    if desde is None:
        return None
    return max(int((hasta - desde).total_seconds()), 0)


def snapshot_pedido(pedido: Pedido) -> dict:
    """Estado resumido del pedido para datos_anteriores / datos_nuevos del historial."""
    return {
        "estado": pedido.estado,
        "cliente_id": pedido.cliente_id,
        "repartidor_id": pedido.repartidor_id,
        "total": a_float(pedido.total),
        "monto_pagado": a_float(pedido.monto_pagado),
        "saldo_pendiente": a_float(pedido.saldo_pendiente),
    }


def serializar_pedido(pedido: Pedido, incluir_detalles: bool = True) -> dict:
    data = {
        "id": pedido.id,
        "fecha": pedido.fecha.isoformat() if pedido.fecha else None,
        "estado": pedido.estado,
        "cliente_id": pedido.cliente_id,
        "cliente_nombre": pedido.cliente.nombre if pedido.cliente else None,
        "repartidor_id": pedido.repartidor_id,
        "repartidor_nombre": pedido.repartidor.nombre if pedido.repartidor else None,
        "creado_por": pedido.creado_por,
        "total": a_float(pedido.total),
        "monto_pagado": a_float(pedido.monto_pagado),
        "saldo_pendiente": a_float(pedido.saldo_pendiente),
        "notas": pedido.notas,
        "observaciones": pedido.observaciones,
        "sucursal_principal_id": pedido.sucursal_principal_id,
        "sucursal_backup_id": pedido.sucursal_backup_id,
        "sucursal_actual_id": pedido.sucursal_actual_id,
        "transferido": pedido.transferido,
        "sucursal_ocupada": pedido.sucursal_ocupada,
        "fecha_asignacion": pedido.fecha_asignacion.isoformat() if pedido.fecha_asignacion else None,
        "fecha_preparado": pedido.fecha_preparado.isoformat() if pedido.fecha_preparado else None,
        "fecha_despacho": pedido.fecha_despacho.isoformat() if pedido.fecha_despacho else None,
        "fecha_entrega": pedido.fecha_entrega.isoformat() if pedido.fecha_entrega else None,
        "demora_preparacion_seg": pedido.demora_preparacion_seg,
        "demora_entrega_seg": pedido.demora_entrega_seg,
        "demora_total_seg": pedido.demora_total_seg,
        "created_at": pedido.created_at.isoformat() if pedido.created_at else None,
    }
    if incluir_detalles:
        data["detalles"] = [
            {
                "id": d.id,
                "producto_id": d.producto_id,
                "producto_nombre": d.producto.nombre if d.producto else None,
                "unidad": d.producto.unidad if d.producto else None,
                "cantidad": float(d.cantidad),
                "precio_unitario": a_float(d.precio_unitario),
                "subtotal": a_float(d.subtotal),
            }
            for d in pedido.detalles
        ]
    return data


class PedidosService:
    """
    Servicio de Pedidos

    Crea y edita pedidos, aplica las transiciones de estado y registra
    el cobro al momento de la entrega.
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    # ===== helpers =====

    def _obtener(self, pedido_id: int, ctx: RequestContext, bloquear: bool = False) -> Pedido:
        pedido = self.uow.pedidos.get_for_update(pedido_id) if bloquear else self.uow.pedidos.get(pedido_id)
        if not pedido or (ctx.solo_cliente and pedido.cliente_id != ctx.cliente_id):
            raise NoEncontradoError(f"Pedido {pedido_id} no encontrado")
        if ctx.solo_propios and pedido.repartidor_id != ctx.usuario_id:
            raise PermisoDenegadoError("Solo puede operar los pedidos que tiene asignados")
        return pedido

    def _validar_transicion(self, pedido: Pedido, destino: EstadoPedido):
        if not puede_transicionar(pedido.estado, destino.value):
            raise TransicionInvalidaError(
                f"Transición de estado inválida: {pedido.estado} → {destino.value}"
            )

    def _cliente(self, cliente_id: int) -> Cliente:
        cliente = self.uow.clientes.get(cliente_id)
        if not cliente or not cliente.activo:
            raise NoEncontradoError(f"Cliente {cliente_id} no encontrado")
        if not cliente.aprobado:
            raise ValidacionError(f"El cliente {cliente.nombre} aún no ha sido aprobado")
        return cliente

    def _repartidor(self, repartidor_id: int) -> Usuario:
        usuario = self.uow.usuarios.get(repartidor_id)
        if not usuario or not usuario.activo:
            raise NoEncontradoError(f"Repartidor {repartidor_id} no encontrado")
        return usuario

    def resolver_precio(self, producto: Producto, cliente_id: Optional[int], sucursal_id: Optional[int]) -> Decimal:
        """Precio del cliente > precio de la sucursal > precio de lista."""
        if cliente_id:
            especial = self.uow.precios.de_cliente(cliente_id, producto.id)
            if especial:
                return dinero(especial.precio)
        if sucursal_id:
            de_sucursal = self.uow.precios.de_sucursal(sucursal_id, producto.id)
            if de_sucursal:
                return dinero(de_sucursal.precio)
        return dinero(producto.precio_lista)

    def _armar_detalles(
        self, detalles: List[DetallePedidoIn], cliente_id: Optional[int], sucursal_id: Optional[int]
    ) -> Tuple[List[DetallePedido], Decimal]:
        if not detalles:
            raise ValidacionError("El pedido debe tener al menos un producto")
        lineas = []
        total = CERO
        for item in detalles:
            producto = self.uow.productos.get(item.producto_id)
            if not producto or not producto.activo:
                raise NoEncontradoError(f"Producto {item.producto_id} no encontrado")
            precio = self.resolver_precio(producto, cliente_id, sucursal_id)
            cantidad = dinero(item.cantidad)
            subtotal = dinero(precio * cantidad)
            lineas.append(DetallePedido(
                producto_id=producto.id,
                cantidad=cantidad,
                precio_unitario=precio,
                subtotal=subtotal,
            ))
            total += subtotal
        return lineas, dinero(total)

    # ===== alta y edición =====

    def crear(self, datos: PedidoIn, ctx: RequestContext) -> Pedido:
        cliente = self._cliente(datos.cliente_id) if datos.cliente_id else None

        repartidor_id = datos.repartidor_id
        if ctx.solo_propios:
            # Un repartidor solo levanta pedidos para sí mismo
            if repartidor_id not in (None, ctx.usuario_id):
                raise PermisoDenegadoError("Solo puede asignarse pedidos a sí mismo")
            repartidor_id = ctx.usuario_id
        elif repartidor_id:
            self._repartidor(repartidor_id)

        principal = datos.sucursal_id or (cliente.sucursal_id if cliente else None) or ctx.sucursal_id
        backup = cliente.sucursal_backup_id if cliente else None

        lineas, total = self._armar_detalles(datos.detalles, datos.cliente_id, principal)
        ahora = datetime.now()

        pedido = Pedido(
            fecha=datos.fecha or date.today(),
            cliente_id=datos.cliente_id,
            repartidor_id=repartidor_id,
            creado_por=ctx.usuario_id,
            estado=EstadoPedido.PENDIENTE.value,
            total=total,
            monto_pagado=CERO,
            saldo_pendiente=total,
            notas=datos.notas,
            sucursal_principal_id=principal,
            sucursal_backup_id=backup,
            sucursal_actual_id=principal,
            fecha_asignacion=ahora if repartidor_id else None,
            created_at=ahora,
        )
        pedido.detalles = lineas
        self.uow.pedidos.add(pedido)
        self.uow.db.flush()

        registrar_historial(
            self.uow.db, pedido.id, AccionHistorial.CREADO,
            f"Pedido creado por ${total}", ctx,
            datos_nuevos=snapshot_pedido(pedido),
        )
        logger.info("Pedido %s creado (cliente=%s, total=%s) por usuario %s", pedido.id, pedido.cliente_id, total, ctx.usuario_id)
        return pedido

    def actualizar(self, pedido_id: int, datos: PedidoUpdate, ctx: RequestContext) -> Pedido:
        pedido = self._obtener(pedido_id, ctx, bloquear=True)
        if pedido.estado != EstadoPedido.PENDIENTE.value:
            raise ConflictoEstadoError("Solo se pueden editar pedidos pendientes")

        enviados = datos.model_fields_set
        antes = snapshot_pedido(pedido)
        cambios = []
        accion = AccionHistorial.EDITADO

        if "cliente_id" in enviados and datos.cliente_id != pedido.cliente_id:
            if datos.cliente_id:
                self._cliente(datos.cliente_id)
            pedido.cliente_id = datos.cliente_id
            cambios.append("cliente")

        if "repartidor_id" in enviados and datos.repartidor_id != pedido.repartidor_id:
            if ctx.solo_propios:
                raise PermisoDenegadoError("No puede reasignar pedidos a otro repartidor")
            if datos.repartidor_id:
                nuevo = self._repartidor(datos.repartidor_id)
                accion = AccionHistorial.REPARTIDOR_CAMBIADO if pedido.repartidor_id else AccionHistorial.REPARTIDOR_ASIGNADO
                cambios.append(f"repartidor: {nuevo.nombre}")
                pedido.fecha_asignacion = datetime.now()
            else:
                accion = AccionHistorial.REPARTIDOR_CAMBIADO
                cambios.append("repartidor retirado")
            pedido.repartidor_id = datos.repartidor_id

        if datos.detalles is not None:
            lineas, total = self._armar_detalles(datos.detalles, pedido.cliente_id, pedido.sucursal_actual_id)
            pagado = dinero(pedido.monto_pagado)
            if total < pagado:
                raise ValidacionError(f"El nuevo total ${total} es menor a lo ya pagado ${pagado}")
            pedido.detalles.clear()
            self.uow.db.flush()
            pedido.detalles.extend(lineas)
            pedido.total = total
            pedido.saldo_pendiente = total - pagado
            cambios.append(f"productos (total ${total})")

        if "notas" in enviados and datos.notas != pedido.notas:
            pedido.notas = datos.notas
            cambios.append("notas")

        if not cambios:
            return pedido

        self.uow.db.flush()
        registrar_historial(
            self.uow.db, pedido.id, accion,
            "Pedido editado: " + ", ".join(cambios), ctx,
            datos_anteriores=antes, datos_nuevos=snapshot_pedido(pedido),
        )
        return pedido

    def agregar_nota(self, pedido_id: int, nota: str, ctx: RequestContext) -> Pedido:
        pedido = self._obtener(pedido_id, ctx, bloquear=True)
        nota = nota.strip()
        if not nota:
            raise ValidacionError("La nota no puede estar vacía")
        pedido.notas = f"{pedido.notas}\n{nota}" if pedido.notas else nota
        self.uow.db.flush()
        registrar_historial(self.uow.db, pedido.id, AccionHistorial.NOTA_AGREGADA, nota, ctx)
        return pedido

    # ===== transiciones =====

    def preparar(self, pedido_id: int, ctx: RequestContext) -> Pedido:
        pedido = self._obtener(pedido_id, ctx, bloquear=True)
        self._validar_transicion(pedido, EstadoPedido.PREPARADO)
        antes = snapshot_pedido(pedido)

        pedido.estado = EstadoPedido.PREPARADO.value
        pedido.fecha_preparado = datetime.now()
        self.uow.db.flush()

        registrar_historial(
            self.uow.db, pedido.id, AccionHistorial.ESTADO_PREPARADO,
            "Pedido marcado como preparado", ctx,
            datos_anteriores=antes, datos_nuevos=snapshot_pedido(pedido),
        )
        return pedido

    def despachar(self, pedido_id: int, ctx: RequestContext) -> Pedido:
        pedido = self._obtener(pedido_id, ctx, bloquear=True)
        self._validar_transicion(pedido, EstadoPedido.EN_CAMINO)
        antes = snapshot_pedido(pedido)

        ahora = datetime.now()
        pedido.estado = EstadoPedido.EN_CAMINO.value
        pedido.fecha_despacho = ahora
        pedido.demora_preparacion_seg = _segundos(pedido.created_at, ahora)
        self.uow.db.flush()

        registrar_historial(
            self.uow.db, pedido.id, AccionHistorial.ESTADO_EN_CAMINO,
            "Pedido despachado", ctx,
            datos_anteriores=antes, datos_nuevos=snapshot_pedido(pedido),
        )
        return pedido

    def entregar(self, pedido_id: int, datos: EntregaIn, ctx: RequestContext) -> Pedido:
        """
        Confirma la entrega. Exige monto cobrado o una observación que
        justifique la entrega sin pago. El cobro genera un abono de origen
        'entrega' y actualiza monto_pagado / saldo_pendiente.

        Raises:
            TransicionInvalidaError: el pedido ya está entregado o cancelado
            ValidacionError: sin pago y sin observaciones
            MontoExcedeSaldoError: el cobro supera el saldo pendiente
            CorteCerradoError: el cierre del día de cobro ya fue confirmado
        """
        pedido = self._obtener(pedido_id, ctx, bloquear=True)
        self._validar_transicion(pedido, EstadoPedido.ENTREGADO)

        monto = dinero(datos.monto_pagado)
        observaciones = (datos.observaciones or "").strip() or None
        if monto == CERO and not observaciones:
            raise ValidacionError(
                "Debe indicar el monto cobrado o una observación que justifique la entrega sin pago"
            )
        saldo = dinero(pedido.saldo_pendiente)
        if monto > saldo:
            raise MontoExcedeSaldoError(f"El monto ${monto} excede el saldo pendiente ${saldo}")
        fecha_cobro = datos.fecha_cobro or date.today()
        if monto > CERO:
            validar_caja_abierta(self.uow, pedido, fecha_cobro)

        antes = snapshot_pedido(pedido)
        ahora = datetime.now()
        pedido.estado = EstadoPedido.ENTREGADO.value
        pedido.fecha_entrega = ahora
        pedido.demora_entrega_seg = _segundos(pedido.fecha_despacho, ahora)
        pedido.demora_total_seg = _segundos(pedido.created_at, ahora)
        if observaciones:
            pedido.observaciones = observaciones

        descripcion = "Pedido entregado"
        if monto > CERO:
            self.uow.db.add(Abono(
                pedido_id=pedido.id,
                cliente_id=pedido.cliente_id,
                monto=monto,
                tipo=datos.tipo_pago.value,
                origen=OrigenAbono.ENTREGA.value,
                fecha=fecha_cobro,
                registrado_por=ctx.usuario_id,
                notas="Pago al entregar",
            ))
            pedido.monto_pagado = dinero(pedido.monto_pagado) + monto
            pedido.saldo_pendiente = dinero(pedido.total) - pedido.monto_pagado
            descripcion += f". Pago registrado: ${monto} ({datos.tipo_pago.value})"
        else:
            descripcion += f" sin pago: {observaciones}"
        self.uow.db.flush()

        registrar_historial(
            self.uow.db, pedido.id, AccionHistorial.ESTADO_ENTREGADO, descripcion, ctx,
            datos_anteriores=antes, datos_nuevos=snapshot_pedido(pedido),
        )
        logger.info("Pedido %s entregado; cobrado=%s saldo=%s", pedido.id, monto, pedido.saldo_pendiente)
        return pedido

    def cancelar(self, pedido_id: int, ctx: RequestContext, motivo: Optional[str] = None) -> Pedido:
        pedido = self._obtener(pedido_id, ctx, bloquear=True)
        self._validar_transicion(pedido, EstadoPedido.CANCELADO)
        antes = snapshot_pedido(pedido)

        pedido.estado = EstadoPedido.CANCELADO.value
        self.uow.db.flush()

        registrar_historial(
            self.uow.db, pedido.id, AccionHistorial.ESTADO_CANCELADO,
            f"Pedido cancelado: {motivo}" if motivo else "Pedido cancelado", ctx,
            datos_anteriores=antes, datos_nuevos=snapshot_pedido(pedido),
        )
        logger.info("Pedido %s cancelado por usuario %s", pedido.id, ctx.usuario_id)
        return pedido

    # ===== sucursal principal / respaldo =====

    def marcar_sucursal_ocupada(self, pedido_id: int, ctx: RequestContext) -> Pedido:
        """La sucursal principal no puede atenderlo; queda libre para la de respaldo."""
        pedido = self._obtener(pedido_id, ctx, bloquear=True)
        if pedido.estado != EstadoPedido.PENDIENTE.value:
            raise ConflictoEstadoError("Solo se pueden transferir pedidos pendientes")
        if not pedido.sucursal_backup_id:
            raise ValidacionError("El cliente no tiene sucursal de respaldo asignada")
        if pedido.sucursal_ocupada:
            return pedido

        pedido.sucursal_ocupada = True
        self.uow.db.flush()
        registrar_historial(
            self.uow.db, pedido.id, AccionHistorial.EDITADO,
            "Sucursal principal marcada como ocupada", ctx,
            datos_nuevos={"sucursal_ocupada": True, "sucursal_backup_id": pedido.sucursal_backup_id},
        )
        return pedido

    def tomar_pedido(self, pedido_id: int, sucursal_id: int, ctx: RequestContext) -> Pedido:
        pedido = self._obtener(pedido_id, ctx, bloquear=True)
        if pedido.estado != EstadoPedido.PENDIENTE.value:
            raise ConflictoEstadoError("Solo se pueden tomar pedidos pendientes")

        if sucursal_id == pedido.sucursal_principal_id:
            transferido = False
        elif sucursal_id == pedido.sucursal_backup_id and pedido.sucursal_ocupada:
            transferido = True
        else:
            raise PermisoDenegadoError("Esta sucursal no puede tomar el pedido")

        anterior = pedido.sucursal_actual_id
        pedido.sucursal_actual_id = sucursal_id
        pedido.transferido = transferido
        pedido.fecha_asignacion = datetime.now()
        self.uow.db.flush()
        registrar_historial(
            self.uow.db, pedido.id, AccionHistorial.EDITADO,
            f"Pedido tomado por sucursal {sucursal_id}" + (" (transferido)" if transferido else ""), ctx,
            datos_anteriores={"sucursal_actual_id": anterior},
            datos_nuevos={"sucursal_actual_id": sucursal_id, "transferido": transferido},
        )
        return pedido

    # ===== consultas =====

    def obtener(self, pedido_id: int, ctx: RequestContext) -> Pedido:
        return self._obtener(pedido_id, ctx)

    def listar(
        self,
        ctx: RequestContext,
        fecha: Optional[date] = None,
        estado: Optional[EstadoPedido] = None,
        cliente_id: Optional[int] = None,
        repartidor_id: Optional[int] = None,
        sucursal_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[int, List[Pedido]]:
        q = self.uow.db.query(Pedido).options(
            selectinload(Pedido.detalles).selectinload(DetallePedido.producto),
            selectinload(Pedido.cliente),
            selectinload(Pedido.repartidor),
        )
        if ctx.solo_cliente:
            q = q.filter(Pedido.cliente_id == ctx.cliente_id)
        if ctx.solo_propios:
            q = q.filter(Pedido.repartidor_id == ctx.usuario_id)
        elif repartidor_id is not None:
            q = q.filter(Pedido.repartidor_id == repartidor_id)
        if fecha:
            q = q.filter(Pedido.fecha == fecha)
        if estado:
            q = q.filter(Pedido.estado == EstadoPedido(estado).value)
        if cliente_id is not None:
            q = q.filter(Pedido.cliente_id == cliente_id)
        if sucursal_id is not None:
            q = q.filter(Pedido.sucursal_actual_id == sucursal_id)

        total = q.count()
        items = q.order_by(Pedido.fecha.desc(), Pedido.created_at.desc(), Pedido.id.desc()).offset(offset).limit(limit).all()
        return total, items

    def resumen_dia(self, fecha: date, ctx: RequestContext) -> dict:
        """Conteo por estado, vendido, cobrado y saldo del día."""
        q = self.uow.db.query(Pedido).filter(Pedido.fecha == fecha)
        if ctx.solo_propios:
            q = q.filter(Pedido.repartidor_id == ctx.usuario_id)
        pedidos = q.all()

        por_estado = {e.value: 0 for e in EstadoPedido}
        vendido = CERO
        saldo = CERO
        for p in pedidos:
            por_estado[p.estado] += 1
            if p.estado != EstadoPedido.CANCELADO.value:
                vendido += dinero(p.total)
            if p.estado == EstadoPedido.ENTREGADO.value:
                saldo += dinero(p.saldo_pendiente)

        cobrado_q = self.uow.db.query(func.coalesce(func.sum(Abono.monto), 0)).join(Pedido, Abono.pedido_id == Pedido.id).filter(Abono.fecha == fecha)
        if ctx.solo_propios:
            cobrado_q = cobrado_q.filter(Pedido.repartidor_id == ctx.usuario_id)
        cobrado = dinero(cobrado_q.scalar())

        return {
            "fecha": fecha.isoformat(),
            "total_pedidos": len(pedidos),
            "por_estado": por_estado,
            "total_vendido": a_float(vendido),
            "total_cobrado": a_float(cobrado),
            "saldo_pendiente": a_float(saldo),
        }

    def repartos_pendientes(self, fecha: date, ctx: RequestContext) -> List[dict]:
        """Pedidos por entregar del día agrupados por repartidor."""
        q = self.uow.db.query(Pedido).filter(
            Pedido.fecha == fecha,
            Pedido.estado.in_([
                EstadoPedido.PENDIENTE.value, EstadoPedido.PREPARADO.value, EstadoPedido.EN_CAMINO.value,
            ]),
        )
        if ctx.solo_propios:
            q = q.filter(Pedido.repartidor_id == ctx.usuario_id)

        grupos: Dict[Optional[int], dict] = {}
        for p in q.order_by(Pedido.created_at.asc(), Pedido.id.asc()).all():
            grupo = grupos.setdefault(p.repartidor_id, {
                "repartidor_id": p.repartidor_id,
                "repartidor_nombre": p.repartidor.nombre if p.repartidor else "Sin asignar",
                "total": 0.0,
                "pedidos": [],
            })
            grupo["pedidos"].append(serializar_pedido(p, incluir_detalles=False))
            grupo["total"] = a_float(dinero(grupo["total"]) + dinero(p.total))
        return list(grupos.values())

    def listar_repartidores(self) -> List[Usuario]:
        return (
            self.uow.db.query(Usuario)
            .outerjoin(UsuarioRol, UsuarioRol.usuario_id == Usuario.id)
            .filter(
                Usuario.activo == True,  # noqa: E712
                or_(Usuario.rol.in_(ROLES_REPARTO), UsuarioRol.rol.in_(ROLES_REPARTO)),
            )
            .distinct()
            .order_by(Usuario.nombre)
            .all()
        )
