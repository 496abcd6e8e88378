"""
Servicio de Clientes
====================
Alta y edición de clientes, precios especiales y el flujo de auto-registro:
el cliente se registra (aprobado=False) y un administrador lo aprueba o rechaza.
"""
from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy import func

from ..domain.enums import EstadoPedido, UserRole
from ..domain.models import Cliente, PrecioCliente, Usuario
from ..domain.models_pedidos import Pedido
from ..infrastructure.unit_of_work import UnitOfWork
from ..security.auth import get_password_hash
from ..security.context import RequestContext
from .dtos import ClienteIn, ClienteUpdate, RegistroClienteIn
from .errors import ConflictoEstadoError, NoEncontradoError, ValidacionError
from .montos import a_float, dinero

logger = logging.getLogger(__name__)


def serializar_cliente(cliente: Cliente, adeudo: Optional[Decimal] = None) -> dict:
    data = {
        "id": cliente.id,
        "nombre": cliente.nombre,
        "telefono": cliente.telefono,
        "direccion": cliente.direccion,
        "email": cliente.email,
        "notas": cliente.notas,
        "limite_credito": a_float(cliente.limite_credito),
        "aprobado": cliente.aprobado,
        "sucursal_id": cliente.sucursal_id,
        "sucursal_backup_id": cliente.sucursal_backup_id,
        "activo": cliente.activo,
        "created_at": cliente.created_at.isoformat() if cliente.created_at else None,
    }
    if adeudo is not None:
        data["adeudo"] = a_float(adeudo)
    return data


class ClientesService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def _get(self, cliente_id: int) -> Cliente:
        cliente = self.uow.clientes.get(cliente_id)
        if not cliente:
            raise NoEncontradoError(f"Cliente {cliente_id} no encontrado")
        return cliente

    def _validar_sucursales(self, principal: Optional[int], backup: Optional[int]):
        for sucursal_id in (principal, backup):
            if sucursal_id and not self.uow.sucursales.get(sucursal_id):
                raise NoEncontradoError(f"Sucursal {sucursal_id} no encontrada")
        if principal and backup and principal == backup:
            raise ValidacionError("La sucursal de respaldo debe ser distinta de la principal")

    def listar(self, buscar: Optional[str] = None, incluir_inactivos: bool = False) -> List[dict]:
        adeudo = (
            self.uow.db.query(Pedido.cliente_id, func.sum(Pedido.saldo_pendiente).label("adeudo"))
            .filter(Pedido.estado == EstadoPedido.ENTREGADO.value, Pedido.saldo_pendiente > 0)
            .group_by(Pedido.cliente_id)
            .subquery()
        )
        q = (
            self.uow.db.query(Cliente, adeudo.c.adeudo)
            .outerjoin(adeudo, adeudo.c.cliente_id == Cliente.id)
            .filter(Cliente.aprobado == True)  # noqa: E712
        )
        if not incluir_inactivos:
            q = q.filter(Cliente.activo == True)  # noqa: E712
        if buscar:
            q = q.filter(Cliente.nombre.ilike(f"%{buscar.strip()}%"))
        return [serializar_cliente(c, dinero(a)) for c, a in q.order_by(Cliente.nombre).all()]

    def obtener(self, cliente_id: int) -> Cliente:
        return self._get(cliente_id)

    def crear(self, datos: ClienteIn, ctx: RequestContext) -> Cliente:
        self._validar_sucursales(datos.sucursal_id, datos.sucursal_backup_id)
        cliente = Cliente(
            nombre=datos.nombre.strip(),
            telefono=datos.telefono,
            direccion=datos.direccion,
            email=datos.email,
            notas=datos.notas,
            limite_credito=dinero(datos.limite_credito),
            sucursal_id=datos.sucursal_id,
            sucursal_backup_id=datos.sucursal_backup_id,
            aprobado=True,
        )
        self.uow.clientes.add(cliente)
        self.uow.db.flush()
        logger.info("Cliente %s creado por usuario %s", cliente.id, ctx.usuario_id)
        return cliente

    def actualizar(self, cliente_id: int, datos: ClienteUpdate) -> Cliente:
        cliente = self._get(cliente_id)
        cambios = datos.model_dump(exclude_unset=True)
        self._validar_sucursales(
            cambios.get("sucursal_id", cliente.sucursal_id),
            cambios.get("sucursal_backup_id", cliente.sucursal_backup_id),
        )
        for campo, valor in cambios.items():
            if campo == "limite_credito" and valor is not None:
                valor = dinero(valor)
            setattr(cliente, campo, valor)
        self.uow.db.flush()
        return cliente

    def desactivar(self, cliente_id: int) -> Cliente:
        """Baja lógica: los pedidos e historial del cliente se conservan."""
        cliente = self._get(cliente_id)
        cliente.activo = False
        self.uow.db.flush()
        return cliente

    # ===== precios especiales =====

    def listar_precios(self, cliente_id: int) -> List[PrecioCliente]:
        self._get(cliente_id)
        return self.uow.db.query(PrecioCliente).filter_by(cliente_id=cliente_id).all()

    def fijar_precio(self, cliente_id: int, producto_id: int, precio) -> PrecioCliente:
        self._get(cliente_id)
        if not self.uow.productos.get(producto_id):
            raise NoEncontradoError(f"Producto {producto_id} no encontrado")
        existente = self.uow.precios.de_cliente(cliente_id, producto_id)
        if existente:
            existente.precio = dinero(precio)
        else:
            existente = PrecioCliente(cliente_id=cliente_id, producto_id=producto_id, precio=dinero(precio))
            self.uow.db.add(existente)
        self.uow.db.flush()
        return existente

    def eliminar_precio(self, cliente_id: int, producto_id: int):
        existente = self.uow.precios.de_cliente(cliente_id, producto_id)
        if not existente:
            raise NoEncontradoError("El cliente no tiene precio especial para este producto")
        self.uow.db.delete(existente)
        self.uow.db.flush()

    # ===== auto-registro y aprobación =====

    def registrar(self, datos: RegistroClienteIn) -> Usuario:
        email = datos.email.strip().lower()
        if self.uow.usuarios.by_email(email):
            raise ConflictoEstadoError("Ya existe una cuenta con ese correo")
        cliente = Cliente(
            nombre=datos.nombre.strip(),
            telefono=datos.telefono,
            direccion=datos.direccion,
            email=email,
            aprobado=False,
        )
        self.uow.clientes.add(cliente)
        self.uow.db.flush()
        usuario = Usuario(
            nombre=cliente.nombre,
            email=email,
            password_hash=get_password_hash(datos.password),
            rol=UserRole.CLIENTE.value,
            cliente_id=cliente.id,
        )
        self.uow.usuarios.add(usuario)
        self.uow.db.flush()
        logger.info("Registro de cliente %s pendiente de aprobación", cliente.id)
        return usuario

    def pendientes(self) -> List[Cliente]:
        return (
            self.uow.db.query(Cliente)
            .filter(Cliente.aprobado == False, Cliente.activo == True)  # noqa: E712
            .order_by(Cliente.created_at.asc())
            .all()
        )

    def aprobar(self, cliente_id: int, ctx: RequestContext, sucursal_id: Optional[int] = None) -> Cliente:
        cliente = self._get(cliente_id)
        if cliente.aprobado:
            raise ConflictoEstadoError("El cliente ya fue aprobado")
        if not cliente.activo:
            raise ConflictoEstadoError("El registro del cliente fue rechazado")
        if sucursal_id:
            self._validar_sucursales(sucursal_id, cliente.sucursal_backup_id)
            cliente.sucursal_id = sucursal_id
        cliente.aprobado = True
        self.uow.db.flush()
        logger.info("Cliente %s aprobado por usuario %s", cliente.id, ctx.usuario_id)
        return cliente

    def rechazar(self, cliente_id: int, ctx: RequestContext) -> Cliente:
        cliente = self._get(cliente_id)
        if cliente.aprobado:
            raise ConflictoEstadoError("El cliente ya fue aprobado")
        cliente.activo = False
        for usuario in self.uow.db.query(Usuario).filter(Usuario.cliente_id == cliente.id).all():
            usuario.activo = False
        self.uow.db.flush()
        logger.info("Registro de cliente %s rechazado por usuario %s", cliente.id, ctx.usuario_id)
        return cliente
