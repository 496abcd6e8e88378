"""
Tests del portal de clientes

Un usuario con rol cliente solo ve y opera los pedidos de su propio
cliente, levanta pedidos dentro de su límite de crédito y cancela
únicamente mientras el pedido sigue pendiente.
"""
from datetime import date
from decimal import Decimal

import pytest

from hacienda.domain.enums import AccionHistorial, EstadoPedido
from hacienda.domain.models import PrecioCliente
from hacienda.domain.models_historial import HistorialPedido
from hacienda.domain.models_pedidos import Pedido
from hacienda.application.dtos import DetallePedidoIn, PedidoClienteIn, PerfilClienteUpdate
from hacienda.application.errors import (
    ConflictoEstadoError, NoEncontradoError, PermisoDenegadoError, ValidacionError,
)
from hacienda.application.services_pedidos import PedidosService
from hacienda.application.services_portal import PortalClienteService
from hacienda.security.auth import build_context


@pytest.fixture
def ctx_cliente(cuenta_fonda):
    return build_context(cuenta_fonda)


def pedido_de(datos, kilos, producto=None):
    producto = producto or datos.tortilla
    return PedidoClienteIn(detalles=[DetallePedidoIn(producto_id=producto.id, cantidad=Decimal(kilos))])


class TestContextoCliente:
    """Alcance del usuario del portal"""

    def test_contexto_acotado_al_cliente(self, datos, ctx_cliente):
        assert ctx_cliente.cliente_id == datos.fonda.id
        assert ctx_cliente.solo_cliente is True
        assert ctx_cliente.solo_propios is False
        assert ctx_cliente.puede("portal.pedidos")
        assert not ctx_cliente.puede("pedidos.view")

    def test_personal_no_es_cliente(self, uow, ctx):
        assert ctx.admin.solo_cliente is False
        assert ctx.repartidor.solo_cliente is False
        with pytest.raises(PermisoDenegadoError):
            PortalClienteService(uow).perfil(ctx.admin)

    def test_cliente_desactivado(self, db, uow, datos, ctx_cliente):
        datos.fonda.activo = False
        db.flush()
        with pytest.raises(PermisoDenegadoError):
            PortalClienteService(uow).perfil(ctx_cliente)


class TestPerfilYProductos:
    """Perfil, crédito y lista de precios del cliente"""

    def test_perfil_con_credito(self, uow, datos, ctx_cliente, pedido_entregado):
        pedido_entregado("4", pagado="30", cliente=datos.fonda)
        perfil = PortalClienteService(uow).perfil(ctx_cliente)
        assert perfil["nombre"] == "Fonda Doña Mary"
        assert perfil["sucursal"]["nombre"] == "Matriz"
        assert perfil["sucursal_backup"]["nombre"] == "Centro"
        assert perfil["credito"] == {"limite": 200.0, "adeudo": 50.0, "disponible": 150.0, "porcentaje_usado": 25.0}

    def test_actualizar_perfil_solo_contacto(self, uow, datos, ctx_cliente):
        perfil = PortalClienteService(uow).actualizar_perfil(
            PerfilClienteUpdate(telefono="555-123-4567"), ctx_cliente,
        )
        assert perfil["telefono"] == "555-123-4567"
        assert datos.fonda.nombre == "Fonda Doña Mary"

    def test_productos_con_precio_del_cliente(self, db, uow, datos, ctx_cliente):
        db.add(PrecioCliente(cliente_id=datos.fonda.id, producto_id=datos.tortilla.id, precio=Decimal("18.00")))
        db.flush()
        productos = {p["nombre"]: p for p in PortalClienteService(uow).productos(ctx_cliente)}
        assert productos["Tortilla"]["precio_cliente"] == 18.0
        assert productos["Tortilla"]["tiene_precio_especial"] is True
        assert productos["Masa"]["precio_cliente"] == 15.0
        assert productos["Masa"]["tiene_precio_especial"] is False


class TestPedidosCliente:
    """Pedidos levantados y consultados desde el portal"""

    def test_crear_pedido_propio(self, db, uow, datos, ctx_cliente, cuenta_fonda):
        pedido, credito = PortalClienteService(uow).crear_pedido(pedido_de(datos, "5"), ctx_cliente)
        assert pedido.cliente_id == datos.fonda.id
        assert pedido.fecha == date.today()
        assert pedido.total == Decimal("100.00")
        assert pedido.repartidor_id is None
        assert pedido.sucursal_principal_id == datos.matriz.id
        assert pedido.creado_por == cuenta_fonda.id
        assert credito == {"adeudo_anterior": 0.0, "nuevo_adeudo": 100.0, "disponible": 100.0}
        entradas = db.query(HistorialPedido).filter_by(pedido_id=pedido.id).all()
        assert [e.accion for e in entradas] == [AccionHistorial.CREADO.value]

    def test_limite_de_credito(self, db, uow, datos, ctx_cliente, pedido_entregado):
        pedido_entregado("7.5", cliente=datos.fonda)  # adeudo 150 de 200
        service = PortalClienteService(uow)

        with pytest.raises(ValidacionError) as exc:
            service.crear_pedido(pedido_de(datos, "3"), ctx_cliente)
        assert "Límite de crédito" in exc.value.message
        assert db.query(Pedido).count() == 1

        pedido, credito = service.crear_pedido(pedido_de(datos, "2.5"), ctx_cliente)
        assert pedido.total == Decimal("50.00")
        assert credito["disponible"] == 0.0

    def test_solo_ve_sus_pedidos(self, uow, datos, ctx_cliente, nuevo_pedido):
        propio = nuevo_pedido("2", cliente=datos.fonda)
        ajeno = nuevo_pedido("2", cliente=datos.taqueria)
        service = PortalClienteService(uow)

        total, items = service.listar_pedidos(ctx_cliente)
        assert total == 1
        assert [p.id for p in items] == [propio.id]
        assert service.obtener_pedido(propio.id, ctx_cliente).id == propio.id
        with pytest.raises(NoEncontradoError):
            service.obtener_pedido(ajeno.id, ctx_cliente)

    def test_servicio_de_pedidos_respeta_al_cliente(self, uow, datos, ctx_cliente, nuevo_pedido):
        ajeno = nuevo_pedido("2", cliente=datos.taqueria)
        with pytest.raises(NoEncontradoError):
            PedidosService(uow).cancelar(ajeno.id, ctx_cliente)
        assert ajeno.estado == EstadoPedido.PENDIENTE.value

    def test_detalle_incluye_abonos(self, uow, datos, ctx_cliente, pedido_entregado):
        pedido = pedido_entregado("5", pagado="40", cliente=datos.fonda)
        service = PortalClienteService(uow)
        detalle = service.serializar_pedido(service.obtener_pedido(pedido.id, ctx_cliente))
        assert detalle["saldo_pendiente"] == 60.0
        assert [a["monto"] for a in detalle["abonos"]] == [40.0]

    def test_adeudo(self, uow, datos, ctx_cliente, pedido_entregado):
        pedido_entregado("5", pagado="20", cliente=datos.fonda, fecha=date(2024, 1, 1))
        pedido_entregado("3", cliente=datos.taqueria)
        adeudo = PortalClienteService(uow).adeudo(ctx_cliente)
        assert adeudo["adeudo_total"] == 80.0
        assert [p["pendiente"] for p in adeudo["pedidos_pendientes"]] == [80.0]

    def test_inicio(self, uow, datos, ctx_cliente, nuevo_pedido, pedido_entregado):
        nuevo_pedido("1", cliente=datos.fonda)
        pedido_entregado("2", cliente=datos.fonda)
        inicio = PortalClienteService(uow).inicio(ctx_cliente)
        assert inicio["estadisticas"] == {
            "pedidos_este_mes": 2, "total_gastado_mes": 40.0, "pedidos_con_adeudo": 1,
        }
        assert len(inicio["ultimos_pedidos"]) == 2


class TestCancelacionCliente:
    """El cliente cancela solo pedidos pendientes"""

    def test_cancela_pendiente(self, db, uow, datos, ctx_cliente):
        service = PortalClienteService(uow)
        pedido, _ = service.crear_pedido(pedido_de(datos, "1"), ctx_cliente)

        cancelado = service.cancelar_pedido(pedido.id, ctx_cliente)
        assert cancelado.estado == EstadoPedido.CANCELADO.value
        ultima = (
            db.query(HistorialPedido)
            .filter_by(pedido_id=pedido.id)
            .order_by(HistorialPedido.id.desc())
            .first()
        )
        assert ultima.accion == AccionHistorial.ESTADO_CANCELADO.value
        assert "Cancelado por el cliente" in ultima.descripcion

    def test_no_cancela_pedido_en_preparacion(self, uow, datos, ctx, ctx_cliente, nuevo_pedido):
        pedido = nuevo_pedido("1", cliente=datos.fonda)
        PedidosService(uow).preparar(pedido.id, ctx.admin)
        with pytest.raises(ConflictoEstadoError):
            PortalClienteService(uow).cancelar_pedido(pedido.id, ctx_cliente)
        assert pedido.estado == EstadoPedido.PREPARADO.value
