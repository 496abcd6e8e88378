"""
Tests del historial de pedidos

- Una entrada por operación que muta el pedido
- Listado del más reciente al más antiguo
- Acciones del sistema sin usuario
"""
from decimal import Decimal

from hacienda.domain.enums import AccionHistorial
from hacienda.application.dtos import EntregaIn
from hacienda.application.services_abonos import AbonosService
from hacienda.application.services_historial import listar_historial
from hacienda.application.services_pedidos import PedidosService
from hacienda.security.context import SISTEMA


class TestHistorialPedido:
    """Registro de acciones por pedido"""

    def test_una_entrada_por_operacion(self, db, uow, ctx, nuevo_pedido):
        service = PedidosService(uow)
        pedido = nuevo_pedido("5")
        service.preparar(pedido.id, ctx.admin)
        service.agregar_nota(pedido.id, "Sin chile", ctx.admin)
        service.despachar(pedido.id, ctx.admin)
        service.entregar(pedido.id, EntregaIn(monto_pagado=Decimal("20")), ctx.admin)
        AbonosService(uow).registrar_pago(Decimal("30"), ctx.admin, pedido_id=pedido.id)

        acciones = [e["accion"] for e in listar_historial(db, pedido.id)]
        assert acciones == [
            AccionHistorial.PAGO_REGISTRADO.value,
            AccionHistorial.ESTADO_ENTREGADO.value,
            AccionHistorial.ESTADO_EN_CAMINO.value,
            AccionHistorial.NOTA_AGREGADA.value,
            AccionHistorial.ESTADO_PREPARADO.value,
            AccionHistorial.CREADO.value,
        ]

    def test_entrada_con_usuario_y_datos(self, db, uow, datos, ctx, nuevo_pedido):
        pedido = nuevo_pedido("5")
        PedidosService(uow).preparar(pedido.id, ctx.admin)

        ultima = listar_historial(db, pedido.id)[0]
        assert ultima["accion_label"] == "Cambió a Preparado"
        assert ultima["usuario_id"] == datos.admin.id
        assert ultima["usuario_nombre"] == "Admin"
        assert ultima["usuario_rol"] == "admin"
        assert ultima["ip_address"] == "127.0.0.1"
        assert ultima["datos_anteriores"]["estado"] == "pendiente"
        assert ultima["datos_nuevos"]["estado"] == "preparado"
        assert ultima["created_at"] is not None

    def test_accion_del_sistema(self, db, nuevo_pedido):
        pedido = nuevo_pedido("1", contexto=SISTEMA)
        entrada = listar_historial(db, pedido.id)[0]
        assert entrada["usuario_id"] is None
        assert entrada["usuario_nombre"] == "Sistema"
        assert pedido.creado_por is None

    def test_historial_de_pago_refleja_saldos(self, db, uow, ctx, pedido_entregado):
        pedido = pedido_entregado("5", pagado="40")
        AbonosService(uow).registrar_pago(Decimal("25"), ctx.admin, pedido_id=pedido.id)

        entrada = listar_historial(db, pedido.id)[0]
        assert entrada["datos_anteriores"] == {"saldo_pendiente": 60.0}
        assert entrada["datos_nuevos"]["saldo_pendiente"] == 35.0
        assert entrada["datos_nuevos"]["monto"] == 25.0

    def test_pedido_sin_historial_ajeno(self, db, nuevo_pedido):
        a = nuevo_pedido("1")
        b = nuevo_pedido("2")
        assert len(listar_historial(db, a.id)) == 1
        assert len(listar_historial(db, b.id)) == 1
