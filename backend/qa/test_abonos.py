"""
Tests de abonos: pagos dirigidos a un pedido y pagos a la deuda del cliente

Cubre:
- Pago dirigido dentro del saldo / mayor al saldo
- Pago distribuido del pedido más antiguo al más reciente
- Conservación: total = pagado + saldo en cada pedido tocado
- Un pago fallido no deja abonos ni historial
"""
from datetime import date
from decimal import Decimal

import pytest

from hacienda.domain.enums import AccionHistorial, MetodoPago, OrigenAbono
from hacienda.domain.models_abonos import Abono
from hacienda.domain.models_historial import HistorialPedido
from hacienda.application.errors import (
    ConflictoEstadoError, MontoExcedeDeudaError, MontoExcedeSaldoError,
    NoEncontradoError, PermisoDenegadoError, ValidacionError,
)
from hacienda.application.services_abonos import AbonosService


def entradas(db, pedido_id, accion=None):
    q = db.query(HistorialPedido).filter(HistorialPedido.pedido_id == pedido_id)
    if accion:
        q = q.filter(HistorialPedido.accion == accion.value)
    return q.count()


def assert_conserva(pedido):
    assert pedido.monto_pagado + pedido.saldo_pendiente == pedido.total
    assert pedido.saldo_pendiente >= 0


class TestPagoDirigido:
    """Pago a un pedido específico"""

    def test_abonos_parciales_y_excedente(self, db, uow, ctx, pedido_entregado):
        """Pedido de 300 sin pago: abona 100, luego 50; un abono de 200 se rechaza"""
        pedido = pedido_entregado("15")
        assert pedido.total == Decimal("300.00")
        service = AbonosService(uow)

        service.registrar_pago(Decimal("100"), ctx.admin, pedido_id=pedido.id)
        assert pedido.monto_pagado == Decimal("100.00")
        assert pedido.saldo_pendiente == Decimal("200.00")

        resumen = service.registrar_pago(Decimal("50"), ctx.admin, pedido_id=pedido.id)
        assert pedido.monto_pagado == Decimal("150.00")
        assert pedido.saldo_pendiente == Decimal("150.00")
        assert resumen["pedidos_afectados"] == 1
        assert resumen["detalles"][0]["nuevo_saldo"] == 150.0

        with pytest.raises(MontoExcedeSaldoError):
            service.registrar_pago(Decimal("200"), ctx.admin, pedido_id=pedido.id)

        assert pedido.saldo_pendiente == Decimal("150.00")
        assert db.query(Abono).filter_by(pedido_id=pedido.id).count() == 2
        assert entradas(db, pedido.id, AccionHistorial.PAGO_REGISTRADO) == 2
        assert_conserva(pedido)

    def test_pago_exacto_liquida(self, uow, ctx, pedido_entregado):
        pedido = pedido_entregado("5", pagado="30")
        AbonosService(uow).registrar_pago(Decimal("70"), ctx.admin, pedido_id=pedido.id, tipo=MetodoPago.TRANSFERENCIA)
        assert pedido.saldo_pendiente == Decimal("0.00")
        assert pedido.monto_pagado == pedido.total

    def test_abono_registra_origen_y_fecha(self, db, uow, ctx, pedido_entregado, dia):
        pedido = pedido_entregado("5")
        AbonosService(uow).registrar_pago(Decimal("25"), ctx.admin, pedido_id=pedido.id, fecha=dia, notas="Dejó en tienda")
        abono = db.query(Abono).filter_by(pedido_id=pedido.id).one()
        assert abono.origen == OrigenAbono.ABONO.value
        assert abono.fecha == dia
        assert abono.cliente_id == pedido.cliente_id
        assert abono.registrado_por == ctx.admin.usuario_id

    def test_pedido_pagado_no_acepta_abonos(self, uow, ctx, pedido_entregado):
        pedido = pedido_entregado("5", pagado="100")
        with pytest.raises(ConflictoEstadoError):
            AbonosService(uow).registrar_pago(Decimal("1"), ctx.admin, pedido_id=pedido.id)

    def test_pedido_no_entregado_no_acepta_abonos(self, uow, ctx, nuevo_pedido):
        pedido = nuevo_pedido("5")
        with pytest.raises(ConflictoEstadoError):
            AbonosService(uow).registrar_pago(Decimal("10"), ctx.admin, pedido_id=pedido.id)

    def test_pedido_de_otro_cliente(self, uow, datos, ctx, pedido_entregado):
        pedido = pedido_entregado("5", cliente=datos.fonda)
        with pytest.raises(NoEncontradoError):
            AbonosService(uow).registrar_pago(Decimal("10"), ctx.admin, pedido_id=pedido.id, cliente_id=datos.taqueria.id)

    def test_monto_cero_rechazado(self, uow, ctx, pedido_entregado):
        pedido = pedido_entregado("5")
        with pytest.raises(ValidacionError):
            AbonosService(uow).registrar_pago(Decimal("0"), ctx.admin, pedido_id=pedido.id)

    def test_sin_pedido_ni_cliente(self, uow, ctx):
        with pytest.raises(ValidacionError):
            AbonosService(uow).registrar_pago(Decimal("10"), ctx.admin)

    def test_repartidor_no_cobra_pedido_ajeno(self, uow, datos, ctx, pedido_entregado):
        pedido = pedido_entregado("5", repartidor=datos.repartidor2)
        with pytest.raises(PermisoDenegadoError):
            AbonosService(uow).registrar_pago(Decimal("10"), ctx.repartidor, pedido_id=pedido.id)


class TestPagoDistribuido:
    """Pago a la deuda total del cliente"""

    @pytest.fixture
    def deuda(self, datos, pedido_entregado):
        """A (más antiguo) debe 80; B debe 120."""
        a = pedido_entregado("5", pagado="20", cliente=datos.fonda, fecha=date(2024, 1, 1))
        b = pedido_entregado("6", cliente=datos.fonda, fecha=date(2024, 1, 2))
        return a, b

    def test_liquida_el_mas_antiguo_primero(self, db, uow, datos, ctx, deuda):
        a, b = deuda
        resumen = AbonosService(uow).registrar_pago(Decimal("150"), ctx.admin, cliente_id=datos.fonda.id)

        assert a.saldo_pendiente == Decimal("0.00")
        assert b.saldo_pendiente == Decimal("50.00")
        assert resumen["monto_total"] == 150.0
        assert resumen["monto_aplicado"] == 150.0
        assert resumen["pedidos_afectados"] == 2
        assert [d["pedido_id"] for d in resumen["detalles"]] == [a.id, b.id]
        assert [d["monto_aplicado"] for d in resumen["detalles"]] == [80.0, 70.0]
        assert resumen["nuevo_adeudo_cliente"] == 50.0

        assert entradas(db, a.id, AccionHistorial.ABONO_REGISTRADO) == 1
        assert entradas(db, b.id, AccionHistorial.ABONO_REGISTRADO) == 1
        assert_conserva(a)
        assert_conserva(b)

    def test_orden_por_fecha_no_por_alta(self, uow, datos, ctx, pedido_entregado):
        """El pedido con fecha más antigua se cobra primero aunque se haya capturado después"""
        reciente = pedido_entregado("5", cliente=datos.fonda, fecha=date(2024, 1, 10))
        antiguo = pedido_entregado("5", cliente=datos.fonda, fecha=date(2024, 1, 3))

        AbonosService(uow).registrar_pago(Decimal("100"), ctx.admin, cliente_id=datos.fonda.id)
        assert antiguo.saldo_pendiente == Decimal("0.00")
        assert reciente.saldo_pendiente == Decimal("100.00")

    def test_un_abono_por_pedido_tocado(self, db, uow, datos, ctx, deuda):
        a, b = deuda
        AbonosService(uow).registrar_pago(Decimal("50"), ctx.admin, cliente_id=datos.fonda.id)
        assert db.query(Abono).filter_by(pedido_id=a.id, origen=OrigenAbono.ABONO.value).count() == 1
        assert db.query(Abono).filter_by(pedido_id=b.id, origen=OrigenAbono.ABONO.value).count() == 0
        assert a.saldo_pendiente == Decimal("30.00")
        assert b.saldo_pendiente == Decimal("120.00")

    def test_excede_deuda_no_modifica_nada(self, db, uow, datos, ctx, deuda):
        a, b = deuda
        abonos_antes = db.query(Abono).count()
        historial_antes = db.query(HistorialPedido).count()

        with pytest.raises(MontoExcedeDeudaError):
            AbonosService(uow).registrar_pago(Decimal("200.01"), ctx.admin, cliente_id=datos.fonda.id)

        assert a.saldo_pendiente == Decimal("80.00")
        assert b.saldo_pendiente == Decimal("120.00")
        assert db.query(Abono).count() == abonos_antes
        assert db.query(HistorialPedido).count() == historial_antes

    def test_cliente_sin_deuda(self, uow, datos, ctx):
        with pytest.raises(ValidacionError):
            AbonosService(uow).registrar_pago(Decimal("10"), ctx.admin, cliente_id=datos.taqueria.id)

    def test_cliente_inexistente(self, uow, ctx):
        with pytest.raises(NoEncontradoError):
            AbonosService(uow).registrar_pago(Decimal("10"), ctx.admin, cliente_id=9999)

    def test_ignora_pedidos_no_entregados(self, uow, datos, ctx, deuda, nuevo_pedido):
        pendiente = nuevo_pedido("10", cliente=datos.fonda, fecha=date(2023, 12, 1))
        AbonosService(uow).registrar_pago(Decimal("200"), ctx.admin, cliente_id=datos.fonda.id)
        assert pendiente.monto_pagado == Decimal("0.00")
        assert pendiente.saldo_pendiente == pendiente.total


class TestConsultasDeuda:
    """Resumen de deuda y cartera"""

    def test_resumen_deuda_cliente(self, uow, datos, pedido_entregado):
        pedido_entregado("5", pagado="20", cliente=datos.fonda, fecha=date(2024, 1, 1))
        pedido_entregado("6", cliente=datos.fonda, fecha=date(2024, 1, 2))

        resumen = AbonosService(uow).resumen_deuda_cliente(datos.fonda.id)
        assert resumen["adeudo_total"] == 200.0
        assert resumen["limite_credito"] == 200.0
        assert resumen["credito_disponible"] == 0.0
        assert [p["pendiente"] for p in resumen["pedidos_pendientes"]] == [80.0, 120.0]

    def test_clientes_con_deuda_ordenados(self, uow, datos, pedido_entregado):
        pedido_entregado("2", cliente=datos.fonda)
        pedido_entregado("7", cliente=datos.taqueria)
        pedido_entregado("5", pagado="100", cliente=datos.fonda)

        cartera = AbonosService(uow).clientes_con_deuda()
        assert [c["id"] for c in cartera] == [datos.taqueria.id, datos.fonda.id]
        assert cartera[0]["adeudo"] == 140.0
        assert cartera[1]["pedidos_pendientes"] == 1

    def test_historial_pagos_cliente(self, uow, datos, ctx, pedido_entregado):
        pedido = pedido_entregado("5", pagado="40", cliente=datos.fonda)
        AbonosService(uow).registrar_pago(Decimal("10"), ctx.admin, pedido_id=pedido.id)

        historial = AbonosService(uow).historial_pagos_cliente(datos.fonda.id)
        assert len(historial["pagos"]) == 2
        assert historial["total_pagado"] == 50.0
        assert historial["adeudo_actual"] == 50.0

    def test_total_pagado_no_depende_del_limite(self, uow, datos, ctx, pedido_entregado):
        pedido = pedido_entregado("5", pagado="40", cliente=datos.fonda)
        service = AbonosService(uow)
        service.registrar_pago(Decimal("10"), ctx.admin, pedido_id=pedido.id)
        service.registrar_pago(Decimal("5"), ctx.admin, pedido_id=pedido.id)

        historial = service.historial_pagos_cliente(datos.fonda.id, limit=1)
        assert len(historial["pagos"]) == 1
        assert historial["total_pagado"] == 55.0

        historial = service.historial_pagos_cliente(datos.fonda.id, desde=date(2099, 1, 1))
        assert historial["pagos"] == []
        assert historial["total_pagado"] == 0.0
