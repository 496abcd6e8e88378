"""
Tests de cortes de caja por sucursal y gastos
"""
from datetime import date
from decimal import Decimal

import pytest

from hacienda.domain.enums import EstadoCorte, TipoGasto
from hacienda.application.dtos import CategoriaGastoIn, CorteIn, CorteUpdate, GastoIn, GastoUpdate
from hacienda.application.errors import ConflictoEstadoError, PermisoDenegadoError
from hacienda.application.services_cortes import CortesService, serializar_corte_sucursal, total_gastos

FECHA = date(2024, 3, 1)


@pytest.fixture
def categoria(uow):
    return CortesService(uow).crear_categoria(CategoriaGastoIn(nombre="Gasolina"))


@pytest.fixture
def corte_matriz(uow, datos, ctx):
    return CortesService(uow).crear(
        CorteIn(fecha=FECHA, sucursal_id=datos.matriz.id, efectivo_caja=Decimal("1500")),
        ctx.encargado,
    )


class TestCorteSucursal:
    """Alta, gastos y finalización"""

    def test_finalizar_calcula_venta_total(self, uow, ctx, categoria, corte_matriz):
        service = CortesService(uow)
        service.agregar_gasto(corte_matriz.id, GastoIn(categoria_id=categoria.id, monto=Decimal("200")), ctx.encargado)
        service.agregar_gasto(corte_matriz.id, GastoIn(descripcion="Bolsas", monto=Decimal("100")), ctx.encargado)

        corte = service.finalizar(corte_matriz.id, ctx.encargado)
        assert corte.estado == EstadoCorte.COMPLETADO.value
        assert total_gastos(corte) == Decimal("300.00")
        assert corte.venta_total == Decimal("1800.00")

        data = serializar_corte_sucursal(corte)
        assert data["total_gastos"] == 300.0
        assert [g["categoria_nombre"] for g in data["gastos"]] == ["Gasolina", None]

    def test_un_corte_por_dia_y_sucursal(self, uow, datos, ctx, corte_matriz):
        with pytest.raises(ConflictoEstadoError):
            CortesService(uow).crear(CorteIn(fecha=FECHA, sucursal_id=datos.matriz.id), ctx.encargado)

    def test_encargado_solo_su_sucursal(self, uow, datos, ctx):
        with pytest.raises(PermisoDenegadoError):
            CortesService(uow).crear(CorteIn(fecha=FECHA, sucursal_id=datos.centro.id), ctx.encargado)

    def test_listado_filtrado_por_sucursal_del_encargado(self, uow, datos, ctx, corte_matriz):
        CortesService(uow).crear(CorteIn(fecha=FECHA, sucursal_id=datos.centro.id), ctx.admin)
        assert [c.id for c in CortesService(uow).listar(ctx.encargado)] == [corte_matriz.id]
        assert len(CortesService(uow).listar(ctx.admin)) == 2

    def test_completado_no_editable_sin_permiso_admin(self, uow, ctx, corte_matriz):
        service = CortesService(uow)
        gasto = service.agregar_gasto(corte_matriz.id, GastoIn(monto=Decimal("50")), ctx.encargado)
        service.finalizar(corte_matriz.id, ctx.encargado)

        with pytest.raises(ConflictoEstadoError):
            service.actualizar(corte_matriz.id, CorteUpdate(notas="tarde"), ctx.encargado)
        with pytest.raises(ConflictoEstadoError):
            service.agregar_gasto(corte_matriz.id, GastoIn(monto=Decimal("10")), ctx.encargado)
        with pytest.raises(ConflictoEstadoError):
            service.actualizar_gasto(gasto.id, GastoUpdate(monto=Decimal("60")), ctx.encargado)
        with pytest.raises(ConflictoEstadoError):
            service.eliminar(corte_matriz.id, ctx.encargado)

        corte = service.actualizar(corte_matriz.id, CorteUpdate(notas="Corrección"), ctx.admin)
        assert corte.notas == "Corrección"

    def test_finalizar_dos_veces(self, uow, ctx, corte_matriz):
        service = CortesService(uow)
        service.finalizar(corte_matriz.id, ctx.encargado)
        with pytest.raises(ConflictoEstadoError):
            service.finalizar(corte_matriz.id, ctx.admin)

    def test_sucursal_virtual_solo_gastos(self, uow, datos, ctx):
        service = CortesService(uow)
        corte = service.crear(
            CorteIn(fecha=FECHA, sucursal_id=datos.oficina.id, efectivo_caja=Decimal("999")), ctx.admin
        )
        assert corte.efectivo_caja is None

        service.actualizar(corte.id, CorteUpdate(efectivo_caja=Decimal("10"), notas="Papelería"), ctx.admin)
        assert corte.efectivo_caja is None
        assert corte.notas == "Papelería"

        service.agregar_gasto(corte.id, GastoIn(monto=Decimal("80")), ctx.admin)
        service.finalizar(corte.id, ctx.admin)
        assert corte.venta_total is None
        assert total_gastos(corte) == Decimal("80.00")

    def test_eliminar_gasto_de_borrador(self, uow, ctx, corte_matriz):
        service = CortesService(uow)
        gasto = service.agregar_gasto(corte_matriz.id, GastoIn(monto=Decimal("50")), ctx.encargado)
        service.eliminar_gasto(gasto.id, ctx.encargado)
        uow.db.refresh(corte_matriz)
        assert corte_matriz.gastos == []


class TestCategoriasGasto:
    """Catálogo de categorías"""

    def test_nombre_unico(self, uow, categoria):
        with pytest.raises(ConflictoEstadoError):
            CortesService(uow).crear_categoria(CategoriaGastoIn(nombre=" Gasolina "))

    def test_listado_por_tipo(self, uow, categoria):
        CortesService(uow).crear_categoria(CategoriaGastoIn(nombre="Nómina semanal", tipo=TipoGasto.NOMINA))
        nombres = [c.nombre for c in CortesService(uow).listar_categorias()]
        assert nombres == ["Nómina semanal", "Gasolina"]
