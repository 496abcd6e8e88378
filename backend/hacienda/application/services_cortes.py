"""
Servicio de Cortes de Sucursal
==============================

Corte diario de caja por sucursal con sus gastos.
- Un corte por (fecha, sucursal)
- Al finalizar, en sucursales físicas: venta_total = efectivo_caja + total_gastos
- Un corte completado solo lo modifica un administrador (permiso cortes.admin)
- Sucursales virtuales: solo gastos, sin caja ni inventario
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy.orm import selectinload

from ..domain.enums import EstadoCorte
from ..domain.models_cortes import CategoriaGasto, Corte, Gasto
from ..infrastructure.unit_of_work import UnitOfWork
from ..security.context import RequestContext
from .dtos import CategoriaGastoIn, CorteIn, CorteUpdate, GastoIn, GastoUpdate
from .errors import ConflictoEstadoError, NoEncontradoError, PermisoDenegadoError
from .montos import CERO, a_float, dinero

logger = logging.getLogger(__name__)


def total_gastos(corte: Corte) -> Decimal:
    return dinero(sum((dinero(g.monto) for g in corte.gastos), CERO))


def serializar_corte_sucursal(corte: Corte, incluir_gastos: bool = True) -> dict:
    gastos = total_gastos(corte)
    data = {
        "id": corte.id,
        "fecha": corte.fecha.isoformat(),
        "sucursal_id": corte.sucursal_id,
        "sucursal_nombre": corte.sucursal.nombre if corte.sucursal else None,
        "sucursal_tipo": corte.sucursal.tipo if corte.sucursal else None,
        "usuario_id": corte.usuario_id,
        "efectivo_caja": a_float(corte.efectivo_caja),
        "venta_total": a_float(corte.venta_total),
        "inventario_nixta": a_float(corte.inventario_nixta),
        "inventario_extra": a_float(corte.inventario_extra),
        "consumo_masa": a_float(corte.consumo_masa),
        "estado": corte.estado,
        "notas": corte.notas,
        "total_gastos": a_float(gastos),
        "debe": a_float(gastos - dinero(corte.venta_total) - dinero(corte.efectivo_caja)),
    }
    if incluir_gastos:
        data["gastos"] = [
            {
                "id": g.id,
                "categoria_id": g.categoria_id,
                "categoria_nombre": g.categoria.nombre if g.categoria else None,
                "descripcion": g.descripcion,
                "monto": a_float(g.monto),
            }
            for g in corte.gastos
        ]
    return data


class CortesService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def _get(self, corte_id: int) -> Corte:
        corte = self.uow.db.get(Corte, corte_id)
        if not corte:
            raise NoEncontradoError(f"Corte {corte_id} no encontrado")
        return corte

    def _validar_editable(self, corte: Corte, ctx: RequestContext, accion: str = "modificar"):
        if corte.estado == EstadoCorte.COMPLETADO.value and not ctx.puede("cortes.admin"):
            raise ConflictoEstadoError(f"No se puede {accion} un corte completado")

    def _validar_sucursal(self, corte_sucursal_id: int, ctx: RequestContext):
        # Encargado de sucursal: solo opera la suya
        if not ctx.puede("cortes.admin") and ctx.sucursal_id and corte_sucursal_id != ctx.sucursal_id:
            raise PermisoDenegadoError("Solo puede operar los cortes de su sucursal")

    def listar(
        self, ctx: RequestContext, sucursal_id: Optional[int] = None,
        desde: Optional[date] = None, hasta: Optional[date] = None,
    ) -> List[Corte]:
        q = self.uow.db.query(Corte).options(selectinload(Corte.gastos), selectinload(Corte.sucursal))
        if not ctx.puede("cortes.admin") and ctx.sucursal_id:
            q = q.filter(Corte.sucursal_id == ctx.sucursal_id)
        elif sucursal_id:
            q = q.filter(Corte.sucursal_id == sucursal_id)
        if desde:
            q = q.filter(Corte.fecha >= desde)
        if hasta:
            q = q.filter(Corte.fecha <= hasta)
        return q.order_by(Corte.fecha.desc(), Corte.id.desc()).all()

    def obtener(self, corte_id: int, ctx: RequestContext) -> Corte:
        corte = self._get(corte_id)
        self._validar_sucursal(corte.sucursal_id, ctx)
        return corte

    def crear(self, datos: CorteIn, ctx: RequestContext) -> Corte:
        sucursal = self.uow.sucursales.get(datos.sucursal_id)
        if not sucursal:
            raise NoEncontradoError(f"Sucursal {datos.sucursal_id} no encontrada")
        self._validar_sucursal(sucursal.id, ctx)
        existente = self.uow.db.query(Corte).filter_by(fecha=datos.fecha, sucursal_id=sucursal.id).first()
        if existente:
            raise ConflictoEstadoError(f"Ya existe un corte para {sucursal.nombre} el {datos.fecha.isoformat()}")

        if sucursal.es_virtual:
            corte = Corte(fecha=datos.fecha, sucursal_id=sucursal.id, usuario_id=ctx.usuario_id, notas=datos.notas)
        else:
            corte = Corte(
                fecha=datos.fecha,
                sucursal_id=sucursal.id,
                usuario_id=ctx.usuario_id,
                efectivo_caja=dinero(datos.efectivo_caja),
                venta_total=CERO,
                inventario_nixta=datos.inventario_nixta,
                inventario_extra=datos.inventario_extra,
                consumo_masa=datos.consumo_masa,
                notas=datos.notas,
            )
        self.uow.db.add(corte)
        self.uow.db.flush()
        logger.info("Corte %s creado (sucursal=%s fecha=%s)", corte.id, sucursal.id, datos.fecha)
        return corte

    def actualizar(self, corte_id: int, datos: CorteUpdate, ctx: RequestContext) -> Corte:
        corte = self.obtener(corte_id, ctx)
        self._validar_editable(corte, ctx)
        cambios = datos.model_dump(exclude_unset=True)
        if corte.sucursal and corte.sucursal.es_virtual:
            cambios = {k: v for k, v in cambios.items() if k == "notas"}
        for campo, valor in cambios.items():
            setattr(corte, campo, dinero(valor) if campo == "efectivo_caja" and valor is not None else valor)
        self.uow.db.flush()
        return corte

    def finalizar(self, corte_id: int, ctx: RequestContext) -> Corte:
        corte = self.obtener(corte_id, ctx)
        if corte.estado == EstadoCorte.COMPLETADO.value:
            raise ConflictoEstadoError("El corte ya está completado")
        if not (corte.sucursal and corte.sucursal.es_virtual):
            corte.venta_total = dinero(corte.efectivo_caja) + total_gastos(corte)
        corte.estado = EstadoCorte.COMPLETADO.value
        self.uow.db.flush()
        logger.info("Corte %s finalizado: venta_total=%s", corte.id, corte.venta_total)
        return corte

    def eliminar(self, corte_id: int, ctx: RequestContext):
        corte = self.obtener(corte_id, ctx)
        self._validar_editable(corte, ctx, "eliminar")
        self.uow.db.delete(corte)
        self.uow.db.flush()

    # ===== gastos =====

    def _validar_categoria(self, categoria_id: Optional[int]):
        if categoria_id and not self.uow.db.get(CategoriaGasto, categoria_id):
            raise NoEncontradoError(f"Categoría {categoria_id} no encontrada")

    def agregar_gasto(self, corte_id: int, datos: GastoIn, ctx: RequestContext) -> Gasto:
        corte = self.obtener(corte_id, ctx)
        self._validar_editable(corte, ctx, "agregar gastos a")
        self._validar_categoria(datos.categoria_id)
        gasto = Gasto(categoria_id=datos.categoria_id, descripcion=datos.descripcion, monto=dinero(datos.monto))
        corte.gastos.append(gasto)
        self.uow.db.flush()
        return gasto

    def _gasto(self, gasto_id: int, ctx: RequestContext) -> Gasto:
        gasto = self.uow.db.get(Gasto, gasto_id)
        if not gasto:
            raise NoEncontradoError(f"Gasto {gasto_id} no encontrado")
        self._validar_sucursal(gasto.corte.sucursal_id, ctx)
        return gasto

    def actualizar_gasto(self, gasto_id: int, datos: GastoUpdate, ctx: RequestContext) -> Gasto:
        gasto = self._gasto(gasto_id, ctx)
        self._validar_editable(gasto.corte, ctx, "modificar gastos de")
        cambios = datos.model_dump(exclude_unset=True)
        if "categoria_id" in cambios:
            self._validar_categoria(cambios["categoria_id"])
        for campo, valor in cambios.items():
            setattr(gasto, campo, dinero(valor) if campo == "monto" else valor)
        self.uow.db.flush()
        return gasto

    def eliminar_gasto(self, gasto_id: int, ctx: RequestContext):
        gasto = self._gasto(gasto_id, ctx)
        self._validar_editable(gasto.corte, ctx, "eliminar gastos de")
        self.uow.db.delete(gasto)
        self.uow.db.flush()

    # ===== categorías =====

    def listar_categorias(self, incluir_inactivas: bool = False) -> List[CategoriaGasto]:
        q = self.uow.db.query(CategoriaGasto)
        if not incluir_inactivas:
            q = q.filter(CategoriaGasto.activa == True)  # noqa: E712
        return q.order_by(CategoriaGasto.tipo, CategoriaGasto.nombre).all()

    def crear_categoria(self, datos: CategoriaGastoIn) -> CategoriaGasto:
        if self.uow.db.query(CategoriaGasto).filter_by(nombre=datos.nombre.strip()).first():
            raise ConflictoEstadoError("Ya existe una categoría con ese nombre")
        categoria = CategoriaGasto(nombre=datos.nombre.strip(), tipo=datos.tipo.value)
        self.uow.db.add(categoria)
        self.uow.db.flush()
        return categoria
