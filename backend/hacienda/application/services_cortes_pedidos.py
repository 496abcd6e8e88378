"""
Servicio de Corte de Pedidos (cierre de caja por repartidor)
============================================================

Para un (fecha, repartidor) se arman las líneas de cobro:
- 'entrega': cobros al entregar hechos ese día (fecha del abono de entrega,
  no la fecha del pedido)
- 'abono': abonos posteriores registrados ese día en pedidos del repartidor

El operador marca cada línea como recibida o no. Al confirmar:
    esperado   = suma de todas las líneas
    recibido   = suma de las líneas recibidas
    diferencia = recibido - esperado  (negativo = faltante)

El corte completado es de solo lectura. No existe reapertura.
"""
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from typing import Dict, Iterable, List, Optional, Tuple
import calendar
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from ..config import settings
from ..domain.enums import EstadoCorte, EstadoPedido, OrigenAbono, TipoDetalleCierre
from ..domain.models import Usuario
from ..domain.models_abonos import Abono
from ..domain.models_cortes_pedidos import CortePedidos, DetalleCierre
from ..domain.models_pedidos import Pedido
from ..infrastructure.pdf_utils import create_report_pdf
from ..infrastructure.unit_of_work import UnitOfWork
from ..security.context import RequestContext
from .dtos import MarcaCierreIn
from .errors import CorteCerradoError, NoEncontradoError, PermisoDenegadoError, ValidacionError
from .montos import CERO, a_float, dinero

logger = logging.getLogger(__name__)

DIAS = ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"]


@dataclass
class LineaCobro:
    tipo: str
    referencia_id: int  # pedido_id para 'entrega', abono_id para 'abono'
    pedido_id: Optional[int]
    abono_id: Optional[int]
    cliente: str
    metodo: str
    monto: Decimal
    recibido: bool = True
    notas: Optional[str] = None

    @property
    def clave(self) -> Tuple[str, int]:
        return (self.tipo, self.referencia_id)

    def to_dict(self) -> dict:
        return {
            "tipo": self.tipo,
            "id": self.referencia_id,
            "pedido_id": self.pedido_id,
            "abono_id": self.abono_id,
            "cliente": self.cliente,
            "metodo": self.metodo,
            "monto": a_float(self.monto),
            "recibido": self.recibido,
            "notas": self.notas,
        }


@dataclass(frozen=True)
class TotalesCierre:
    esperado: Decimal
    recibido: Decimal
    diferencia: Decimal

    def to_dict(self) -> dict:
        return {
            "esperado": a_float(self.esperado),
            "recibido": a_float(self.recibido),
            "diferencia": a_float(self.diferencia),
        }


def calcular_totales(lineas: Iterable[LineaCobro]) -> TotalesCierre:
    esperado = CERO
    recibido = CERO
    for linea in lineas:
        esperado += dinero(linea.monto)
        if linea.recibido:
            recibido += dinero(linea.monto)
    return TotalesCierre(esperado=dinero(esperado), recibido=dinero(recibido), diferencia=dinero(recibido - esperado))


def aplicar_marcas(lineas: List[LineaCobro], marcas: Iterable[MarcaCierreIn]) -> List[LineaCobro]:
    """Aplica las marcas del operador por (tipo, id). Una marca sin línea es un error."""
    por_clave: Dict[Tuple[str, int], LineaCobro] = {l.clave: l for l in lineas}
    for marca in marcas:
        clave = (TipoDetalleCierre(marca.tipo).value, marca.id)
        linea = por_clave.get(clave)
        if linea is None:
            raise ValidacionError(f"La línea {clave[0]} #{clave[1]} no corresponde a este cierre")
        linea.recibido = marca.recibido
        linea.notas = marca.notas
    return lineas


def serializar_corte(corte: CortePedidos) -> dict:
    return {
        "id": corte.id,
        "fecha": corte.fecha.isoformat(),
        "repartidor_id": corte.repartidor_id,
        "repartidor_nombre": corte.repartidor.nombre if corte.repartidor else None,
        "estado": corte.estado,
        "total_pedidos": corte.total_pedidos,
        "total_monto": a_float(corte.total_monto),
        "efectivo_esperado": a_float(corte.efectivo_esperado),
        "efectivo_recibido": a_float(corte.efectivo_recibido),
        "diferencia": a_float(corte.diferencia),
        "cerrado_por": corte.cerrado_por,
        "cerrado_por_nombre": corte.cerrador.nombre if corte.cerrador else None,
        "cerrado_at": corte.cerrado_at.isoformat() if corte.cerrado_at else None,
        "notas_cierre": corte.notas_cierre,
    }


class CortesPedidosService:
    """Cierre de caja diario por repartidor"""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def _repartidor(self, repartidor_id: int, ctx: RequestContext) -> Usuario:
        if ctx.solo_propios and repartidor_id != ctx.usuario_id:
            raise PermisoDenegadoError("Solo puede consultar su propio cierre")
        repartidor = self.uow.usuarios.get(repartidor_id)
        if not repartidor:
            raise NoEncontradoError(f"Repartidor {repartidor_id} no encontrado")
        return repartidor

    def _lineas_calculadas(self, fecha: date, repartidor_id: int) -> List[LineaCobro]:
        """Líneas de cobro a partir de pedidos y abonos (sin marcas guardadas)."""
        cobrado_entrega = (
            self.uow.db.query(
                Pedido,
                func.coalesce(func.sum(Abono.monto), 0).label("cobrado"),
                func.min(Abono.tipo).label("metodo"),
            )
            .join(Abono, (Abono.pedido_id == Pedido.id) & (Abono.origen == OrigenAbono.ENTREGA.value))
            .filter(
                Abono.fecha == fecha,
                Pedido.repartidor_id == repartidor_id,
                Pedido.estado == EstadoPedido.ENTREGADO.value,
            )
            .group_by(Pedido.id)
            .order_by(Pedido.id)
            .all()
        )
        lineas = [
            LineaCobro(
                tipo=TipoDetalleCierre.ENTREGA.value,
                referencia_id=pedido.id,
                pedido_id=pedido.id,
                abono_id=None,
                cliente=pedido.cliente.nombre if pedido.cliente else "Sin cliente",
                metodo=metodo,
                monto=dinero(cobrado),
            )
            for pedido, cobrado, metodo in cobrado_entrega
            if dinero(cobrado) > CERO
        ]

        abonos = (
            self.uow.db.query(Abono)
            .join(Pedido, Abono.pedido_id == Pedido.id)
            .filter(
                Abono.fecha == fecha,
                Abono.origen == OrigenAbono.ABONO.value,
                Pedido.repartidor_id == repartidor_id,
            )
            .order_by(Abono.created_at, Abono.id)
            .all()
        )
        lineas.extend(
            LineaCobro(
                tipo=TipoDetalleCierre.ABONO.value,
                referencia_id=a.id,
                pedido_id=a.pedido_id,
                abono_id=a.id,
                cliente=a.pedido.cliente.nombre if a.pedido and a.pedido.cliente else "Sin cliente",
                metodo=a.tipo,
                monto=dinero(a.monto),
            )
            for a in abonos
        )
        return lineas

    def _lineas_guardadas(self, corte: CortePedidos) -> List[LineaCobro]:
        lineas = []
        for d in corte.detalles:
            pedido = self.uow.pedidos.get(d.pedido_id) if d.pedido_id else None
            abono = self.uow.db.get(Abono, d.abono_id) if d.abono_id else None
            lineas.append(LineaCobro(
                tipo=d.tipo,
                referencia_id=d.referencia_id,
                pedido_id=d.pedido_id,
                abono_id=d.abono_id,
                cliente=pedido.cliente.nombre if pedido and pedido.cliente else "Sin cliente",
                metodo=abono.tipo if abono else "efectivo",
                monto=dinero(d.monto),
                recibido=d.recibido,
                notas=d.notas,
            ))
        return lineas

    def lineas_cierre(self, fecha: date, repartidor_id: int) -> Tuple[Optional[CortePedidos], List[LineaCobro]]:
        """
        Corte existente (si hay) y sus líneas.
        Completado: las líneas guardadas tal cual. Borrador o sin corte: se
        recalculan y se conservan las marcas del borrador.
        """
        corte = self.uow.cortes_pedidos.by_fecha_repartidor(fecha, repartidor_id)
        if corte and corte.completado:
            return corte, self._lineas_guardadas(corte)

        lineas = self._lineas_calculadas(fecha, repartidor_id)
        if corte:
            marcas = {(d.tipo, d.referencia_id): d for d in corte.detalles}
            for linea in lineas:
                guardada = marcas.get(linea.clave)
                if guardada is not None:
                    linea.recibido = guardada.recibido
                    linea.notas = guardada.notas
        return corte, lineas

    def _pedidos_entregados(self, fecha: date, repartidor_id: int) -> Tuple[int, Decimal]:
        """Pedidos con cobro de entrega en la fecha (mismo criterio que las líneas 'entrega')."""
        cobrados = select(Abono.pedido_id).where(
            Abono.origen == OrigenAbono.ENTREGA.value, Abono.fecha == fecha,
        )
        cantidad, total = (
            self.uow.db.query(func.count(Pedido.id), func.coalesce(func.sum(Pedido.total), 0))
            .filter(
                Pedido.id.in_(cobrados),
                Pedido.repartidor_id == repartidor_id,
                Pedido.estado == EstadoPedido.ENTREGADO.value,
            )
            .one()
        )
        return int(cantidad), dinero(total)

    def obtener_detalle_cierre(self, fecha: date, repartidor_id: int, ctx: RequestContext) -> dict:
        repartidor = self._repartidor(repartidor_id, ctx)
        corte, lineas = self.lineas_cierre(fecha, repartidor_id)
        total_pedidos, total_monto = self._pedidos_entregados(fecha, repartidor_id)
        return {
            "fecha": fecha.isoformat(),
            "repartidor": {"id": repartidor.id, "nombre": repartidor.nombre},
            "corte": serializar_corte(corte) if corte else None,
            "cerrado": bool(corte and corte.completado),
            "entregas": [l.to_dict() for l in lineas if l.tipo == TipoDetalleCierre.ENTREGA.value],
            "abonos": [l.to_dict() for l in lineas if l.tipo == TipoDetalleCierre.ABONO.value],
            "totales": calcular_totales(lineas).to_dict(),
            "total_pedidos": total_pedidos,
            "total_monto": a_float(total_monto),
        }

    def _persistir(
        self,
        fecha: date,
        repartidor_id: int,
        marcas: Iterable[MarcaCierreIn],
        notas: Optional[str],
        ctx: RequestContext,
        estado: EstadoCorte,
    ) -> Tuple[CortePedidos, TotalesCierre]:
        self._repartidor(repartidor_id, ctx)
        corte, lineas = self.lineas_cierre(fecha, repartidor_id)
        if corte and corte.completado:
            raise CorteCerradoError(f"El cierre del {fecha.isoformat()} ya fue cerrado")

        aplicar_marcas(lineas, marcas)
        totales = calcular_totales(lineas)
        total_pedidos, total_monto = self._pedidos_entregados(fecha, repartidor_id)

        if corte is None:
            corte = self.uow.cortes_pedidos.add(CortePedidos(fecha=fecha, repartidor_id=repartidor_id))

        corte.detalles.clear()
        self.uow.db.flush()
        corte.detalles.extend(
            DetalleCierre(
                tipo=l.tipo,
                pedido_id=l.pedido_id,
                abono_id=l.abono_id,
                monto=l.monto,
                recibido=l.recibido,
                notas=l.notas,
            )
            for l in lineas
        )
        corte.total_pedidos = total_pedidos
        corte.total_monto = total_monto
        corte.efectivo_esperado = totales.esperado
        corte.efectivo_recibido = totales.recibido
        corte.diferencia = totales.diferencia
        corte.notas_cierre = notas
        corte.estado = estado.value
        if estado == EstadoCorte.COMPLETADO:
            corte.cerrado_por = ctx.usuario_id
            corte.cerrado_at = datetime.now()
        self.uow.db.flush()
        return corte, totales

    def guardar_borrador(
        self, fecha: date, repartidor_id: int, marcas: Iterable[MarcaCierreIn], notas: Optional[str], ctx: RequestContext
    ) -> CortePedidos:
        corte, _ = self._persistir(fecha, repartidor_id, marcas, notas, ctx, EstadoCorte.BORRADOR)
        return corte

    def confirmar_cierre(
        self, fecha: date, repartidor_id: int, marcas: Iterable[MarcaCierreIn], notas: Optional[str], ctx: RequestContext
    ) -> CortePedidos:
        """
        Cierra la caja del repartidor. Las líneas se recalculan en el servidor;
        del cliente solo se toman las marcas recibido/no recibido.

        Raises:
            CorteCerradoError: ya existe un cierre completado para (fecha, repartidor)
            ValidacionError: una marca no corresponde a ninguna línea
        """
        corte, totales = self._persistir(fecha, repartidor_id, marcas, notas, ctx, EstadoCorte.COMPLETADO)
        logger.info(
            "Cierre de caja %s repartidor=%s esperado=%s recibido=%s diferencia=%s cerrado_por=%s",
            fecha, repartidor_id, totales.esperado, totales.recibido, totales.diferencia, ctx.usuario_id,
        )
        return corte

    def historial(
        self, ctx: RequestContext, mes: Optional[int] = None, anio: Optional[int] = None, repartidor_id: Optional[int] = None
    ) -> List[CortePedidos]:
        q = self.uow.db.query(CortePedidos).options(
            selectinload(CortePedidos.repartidor), selectinload(CortePedidos.cerrador)
        )
        if mes and anio:
            ultimo = calendar.monthrange(anio, mes)[1]
            q = q.filter(CortePedidos.fecha.between(date(anio, mes, 1), date(anio, mes, ultimo)))
        if ctx.solo_propios:
            q = q.filter(CortePedidos.repartidor_id == ctx.usuario_id)
        elif repartidor_id:
            q = q.filter(CortePedidos.repartidor_id == repartidor_id)
        return q.order_by(CortePedidos.fecha.desc(), CortePedidos.id.desc()).all()

    # ===== ticket =====

    def datos_ticket(self, fecha: date, repartidor_id: int, ctx: RequestContext) -> dict:
        self._repartidor(repartidor_id, ctx)
        corte = self.uow.cortes_pedidos.by_fecha_repartidor(fecha, repartidor_id)
        if not corte or not corte.completado:
            raise NoEncontradoError("Cierre no encontrado")
        lineas = self._lineas_guardadas(corte)
        return {
            "empresa": settings.empresa_nombre,
            "titulo": "CIERRE DE CAJA",
            "fecha": f"{DIAS[fecha.weekday()]}, {fecha.strftime('%d/%m/%Y')}",
            "repartidor": corte.repartidor.nombre if corte.repartidor else "Sin asignar",
            "entregas": [
                {"cliente": l.cliente, "pedido_id": l.pedido_id, "monto": a_float(l.monto), "recibido": l.recibido}
                for l in lineas if l.tipo == TipoDetalleCierre.ENTREGA.value
            ],
            "abonos": [
                {"cliente": l.cliente, "pedido_id": l.pedido_id, "monto": a_float(l.monto), "tipo": l.metodo, "recibido": l.recibido}
                for l in lineas if l.tipo == TipoDetalleCierre.ABONO.value
            ],
            "totales": {
                "esperado": a_float(corte.efectivo_esperado),
                "recibido": a_float(corte.efectivo_recibido),
                "diferencia": a_float(corte.diferencia),
            },
            "recibido_por": corte.cerrador.nombre if corte.cerrador else "",
            "hora": corte.cerrado_at.strftime("%H:%M") if corte.cerrado_at else "",
            "notas": corte.notas_cierre,
            "items_no_recibidos": sum(1 for l in lineas if not l.recibido),
        }

    def ticket_pdf(self, fecha: date, repartidor_id: int, ctx: RequestContext) -> BytesIO:
        datos = self.datos_ticket(fecha, repartidor_id, ctx)
        headers_entregas = ["Cliente", "Pedido", "Monto", "Recibido"]
        headers_abonos = ["Cliente", "Pedido", "Método", "Monto", "Recibido"]
        return create_report_pdf(
            business_name=datos["empresa"],
            report_title=datos["titulo"],
            report_subtitle=f"{datos['fecha']} · Repartidor: {datos['repartidor']}",
            data_tables=[
                {
                    "title": "Entregas",
                    "headers": headers_entregas,
                    "rows": [[e["cliente"], f"#{e['pedido_id']}", e["monto"], e["recibido"]] for e in datos["entregas"]],
                },
                {
                    "title": "Abonos",
                    "headers": headers_abonos,
                    "rows": [[a["cliente"], f"#{a['pedido_id']}", a["tipo"], a["monto"], a["recibido"]] for a in datos["abonos"]],
                },
            ],
            summary_rows=[
                ["Esperado", datos["totales"]["esperado"]],
                ["Recibido", datos["totales"]["recibido"]],
                ["Diferencia", datos["totales"]["diferencia"]],
            ],
            footer_text=f"Recibió: {datos['recibido_por']} {datos['hora']}".strip(),
        )
