"""
Corte de pedidos: cierre diario de caja por repartidor.

Una vez 'completado' es de solo lectura; no existe reapertura.
"""
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Date, Numeric, ForeignKey, DateTime, Text, Boolean, UniqueConstraint, CheckConstraint
from datetime import datetime, date
from decimal import Decimal
from ..db import Base
from .enums import EstadoCorte, TipoDetalleCierre, check_in


class CortePedidos(Base):
    __tablename__ = "cortes_pedidos"
    __table_args__ = (
        UniqueConstraint("fecha", "repartidor_id", name="uq_cortes_pedidos_fecha_repartidor"),
        CheckConstraint(check_in("estado", EstadoCorte), name="ck_cortes_pedidos_estado"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    fecha: Mapped[date] = mapped_column(Date, index=True)
    repartidor_id: Mapped[int] = mapped_column(ForeignKey("usuarios.id"), index=True)
    total_pedidos: Mapped[int] = mapped_column(Integer, default=0)
    total_monto: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    estado: Mapped[str] = mapped_column(String(20), default=EstadoCorte.BORRADOR.value)

    efectivo_esperado: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    efectivo_recibido: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    diferencia: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))  # recibido - esperado

    cerrado_por: Mapped[int | None] = mapped_column(ForeignKey("usuarios.id"), nullable=True)
    cerrado_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    notas_cierre: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    repartidor = relationship("Usuario", foreign_keys=[repartidor_id])
    cerrador = relationship("Usuario", foreign_keys=[cerrado_por])
    detalles = relationship("DetalleCierre", back_populates="corte", cascade="all, delete-orphan", order_by="DetalleCierre.id")

    @property
    def completado(self) -> bool:
        return self.estado == EstadoCorte.COMPLETADO.value


class DetalleCierre(Base):
    """Línea de cobro revisada por el operador (entrega o abono)"""
    __tablename__ = "detalle_cierre"
    __table_args__ = (
        CheckConstraint(check_in("tipo", TipoDetalleCierre), name="ck_detalle_cierre_tipo"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    corte_pedido_id: Mapped[int] = mapped_column(ForeignKey("cortes_pedidos.id", ondelete="CASCADE"), index=True)
    tipo: Mapped[str] = mapped_column(String(20))
    pedido_id: Mapped[int | None] = mapped_column(ForeignKey("pedidos.id", ondelete="SET NULL"), nullable=True)
    abono_id: Mapped[int | None] = mapped_column(ForeignKey("abonos.id", ondelete="SET NULL"), nullable=True)
    monto: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    recibido: Mapped[bool] = mapped_column(Boolean, default=True)
    notas: Mapped[str | None] = mapped_column(Text, nullable=True)

    corte = relationship("CortePedidos", back_populates="detalles")

    @property
    def referencia_id(self) -> int | None:
        return self.abono_id if self.tipo == TipoDetalleCierre.ABONO.value else self.pedido_id
