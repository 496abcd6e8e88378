"""
Cortes de caja por sucursal y gastos del día.

Las sucursales virtuales (centros de costo) solo registran gastos: sus campos
de caja, venta e inventario quedan en NULL.
"""
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Date, Numeric, ForeignKey, DateTime, Text, Boolean, UniqueConstraint, CheckConstraint
from datetime import datetime, date
from decimal import Decimal
from ..db import Base
from .enums import EstadoCorte, TipoGasto, check_in


class CategoriaGasto(Base):
    __tablename__ = "categorias_gasto"
    __table_args__ = (
        CheckConstraint(check_in("tipo", TipoGasto), name="ck_categorias_gasto_tipo"),
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    nombre: Mapped[str] = mapped_column(String(100), unique=True)
    tipo: Mapped[str] = mapped_column(String(20), default=TipoGasto.OPERATIVO.value)
    activa: Mapped[bool] = mapped_column(Boolean, default=True)


class Corte(Base):
    __tablename__ = "cortes"
    __table_args__ = (
        UniqueConstraint("fecha", "sucursal_id", name="uq_cortes_fecha_sucursal"),
        CheckConstraint(check_in("estado", EstadoCorte), name="ck_cortes_estado"),
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    fecha: Mapped[date] = mapped_column(Date, index=True)
    sucursal_id: Mapped[int] = mapped_column(ForeignKey("sucursales.id"), index=True)
    usuario_id: Mapped[int | None] = mapped_column(ForeignKey("usuarios.id", ondelete="SET NULL"), nullable=True)
    efectivo_caja: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    venta_total: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    inventario_nixta: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    inventario_extra: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    consumo_masa: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    estado: Mapped[str] = mapped_column(String(20), default=EstadoCorte.BORRADOR.value)
    notas: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    sucursal = relationship("Sucursal")
    usuario = relationship("Usuario")
    gastos = relationship("Gasto", back_populates="corte", cascade="all, delete-orphan", order_by="Gasto.id")


class Gasto(Base):
    __tablename__ = "gastos"
    __table_args__ = (
        CheckConstraint("monto > 0", name="ck_gastos_monto_positivo"),
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    corte_id: Mapped[int] = mapped_column(ForeignKey("cortes.id", ondelete="CASCADE"), index=True)
    categoria_id: Mapped[int | None] = mapped_column(ForeignKey("categorias_gasto.id", ondelete="SET NULL"), nullable=True)
    descripcion: Mapped[str | None] = mapped_column(String(255), nullable=True)
    monto: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    corte = relationship("Corte", back_populates="gastos")
    categoria = relationship("CategoriaGasto")
