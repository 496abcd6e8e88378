"""
Modelo de Abonos (pagos aplicados a pedidos)
============================================

Un abono se registra:
- Al entregar un pedido con pago (origen 'entrega')
- Después, como pago parcial de la deuda (origen 'abono')

Un pago a nivel cliente se reparte en un abono por cada pedido que toca.
"""
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Date, Numeric, ForeignKey, DateTime, Text, CheckConstraint
from datetime import datetime, date
from decimal import Decimal
from ..db import Base
from .enums import MetodoPago, OrigenAbono, check_in


class Abono(Base):
    __tablename__ = "abonos"
    __table_args__ = (
        CheckConstraint("monto > 0", name="ck_abonos_monto_positivo"),
        CheckConstraint("pedido_id IS NOT NULL OR cliente_id IS NOT NULL", name="ck_abonos_pedido_o_cliente"),
        CheckConstraint(check_in("tipo", MetodoPago), name="ck_abonos_tipo"),
        CheckConstraint(check_in("origen", OrigenAbono), name="ck_abonos_origen"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pedido_id: Mapped[int | None] = mapped_column(ForeignKey("pedidos.id", ondelete="CASCADE"), nullable=True, index=True)
    cliente_id: Mapped[int | None] = mapped_column(ForeignKey("clientes.id", ondelete="SET NULL"), nullable=True, index=True)
    monto: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    tipo: Mapped[str] = mapped_column(String(20), default=MetodoPago.EFECTIVO.value)  # método de pago
    origen: Mapped[str] = mapped_column(String(20), default=OrigenAbono.ABONO.value)
    fecha: Mapped[date] = mapped_column(Date, default=date.today, index=True)  # día en que se cobró
    registrado_por: Mapped[int | None] = mapped_column(ForeignKey("usuarios.id", ondelete="SET NULL"), nullable=True)
    notas: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    pedido = relationship("Pedido", back_populates="abonos")
    cliente = relationship("Cliente")
    usuario = relationship("Usuario", foreign_keys=[registrado_por])
