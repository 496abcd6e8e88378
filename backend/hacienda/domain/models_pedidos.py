"""
Modelos de Pedidos
==================

Un pedido es una venta a crédito o contado para un cliente, con su ciclo
pendiente → preparado → en_camino → entregado / cancelado.

Invariantes de saldo (los rangos también como CHECK en BD; la igualdad la
mantiene el servicio con Decimal):
- saldo_pendiente = total - monto_pagado
- 0 <= monto_pagado <= total
"""
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Date, Numeric, ForeignKey, DateTime, Text, Boolean, CheckConstraint
from datetime import datetime, date
from decimal import Decimal
from ..db import Base
from .enums import EstadoPedido, check_in


class Pedido(Base):
    __tablename__ = "pedidos"
    __table_args__ = (
        CheckConstraint(check_in("estado", EstadoPedido), name="ck_pedidos_estado"),
        CheckConstraint("monto_pagado >= 0 AND monto_pagado <= total", name="ck_pedidos_monto_pagado"),
        CheckConstraint("saldo_pendiente >= 0", name="ck_pedidos_saldo"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    fecha: Mapped[date] = mapped_column(Date, index=True, default=date.today)
    cliente_id: Mapped[int | None] = mapped_column(ForeignKey("clientes.id", ondelete="SET NULL"), nullable=True, index=True)
    repartidor_id: Mapped[int | None] = mapped_column(ForeignKey("usuarios.id", ondelete="SET NULL"), nullable=True, index=True)
    creado_por: Mapped[int | None] = mapped_column(ForeignKey("usuarios.id", ondelete="SET NULL"), nullable=True)
    estado: Mapped[str] = mapped_column(String(20), default=EstadoPedido.PENDIENTE.value, index=True)

    # Montos
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    monto_pagado: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))
    saldo_pendiente: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"))

    notas: Mapped[str | None] = mapped_column(Text, nullable=True)
    observaciones: Mapped[str | None] = mapped_column(Text, nullable=True)  # Justificación de entrega sin pago

    # Asignación de sucursal (principal / respaldo / la que lo atiende)
    sucursal_principal_id: Mapped[int | None] = mapped_column(ForeignKey("sucursales.id", ondelete="SET NULL"), nullable=True)
    sucursal_backup_id: Mapped[int | None] = mapped_column(ForeignKey("sucursales.id", ondelete="SET NULL"), nullable=True)
    sucursal_actual_id: Mapped[int | None] = mapped_column(ForeignKey("sucursales.id", ondelete="SET NULL"), nullable=True, index=True)
    transferido: Mapped[bool] = mapped_column(Boolean, default=False)
    sucursal_ocupada: Mapped[bool] = mapped_column(Boolean, default=False)

    # Marcas de tiempo del ciclo
    fecha_asignacion: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    fecha_preparado: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    fecha_despacho: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    fecha_entrega: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    demora_preparacion_seg: Mapped[int | None] = mapped_column(Integer, nullable=True)
    demora_entrega_seg: Mapped[int | None] = mapped_column(Integer, nullable=True)
    demora_total_seg: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    cliente = relationship("Cliente")
    repartidor = relationship("Usuario", foreign_keys=[repartidor_id])
    creador = relationship("Usuario", foreign_keys=[creado_por])
    sucursal_principal = relationship("Sucursal", foreign_keys=[sucursal_principal_id])
    sucursal_backup = relationship("Sucursal", foreign_keys=[sucursal_backup_id])
    sucursal_actual = relationship("Sucursal", foreign_keys=[sucursal_actual_id])
    detalles = relationship("DetallePedido", back_populates="pedido", cascade="all, delete-orphan", order_by="DetallePedido.id")
    abonos = relationship("Abono", back_populates="pedido", order_by="Abono.created_at")


class DetallePedido(Base):
    __tablename__ = "detalle_pedidos"
    __table_args__ = (
        CheckConstraint("cantidad > 0", name="ck_detalle_pedidos_cantidad"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pedido_id: Mapped[int] = mapped_column(ForeignKey("pedidos.id", ondelete="CASCADE"), index=True)
    producto_id: Mapped[int] = mapped_column(ForeignKey("productos.id"))
    cantidad: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    precio_unitario: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2))

    pedido = relationship("Pedido", back_populates="detalles")
    producto = relationship("Producto")
