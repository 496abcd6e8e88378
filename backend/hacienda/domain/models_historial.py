"""
Historial de Pedidos
====================
Registro inmutable de cada acción sobre un pedido (estado, pagos, edición).
Solo INSERT permitido. Prohibido UPDATE y DELETE.
"""
from datetime import datetime
from typing import Any, Dict
from sqlalchemy import Integer, String, DateTime, ForeignKey, JSON, Text, CheckConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column
from ..db import Base
from .enums import AccionHistorial, check_in


class HistorialPedido(Base):
    __tablename__ = "historial_pedidos"
    __table_args__ = (
        CheckConstraint(check_in("accion", AccionHistorial), name="ck_historial_pedidos_accion"),
        {"comment": "Historial de pedidos - inmutable"},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pedido_id: Mapped[int] = mapped_column(ForeignKey("pedidos.id", ondelete="CASCADE"), index=True)
    usuario_id: Mapped[int | None] = mapped_column(ForeignKey("usuarios.id", ondelete="SET NULL"), nullable=True)  # None = acción del sistema
    accion: Mapped[str] = mapped_column(String(30), index=True)
    descripcion: Mapped[str | None] = mapped_column(Text, nullable=True)
    datos_anteriores: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    datos_nuevos: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, index=True)

    usuario = relationship("Usuario", foreign_keys=[usuario_id])
