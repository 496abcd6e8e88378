from sqlalchemy import Integer, String, Boolean, ForeignKey, DateTime, Numeric, UniqueConstraint, CheckConstraint, Text
from datetime import datetime
from decimal import Decimal
from sqlalchemy.orm import relationship, Mapped, mapped_column
from ..db import Base
from .enums import UserRole, TipoSucursal, check_in


class Sucursal(Base):
    __tablename__ = "sucursales"
    __table_args__ = (
        CheckConstraint(check_in("tipo", TipoSucursal), name="ck_sucursales_tipo"),
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    nombre: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    direccion: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tipo: Mapped[str] = mapped_column(String(20), default=TipoSucursal.FISICA.value)  # fisica | virtual (centro de costo)
    activa: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    @property
    def es_virtual(self) -> bool:
        return self.tipo == TipoSucursal.VIRTUAL.value


class Usuario(Base):
    __tablename__ = "usuarios"
    __table_args__ = (
        CheckConstraint(check_in("rol", UserRole), name="ck_usuarios_rol"),
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    nombre: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(200))
    rol: Mapped[str] = mapped_column(String(30), default=UserRole.ENCARGADO.value)
    sucursal_id: Mapped[int | None] = mapped_column(ForeignKey("sucursales.id", ondelete="SET NULL"), nullable=True, index=True)
    cliente_id: Mapped[int | None] = mapped_column(ForeignKey("clientes.id", ondelete="SET NULL"), nullable=True, index=True)  # Solo cuentas rol cliente
    activo: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    sucursal = relationship("Sucursal", foreign_keys=[sucursal_id])
    cliente = relationship("Cliente", foreign_keys=[cliente_id])
    roles_extra = relationship("UsuarioRol", back_populates="usuario", cascade="all, delete-orphan")

    @property
    def roles(self) -> list[str]:
        """Rol principal más roles adicionales, sin duplicados."""
        todos = [self.rol] + [r.rol for r in self.roles_extra]
        return list(dict.fromkeys(todos))


class UsuarioRol(Base):
    """Roles adicionales de un usuario (p. ej. encargado que también reparte)"""
    __tablename__ = "usuario_roles"
    __table_args__ = (
        UniqueConstraint("usuario_id", "rol", name="uq_usuario_roles_usuario_rol"),
        CheckConstraint(check_in("rol", UserRole), name="ck_usuario_roles_rol"),
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    usuario_id: Mapped[int] = mapped_column(ForeignKey("usuarios.id", ondelete="CASCADE"), index=True)
    rol: Mapped[str] = mapped_column(String(30))
    sucursal_id: Mapped[int | None] = mapped_column(ForeignKey("sucursales.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    usuario = relationship("Usuario", back_populates="roles_extra")


class Cliente(Base):
    __tablename__ = "clientes"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    nombre: Mapped[str] = mapped_column(String(150), index=True)
    telefono: Mapped[str | None] = mapped_column(String(20), nullable=True)
    direccion: Mapped[str | None] = mapped_column(Text, nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notas: Mapped[str | None] = mapped_column(Text, nullable=True)
    limite_credito: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("200.00"))
    aprobado: Mapped[bool] = mapped_column(Boolean, default=True)  # False para auto-registro pendiente de revisión
    sucursal_id: Mapped[int | None] = mapped_column(ForeignKey("sucursales.id", ondelete="SET NULL"), nullable=True, index=True)
    sucursal_backup_id: Mapped[int | None] = mapped_column(ForeignKey("sucursales.id", ondelete="SET NULL"), nullable=True)
    activo: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    sucursal = relationship("Sucursal", foreign_keys=[sucursal_id])
    sucursal_backup = relationship("Sucursal", foreign_keys=[sucursal_backup_id])
    precios = relationship("PrecioCliente", back_populates="cliente", cascade="all, delete-orphan")


class Producto(Base):
    __tablename__ = "productos"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    nombre: Mapped[str] = mapped_column(String(100), unique=True)
    unidad: Mapped[str] = mapped_column(String(20), default="kg")
    precio_lista: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    activo: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)


class PrecioCliente(Base):
    """Precio especial de un producto para un cliente"""
    __tablename__ = "precios_cliente"
    __table_args__ = (
        UniqueConstraint("cliente_id", "producto_id", name="uq_precios_cliente_cliente_producto"),
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cliente_id: Mapped[int] = mapped_column(ForeignKey("clientes.id", ondelete="CASCADE"), index=True)
    producto_id: Mapped[int] = mapped_column(ForeignKey("productos.id", ondelete="CASCADE"))
    precio: Mapped[Decimal] = mapped_column(Numeric(10, 2))

    cliente = relationship("Cliente", back_populates="precios")
    producto = relationship("Producto")


class PrecioSucursal(Base):
    """Precio de un producto en una sucursal (sobrescribe precio de lista)"""
    __tablename__ = "precios_sucursal"
    __table_args__ = (
        UniqueConstraint("sucursal_id", "producto_id", name="uq_precios_sucursal_sucursal_producto"),
    )
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sucursal_id: Mapped[int] = mapped_column(ForeignKey("sucursales.id", ondelete="CASCADE"), index=True)
    producto_id: Mapped[int] = mapped_column(ForeignKey("productos.id", ondelete="CASCADE"))
    precio: Mapped[Decimal] = mapped_column(Numeric(10, 2))

    sucursal = relationship("Sucursal")
    producto = relationship("Producto")
