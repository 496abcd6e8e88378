from pydantic import BaseModel, Field, EmailStr, model_validator
from typing import List, Optional
from datetime import date
from decimal import Decimal

from ..domain.enums import MetodoPago, TipoDetalleCierre, TipoSucursal, UserRole, TipoGasto

# ===== PEDIDOS =====

class DetallePedidoIn(BaseModel):
    producto_id: int
    cantidad: Decimal = Field(..., gt=0)

class PedidoIn(BaseModel):
    fecha: Optional[date] = None  # por defecto hoy
    cliente_id: Optional[int] = None
    repartidor_id: Optional[int] = None
    sucursal_id: Optional[int] = None  # sobrescribe la sucursal principal del cliente
    notas: Optional[str] = None
    detalles: List[DetallePedidoIn] = Field(..., min_length=1)

class PedidoUpdate(BaseModel):
    cliente_id: Optional[int] = None
    repartidor_id: Optional[int] = None
    notas: Optional[str] = None
    detalles: Optional[List[DetallePedidoIn]] = Field(default=None, min_length=1)

class EntregaIn(BaseModel):
    monto_pagado: Decimal = Field(default=Decimal("0"), ge=0)
    tipo_pago: MetodoPago = MetodoPago.EFECTIVO
    observaciones: Optional[str] = None  # obligatorio si no hubo pago
    fecha_cobro: Optional[date] = None  # día del cierre al que entra el cobro; por defecto hoy

class NotaIn(BaseModel):
    nota: str = Field(..., min_length=1)

class TomarPedidoIn(BaseModel):
    sucursal_id: int

# ===== PAGOS / ABONOS =====

class AbonoPedidoIn(BaseModel):
    monto: Decimal = Field(..., gt=0)
    tipo: MetodoPago = MetodoPago.EFECTIVO
    notas: Optional[str] = None
    fecha: Optional[date] = None

class PagoIn(BaseModel):
    """Pago a un pedido (pedido_id) o a la deuda total del cliente (solo cliente_id)"""
    monto: Decimal = Field(..., gt=0)
    tipo: MetodoPago = MetodoPago.EFECTIVO
    notas: Optional[str] = None
    pedido_id: Optional[int] = None
    cliente_id: Optional[int] = None
    fecha: Optional[date] = None

    @model_validator(mode="after")
    def pedido_o_cliente(self):
        if self.pedido_id is None and self.cliente_id is None:
            raise ValueError("Debe indicar pedido_id o cliente_id")
        return self

# ===== CORTE DE PEDIDOS =====

class MarcaCierreIn(BaseModel):
    tipo: TipoDetalleCierre
    id: int  # pedido_id para 'entrega', abono_id para 'abono'
    recibido: bool = True
    notas: Optional[str] = None

class CierreIn(BaseModel):
    detalles: List[MarcaCierreIn] = []
    notas_generales: Optional[str] = None

# ===== CLIENTES / CATÁLOGOS =====

class ClienteIn(BaseModel):
    nombre: str = Field(..., min_length=1)
    telefono: Optional[str] = None
    direccion: Optional[str] = None
    email: Optional[EmailStr] = None
    notas: Optional[str] = None
    limite_credito: Decimal = Field(default=Decimal("200.00"), ge=0)
    sucursal_id: Optional[int] = None
    sucursal_backup_id: Optional[int] = None

class ClienteUpdate(BaseModel):
    nombre: Optional[str] = None
    telefono: Optional[str] = None
    direccion: Optional[str] = None
    email: Optional[EmailStr] = None
    notas: Optional[str] = None
    limite_credito: Optional[Decimal] = Field(default=None, ge=0)
    sucursal_id: Optional[int] = None
    sucursal_backup_id: Optional[int] = None
    activo: Optional[bool] = None

class RegistroClienteIn(BaseModel):
    nombre: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    telefono: Optional[str] = None
    direccion: Optional[str] = None

# ===== PORTAL DE CLIENTES =====

class PedidoClienteIn(BaseModel):
    """Pedido levantado por el propio cliente: fecha de hoy, sus sucursales y sus precios"""
    notas: Optional[str] = None
    detalles: List[DetallePedidoIn] = Field(..., min_length=1)

class PerfilClienteUpdate(BaseModel):
    telefono: Optional[str] = None
    direccion: Optional[str] = None
    notas: Optional[str] = None

class PrecioIn(BaseModel):
    precio: Decimal = Field(..., gt=0)

class ProductoIn(BaseModel):
    nombre: str = Field(..., min_length=1)
    unidad: str = "kg"
    precio_lista: Decimal = Field(..., gt=0)

class ProductoUpdate(BaseModel):
    nombre: Optional[str] = None
    unidad: Optional[str] = None
    precio_lista: Optional[Decimal] = Field(default=None, gt=0)
    activo: Optional[bool] = None

class SucursalIn(BaseModel):
    nombre: str = Field(..., min_length=1)
    direccion: Optional[str] = None
    tipo: TipoSucursal = TipoSucursal.FISICA

class SucursalUpdate(BaseModel):
    nombre: Optional[str] = None
    direccion: Optional[str] = None
    tipo: Optional[TipoSucursal] = None
    activa: Optional[bool] = None

class UsuarioIn(BaseModel):
    nombre: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    rol: UserRole = UserRole.ENCARGADO
    roles_extra: List[UserRole] = []
    sucursal_id: Optional[int] = None

class UsuarioUpdate(BaseModel):
    nombre: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=6)
    rol: Optional[UserRole] = None
    roles_extra: Optional[List[UserRole]] = None
    sucursal_id: Optional[int] = None
    activo: Optional[bool] = None

# ===== CORTES DE SUCURSAL / GASTOS =====

class CorteIn(BaseModel):
    fecha: date
    sucursal_id: int
    efectivo_caja: Optional[Decimal] = Field(default=None, ge=0)
    inventario_nixta: Optional[Decimal] = None
    inventario_extra: Optional[Decimal] = None
    consumo_masa: Optional[Decimal] = None
    notas: Optional[str] = None

class CorteUpdate(BaseModel):
    efectivo_caja: Optional[Decimal] = Field(default=None, ge=0)
    inventario_nixta: Optional[Decimal] = None
    inventario_extra: Optional[Decimal] = None
    consumo_masa: Optional[Decimal] = None
    notas: Optional[str] = None

class GastoIn(BaseModel):
    categoria_id: Optional[int] = None
    descripcion: Optional[str] = None
    monto: Decimal = Field(..., gt=0)

class GastoUpdate(BaseModel):
    categoria_id: Optional[int] = None
    descripcion: Optional[str] = None
    monto: Optional[Decimal] = Field(default=None, gt=0)

class CategoriaGastoIn(BaseModel):
    nombre: str = Field(..., min_length=1)
    tipo: TipoGasto = TipoGasto.OPERATIVO
