"""Productos, sucursales (y sus precios) y usuarios."""
from typing import List, Optional

from ..domain.enums import UserRole
from ..domain.models import PrecioSucursal, Producto, Sucursal, Usuario, UsuarioRol
from ..infrastructure.unit_of_work import UnitOfWork
from ..security.auth import get_password_hash
from .dtos import ProductoIn, ProductoUpdate, SucursalIn, SucursalUpdate, UsuarioIn, UsuarioUpdate
from .errors import ConflictoEstadoError, NoEncontradoError
from .montos import a_float, dinero


def serializar_producto(p: Producto) -> dict:
    return {"id": p.id, "nombre": p.nombre, "unidad": p.unidad, "precio_lista": a_float(p.precio_lista), "activo": p.activo}


def serializar_sucursal(s: Sucursal) -> dict:
    return {"id": s.id, "nombre": s.nombre, "direccion": s.direccion, "tipo": s.tipo, "activa": s.activa}


def serializar_usuario(u: Usuario) -> dict:
    return {
        "id": u.id,
        "nombre": u.nombre,
        "email": u.email,
        "rol": u.rol,
        "roles": u.roles,
        "sucursal_id": u.sucursal_id,
        "cliente_id": u.cliente_id,
        "activo": u.activo,
    }


class CatalogosService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    # ===== productos =====

    def listar_productos(self, incluir_inactivos: bool = False) -> List[Producto]:
        q = self.uow.db.query(Producto)
        if not incluir_inactivos:
            q = q.filter(Producto.activo == True)  # noqa: E712
        return q.order_by(Producto.nombre).all()

    def crear_producto(self, datos: ProductoIn) -> Producto:
        producto = Producto(nombre=datos.nombre.strip(), unidad=datos.unidad, precio_lista=dinero(datos.precio_lista))
        self.uow.productos.add(producto)
        self.uow.db.flush()
        return producto

    def actualizar_producto(self, producto_id: int, datos: ProductoUpdate) -> Producto:
        producto = self.uow.productos.get(producto_id)
        if not producto:
            raise NoEncontradoError(f"Producto {producto_id} no encontrado")
        for campo, valor in datos.model_dump(exclude_unset=True).items():
            setattr(producto, campo, dinero(valor) if campo == "precio_lista" else valor)
        self.uow.db.flush()
        return producto

    # ===== sucursales =====

    def listar_sucursales(self) -> List[Sucursal]:
        return self.uow.db.query(Sucursal).order_by(Sucursal.nombre).all()

    def crear_sucursal(self, datos: SucursalIn) -> Sucursal:
        sucursal = Sucursal(nombre=datos.nombre.strip(), direccion=datos.direccion, tipo=datos.tipo.value)
        self.uow.sucursales.add(sucursal)
        self.uow.db.flush()
        return sucursal

    def actualizar_sucursal(self, sucursal_id: int, datos: SucursalUpdate) -> Sucursal:
        sucursal = self.uow.sucursales.get(sucursal_id)
        if not sucursal:
            raise NoEncontradoError(f"Sucursal {sucursal_id} no encontrada")
        for campo, valor in datos.model_dump(exclude_unset=True).items():
            setattr(sucursal, campo, valor.value if hasattr(valor, "value") else valor)
        self.uow.db.flush()
        return sucursal

    def precios_sucursal(self, sucursal_id: int) -> List[PrecioSucursal]:
        return self.uow.db.query(PrecioSucursal).filter_by(sucursal_id=sucursal_id).all()

    def fijar_precio_sucursal(self, sucursal_id: int, producto_id: int, precio) -> PrecioSucursal:
        if not self.uow.sucursales.get(sucursal_id):
            raise NoEncontradoError(f"Sucursal {sucursal_id} no encontrada")
        if not self.uow.productos.get(producto_id):
            raise NoEncontradoError(f"Producto {producto_id} no encontrado")
        existente = self.uow.precios.de_sucursal(sucursal_id, producto_id)
        if existente:
            existente.precio = dinero(precio)
        else:
            existente = PrecioSucursal(sucursal_id=sucursal_id, producto_id=producto_id, precio=dinero(precio))
            self.uow.db.add(existente)
        self.uow.db.flush()
        return existente

    # ===== usuarios =====

    def listar_usuarios(self, rol: Optional[UserRole] = None) -> List[Usuario]:
        q = self.uow.db.query(Usuario).filter(Usuario.rol != UserRole.CLIENTE.value)
        if rol:
            q = q.filter(Usuario.rol == UserRole(rol).value)
        return q.order_by(Usuario.nombre).all()

    def _fijar_roles_extra(self, usuario: Usuario, roles: List[UserRole]):
        usuario.roles_extra.clear()
        self.uow.db.flush()
        for rol in dict.fromkeys(UserRole(r).value for r in roles):
            if rol != usuario.rol:
                usuario.roles_extra.append(UsuarioRol(rol=rol, sucursal_id=usuario.sucursal_id))

    def crear_usuario(self, datos: UsuarioIn) -> Usuario:
        email = datos.email.strip().lower()
        if self.uow.usuarios.by_email(email):
            raise ConflictoEstadoError("Ya existe un usuario con ese correo")
        usuario = Usuario(
            nombre=datos.nombre.strip(),
            email=email,
            password_hash=get_password_hash(datos.password),
            rol=datos.rol.value,
            sucursal_id=datos.sucursal_id,
        )
        self.uow.usuarios.add(usuario)
        self._fijar_roles_extra(usuario, datos.roles_extra)
        self.uow.db.flush()
        return usuario

    def actualizar_usuario(self, usuario_id: int, datos: UsuarioUpdate) -> Usuario:
        usuario = self.uow.usuarios.get(usuario_id)
        if not usuario:
            raise NoEncontradoError(f"Usuario {usuario_id} no encontrado")
        cambios = datos.model_dump(exclude_unset=True)
        roles_extra = cambios.pop("roles_extra", None)
        password = cambios.pop("password", None)
        for campo, valor in cambios.items():
            setattr(usuario, campo, valor.value if hasattr(valor, "value") else valor)
        if password:
            usuario.password_hash = get_password_hash(password)
        if roles_extra is not None:
            self._fijar_roles_extra(usuario, roles_extra)
        self.uow.db.flush()
        return usuario
