"""
Permisos por Rol
================

Tabla de capacidades por rol. Se evalúa una vez por request
(ver ``require_permission`` en security.auth) contra el permiso que exige
cada endpoint. Un usuario con roles adicionales suma los permisos de todos.
"""
from typing import Dict, Iterable, List

from ..domain.enums import UserRole

AVAILABLE_PERMISSIONS = [
    "pedidos.view",
    "pedidos.create",
    "pedidos.edit",
    "pedidos.estado",      # preparar / despachar / cancelar
    "pedidos.entregar",
    "pedidos.tomar",       # traspaso entre sucursales
    "pedidos.ver_todos",   # sin esto solo ve los pedidos que reparte
    "pagos.view",
    "pagos.create",
    "cortes_pedidos.view",
    "cortes_pedidos.close",
    "clientes.view",
    "clientes.create",
    "clientes.edit",
    "clientes.aprobar",
    "productos.view",
    "productos.edit",
    "sucursales.view",
    "sucursales.edit",
    "usuarios.view",
    "usuarios.edit",
    "cortes.view",
    "cortes.create",
    "cortes.edit",
    "cortes.admin",        # editar/eliminar cortes completados
    "categorias.edit",
    "portal.view",         # perfil, productos, pedidos y adeudo propios
    "portal.pedidos",      # levantar y cancelar pedidos propios
]

ROLE_PERMISSIONS: Dict[str, List[str]] = {
    UserRole.ADMIN.value: AVAILABLE_PERMISSIONS,
    UserRole.ADMINISTRADOR_REPARTIDOR.value: [
        "pedidos.view",
        "pedidos.create",
        "pedidos.edit",
        "pedidos.estado",
        "pedidos.entregar",
        "pedidos.ver_todos",
        "pagos.view",
        "pagos.create",
        "cortes_pedidos.view",
        "cortes_pedidos.close",
        "clientes.view",
        "productos.view",
        "sucursales.view",
        "usuarios.view",
    ],
    UserRole.ENCARGADO.value: [
        "pedidos.view",
        "pedidos.create",
        "pedidos.edit",
        "pedidos.estado",
        "pedidos.entregar",
        "pedidos.tomar",
        "pedidos.ver_todos",
        "pagos.view",
        "pagos.create",
        "clientes.view",
        "clientes.create",
        "clientes.edit",
        "productos.view",
        "sucursales.view",
        "cortes.view",
        "cortes.create",
        "cortes.edit",
    ],
    UserRole.REPARTIDOR.value: [
        "pedidos.view",
        "pedidos.create",
        "pedidos.edit",
        "pedidos.estado",
        "pedidos.entregar",
        "pagos.view",
        "pagos.create",
        "cortes_pedidos.view",
        "clientes.view",
        "productos.view",
    ],
    UserRole.INVITADO.value: [
        "pedidos.view",
        "pedidos.ver_todos",
        "clientes.view",
        "productos.view",
    ],
    UserRole.CLIENTE.value: [
        "portal.view",
        "portal.pedidos",
    ],
}


def permisos_de(roles: Iterable[str]) -> frozenset[str]:
    """Unión de permisos de todos los roles del usuario."""
    permisos: set[str] = set()
    for rol in roles:
        permisos.update(ROLE_PERMISSIONS.get(rol, []))
    return frozenset(permisos)
