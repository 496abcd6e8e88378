from dataclasses import dataclass, field
from typing import Optional

from ..domain.enums import UserRole
from .permissions import AVAILABLE_PERMISSIONS


@dataclass(frozen=True)
class RequestContext:
    """Usuario autenticado y origen del request; se pasa explícito a cada servicio."""
    usuario_id: Optional[int]
    nombre: str
    rol: str
    roles: tuple[str, ...] = ()
    permisos: frozenset[str] = field(default_factory=frozenset)
    sucursal_id: Optional[int] = None
    ip_address: Optional[str] = None
    cliente_id: Optional[int] = None  # usuario del portal de clientes

    def puede(self, permiso: str) -> bool:
        return permiso in self.permisos

    def tiene_rol(self, *roles: str) -> bool:
        return any(r in self.roles for r in roles)

    @property
    def es_admin(self) -> bool:
        return self.tiene_rol(UserRole.ADMIN.value)

    @property
    def solo_propios(self) -> bool:
        """Repartidor puro: solo ve y cobra los pedidos que tiene asignados."""
        return not self.puede("pedidos.ver_todos") and self.cliente_id is None

    @property
    def solo_cliente(self) -> bool:
        """Usuario del portal: solo ve y opera los pedidos de su cliente."""
        return self.cliente_id is not None and not self.puede("pedidos.ver_todos")


# Procesos internos (carga de datos de ejemplo, scripts)
SISTEMA = RequestContext(
    usuario_id=None, nombre="Sistema", rol="sistema", permisos=frozenset(AVAILABLE_PERMISSIONS)
)
