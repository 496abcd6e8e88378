"""
Tests de permisos por rol y contexto de request
"""
from hacienda.domain.enums import UserRole
from hacienda.domain.models import UsuarioRol
from hacienda.security.auth import build_context
from hacienda.security.context import SISTEMA
from hacienda.security.permissions import AVAILABLE_PERMISSIONS, ROLE_PERMISSIONS, permisos_de


class TestTablaPermisos:
    """ROLE_PERMISSIONS"""

    def test_permisos_declarados(self):
        """Todo permiso asignado a un rol existe en AVAILABLE_PERMISSIONS"""
        for rol, permisos in ROLE_PERMISSIONS.items():
            assert set(permisos) <= set(AVAILABLE_PERMISSIONS), rol

    def test_todos_los_roles_tienen_entrada(self):
        assert set(ROLE_PERMISSIONS) == {r.value for r in UserRole}

    def test_admin_tiene_todo(self):
        assert permisos_de(["admin"]) == frozenset(AVAILABLE_PERMISSIONS)

    def test_solo_admin_y_jefe_de_reparto_cierran_caja(self):
        pueden = {rol for rol, permisos in ROLE_PERMISSIONS.items() if "cortes_pedidos.close" in permisos}
        assert pueden == {UserRole.ADMIN.value, UserRole.ADMINISTRADOR_REPARTIDOR.value}

    def test_invitado_solo_lectura(self):
        permisos = permisos_de(["invitado"])
        assert "pedidos.view" in permisos
        assert not any(p.endswith((".create", ".edit", ".estado", ".entregar", ".close")) for p in permisos)

    def test_union_de_roles(self):
        permisos = permisos_de(["repartidor", "encargado"])
        assert "cortes.create" in permisos
        assert "pedidos.ver_todos" in permisos

    def test_rol_desconocido_sin_permisos(self):
        assert permisos_de(["gerente"]) == frozenset()

    def test_cliente_solo_portal(self):
        assert permisos_de(["cliente"]) == frozenset({"portal.view", "portal.pedidos"})


class TestRequestContext:
    """Contexto construido desde el usuario"""

    def test_repartidor_solo_propios(self, ctx):
        assert ctx.repartidor.solo_propios is True
        assert ctx.jefe_reparto.solo_propios is False
        assert ctx.encargado.solo_propios is False
        assert ctx.admin.solo_propios is False

    def test_contexto_lleva_sucursal_e_ip(self, datos, ctx):
        assert ctx.encargado.sucursal_id == datos.matriz.id
        assert ctx.admin.ip_address == "127.0.0.1"
        assert ctx.admin.es_admin
        assert not ctx.encargado.es_admin

    def test_roles_extra_suman_permisos(self, db, datos):
        db.add(UsuarioRol(usuario_id=datos.repartidor.id, rol=UserRole.ENCARGADO.value))
        db.commit()
        db.refresh(datos.repartidor)

        contexto = build_context(datos.repartidor)
        assert contexto.roles == ("repartidor", "encargado")
        assert contexto.puede("cortes.create")
        assert contexto.solo_propios is False

    def test_sistema(self):
        assert SISTEMA.usuario_id is None
        assert SISTEMA.solo_propios is False
        assert SISTEMA.puede("cortes_pedidos.close")
