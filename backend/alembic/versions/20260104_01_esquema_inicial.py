"""esquema inicial: sucursales, clientes, pedidos, abonos, cortes e historial

Revision ID: 20260104_01
Revises:
Create Date: 2026-01-04

Los valores cerrados (estado, rol, tipo, origen, accion) se guardan como
VARCHAR con CHECK, no como ENUM de base de datos.
historial_pedidos es inmutable: solo INSERT.
"""
from alembic import op
import sqlalchemy as sa

revision = '20260104_01'
down_revision = None
branch_labels = None
depends_on = None


def _in(columna, valores):
    return "%s IN (%s)" % (columna, ", ".join("'%s'" % v for v in valores))


ROLES = ['admin', 'encargado', 'repartidor', 'administrador_repartidor', 'invitado', 'cliente']
ESTADOS_PEDIDO = ['pendiente', 'preparado', 'en_camino', 'entregado', 'cancelado']
METODOS_PAGO = ['efectivo', 'transferencia', 'otro']
ESTADOS_CORTE = ['borrador', 'completado']
ACCIONES = [
    'creado', 'editado', 'estado_pendiente', 'estado_preparado', 'estado_en_camino',
    'estado_entregado', 'estado_cancelado', 'repartidor_asignado', 'repartidor_cambiado',
    'pago_registrado', 'abono_registrado', 'nota_agregada',
]


def _timestamps(updated=True):
    cols = [sa.Column('created_at', sa.DateTime(), nullable=True)]
    if updated:
        cols.append(sa.Column('updated_at', sa.DateTime(), nullable=True))
    return cols


def upgrade():
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existentes = set(inspector.get_table_names())

    if 'sucursales' not in existentes:
        op.create_table(
            'sucursales',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('nombre', sa.String(100), nullable=False),
            sa.Column('direccion', sa.String(255), nullable=True),
            sa.Column('tipo', sa.String(20), nullable=True),
            sa.Column('activa', sa.Boolean(), nullable=True),
            *_timestamps(updated=False),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('nombre'),
            sa.CheckConstraint(_in('tipo', ['fisica', 'virtual']), name='ck_sucursales_tipo'),
        )
        op.create_index('ix_sucursales_id', 'sucursales', ['id'])

    if 'clientes' not in existentes:
        op.create_table(
            'clientes',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('nombre', sa.String(150), nullable=True),
            sa.Column('telefono', sa.String(20), nullable=True),
            sa.Column('direccion', sa.Text(), nullable=True),
            sa.Column('email', sa.String(255), nullable=True),
            sa.Column('notas', sa.Text(), nullable=True),
            sa.Column('limite_credito', sa.Numeric(10, 2), nullable=True),
            sa.Column('aprobado', sa.Boolean(), nullable=True),
            sa.Column('sucursal_id', sa.Integer(), nullable=True),
            sa.Column('sucursal_backup_id', sa.Integer(), nullable=True),
            sa.Column('activo', sa.Boolean(), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['sucursal_id'], ['sucursales.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['sucursal_backup_id'], ['sucursales.id'], ondelete='SET NULL'),
        )
        op.create_index('ix_clientes_nombre', 'clientes', ['nombre'])
        op.create_index('ix_clientes_sucursal_id', 'clientes', ['sucursal_id'])

    if 'usuarios' not in existentes:
        op.create_table(
            'usuarios',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('nombre', sa.String(100), nullable=True),
            sa.Column('email', sa.String(255), nullable=True),
            sa.Column('password_hash', sa.String(200), nullable=True),
            sa.Column('rol', sa.String(30), nullable=True),
            sa.Column('sucursal_id', sa.Integer(), nullable=True),
            sa.Column('cliente_id', sa.Integer(), nullable=True),
            sa.Column('activo', sa.Boolean(), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['sucursal_id'], ['sucursales.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['cliente_id'], ['clientes.id'], ondelete='SET NULL'),
            sa.CheckConstraint(_in('rol', ROLES), name='ck_usuarios_rol'),
        )
        op.create_index('ix_usuarios_email', 'usuarios', ['email'], unique=True)
        op.create_index('ix_usuarios_sucursal_id', 'usuarios', ['sucursal_id'])
        op.create_index('ix_usuarios_cliente_id', 'usuarios', ['cliente_id'])

    if 'usuario_roles' not in existentes:
        op.create_table(
            'usuario_roles',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('usuario_id', sa.Integer(), nullable=True),
            sa.Column('rol', sa.String(30), nullable=True),
            sa.Column('sucursal_id', sa.Integer(), nullable=True),
            *_timestamps(updated=False),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['usuario_id'], ['usuarios.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['sucursal_id'], ['sucursales.id'], ondelete='SET NULL'),
            sa.UniqueConstraint('usuario_id', 'rol', name='uq_usuario_roles_usuario_rol'),
            sa.CheckConstraint(_in('rol', ROLES), name='ck_usuario_roles_rol'),
        )
        op.create_index('ix_usuario_roles_usuario_id', 'usuario_roles', ['usuario_id'])

    if 'productos' not in existentes:
        op.create_table(
            'productos',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('nombre', sa.String(100), nullable=True),
            sa.Column('unidad', sa.String(20), nullable=True),
            sa.Column('precio_lista', sa.Numeric(10, 2), nullable=True),
            sa.Column('activo', sa.Boolean(), nullable=True),
            *_timestamps(updated=False),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('nombre'),
        )

    if 'precios_cliente' not in existentes:
        op.create_table(
            'precios_cliente',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('cliente_id', sa.Integer(), nullable=True),
            sa.Column('producto_id', sa.Integer(), nullable=True),
            sa.Column('precio', sa.Numeric(10, 2), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['cliente_id'], ['clientes.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['producto_id'], ['productos.id'], ondelete='CASCADE'),
            sa.UniqueConstraint('cliente_id', 'producto_id', name='uq_precios_cliente_cliente_producto'),
        )
        op.create_index('ix_precios_cliente_cliente_id', 'precios_cliente', ['cliente_id'])

    if 'precios_sucursal' not in existentes:
        op.create_table(
            'precios_sucursal',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('sucursal_id', sa.Integer(), nullable=True),
            sa.Column('producto_id', sa.Integer(), nullable=True),
            sa.Column('precio', sa.Numeric(10, 2), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['sucursal_id'], ['sucursales.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['producto_id'], ['productos.id'], ondelete='CASCADE'),
            sa.UniqueConstraint('sucursal_id', 'producto_id', name='uq_precios_sucursal_sucursal_producto'),
        )
        op.create_index('ix_precios_sucursal_sucursal_id', 'precios_sucursal', ['sucursal_id'])

    if 'pedidos' not in existentes:
        op.create_table(
            'pedidos',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('fecha', sa.Date(), nullable=True),
            sa.Column('cliente_id', sa.Integer(), nullable=True),
            sa.Column('repartidor_id', sa.Integer(), nullable=True),
            sa.Column('creado_por', sa.Integer(), nullable=True),
            sa.Column('estado', sa.String(20), nullable=True),
            sa.Column('total', sa.Numeric(10, 2), nullable=True),
            sa.Column('monto_pagado', sa.Numeric(10, 2), nullable=True),
            sa.Column('saldo_pendiente', sa.Numeric(10, 2), nullable=True),
            sa.Column('notas', sa.Text(), nullable=True),
            sa.Column('observaciones', sa.Text(), nullable=True),
            sa.Column('sucursal_principal_id', sa.Integer(), nullable=True),
            sa.Column('sucursal_backup_id', sa.Integer(), nullable=True),
            sa.Column('sucursal_actual_id', sa.Integer(), nullable=True),
            sa.Column('transferido', sa.Boolean(), nullable=True),
            sa.Column('sucursal_ocupada', sa.Boolean(), nullable=True),
            sa.Column('fecha_asignacion', sa.DateTime(), nullable=True),
            sa.Column('fecha_preparado', sa.DateTime(), nullable=True),
            sa.Column('fecha_despacho', sa.DateTime(), nullable=True),
            sa.Column('fecha_entrega', sa.DateTime(), nullable=True),
            sa.Column('demora_preparacion_seg', sa.Integer(), nullable=True),
            sa.Column('demora_entrega_seg', sa.Integer(), nullable=True),
            sa.Column('demora_total_seg', sa.Integer(), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['cliente_id'], ['clientes.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['repartidor_id'], ['usuarios.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['creado_por'], ['usuarios.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['sucursal_principal_id'], ['sucursales.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['sucursal_backup_id'], ['sucursales.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['sucursal_actual_id'], ['sucursales.id'], ondelete='SET NULL'),
            sa.CheckConstraint(_in('estado', ESTADOS_PEDIDO), name='ck_pedidos_estado'),
            sa.CheckConstraint('monto_pagado >= 0 AND monto_pagado <= total', name='ck_pedidos_monto_pagado'),
            sa.CheckConstraint('saldo_pendiente >= 0', name='ck_pedidos_saldo'),
        )
        op.create_index('ix_pedidos_fecha', 'pedidos', ['fecha'])
        op.create_index('ix_pedidos_cliente_id', 'pedidos', ['cliente_id'])
        op.create_index('ix_pedidos_repartidor_id', 'pedidos', ['repartidor_id'])
        op.create_index('ix_pedidos_estado', 'pedidos', ['estado'])
        op.create_index('ix_pedidos_sucursal_actual_id', 'pedidos', ['sucursal_actual_id'])

    if 'detalle_pedidos' not in existentes:
        op.create_table(
            'detalle_pedidos',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('pedido_id', sa.Integer(), nullable=True),
            sa.Column('producto_id', sa.Integer(), nullable=True),
            sa.Column('cantidad', sa.Numeric(10, 2), nullable=True),
            sa.Column('precio_unitario', sa.Numeric(10, 2), nullable=True),
            sa.Column('subtotal', sa.Numeric(10, 2), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['pedido_id'], ['pedidos.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['producto_id'], ['productos.id']),
            sa.CheckConstraint('cantidad > 0', name='ck_detalle_pedidos_cantidad'),
        )
        op.create_index('ix_detalle_pedidos_pedido_id', 'detalle_pedidos', ['pedido_id'])

    if 'abonos' not in existentes:
        op.create_table(
            'abonos',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('pedido_id', sa.Integer(), nullable=True),
            sa.Column('cliente_id', sa.Integer(), nullable=True),
            sa.Column('monto', sa.Numeric(10, 2), nullable=True),
            sa.Column('tipo', sa.String(20), nullable=True),
            sa.Column('origen', sa.String(20), nullable=True),
            sa.Column('fecha', sa.Date(), nullable=True),
            sa.Column('registrado_por', sa.Integer(), nullable=True),
            sa.Column('notas', sa.Text(), nullable=True),
            *_timestamps(updated=False),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['pedido_id'], ['pedidos.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['cliente_id'], ['clientes.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['registrado_por'], ['usuarios.id'], ondelete='SET NULL'),
            sa.CheckConstraint('monto > 0', name='ck_abonos_monto_positivo'),
            sa.CheckConstraint('pedido_id IS NOT NULL OR cliente_id IS NOT NULL', name='ck_abonos_pedido_o_cliente'),
            sa.CheckConstraint(_in('tipo', METODOS_PAGO), name='ck_abonos_tipo'),
            sa.CheckConstraint(_in('origen', ['entrega', 'abono']), name='ck_abonos_origen'),
        )
        op.create_index('ix_abonos_pedido_id', 'abonos', ['pedido_id'])
        op.create_index('ix_abonos_cliente_id', 'abonos', ['cliente_id'])
        op.create_index('ix_abonos_fecha', 'abonos', ['fecha'])

    if 'cortes_pedidos' not in existentes:
        op.create_table(
            'cortes_pedidos',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('fecha', sa.Date(), nullable=True),
            sa.Column('repartidor_id', sa.Integer(), nullable=True),
            sa.Column('total_pedidos', sa.Integer(), nullable=True),
            sa.Column('total_monto', sa.Numeric(10, 2), nullable=True),
            sa.Column('estado', sa.String(20), nullable=True),
            sa.Column('efectivo_esperado', sa.Numeric(10, 2), nullable=True),
            sa.Column('efectivo_recibido', sa.Numeric(10, 2), nullable=True),
            sa.Column('diferencia', sa.Numeric(10, 2), nullable=True),
            sa.Column('cerrado_por', sa.Integer(), nullable=True),
            sa.Column('cerrado_at', sa.DateTime(), nullable=True),
            sa.Column('notas_cierre', sa.Text(), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['repartidor_id'], ['usuarios.id']),
            sa.ForeignKeyConstraint(['cerrado_por'], ['usuarios.id']),
            sa.UniqueConstraint('fecha', 'repartidor_id', name='uq_cortes_pedidos_fecha_repartidor'),
            sa.CheckConstraint(_in('estado', ESTADOS_CORTE), name='ck_cortes_pedidos_estado'),
        )
        op.create_index('ix_cortes_pedidos_fecha', 'cortes_pedidos', ['fecha'])
        op.create_index('ix_cortes_pedidos_repartidor_id', 'cortes_pedidos', ['repartidor_id'])

    if 'detalle_cierre' not in existentes:
        op.create_table(
            'detalle_cierre',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('corte_pedido_id', sa.Integer(), nullable=True),
            sa.Column('tipo', sa.String(20), nullable=True),
            sa.Column('pedido_id', sa.Integer(), nullable=True),
            sa.Column('abono_id', sa.Integer(), nullable=True),
            sa.Column('monto', sa.Numeric(10, 2), nullable=True),
            sa.Column('recibido', sa.Boolean(), nullable=True),
            sa.Column('notas', sa.Text(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['corte_pedido_id'], ['cortes_pedidos.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['pedido_id'], ['pedidos.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['abono_id'], ['abonos.id'], ondelete='SET NULL'),
            sa.CheckConstraint(_in('tipo', ['entrega', 'abono']), name='ck_detalle_cierre_tipo'),
        )
        op.create_index('ix_detalle_cierre_corte_pedido_id', 'detalle_cierre', ['corte_pedido_id'])

    if 'historial_pedidos' not in existentes:
        op.create_table(
            'historial_pedidos',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('pedido_id', sa.Integer(), nullable=True),
            sa.Column('usuario_id', sa.Integer(), nullable=True),
            sa.Column('accion', sa.String(30), nullable=True),
            sa.Column('descripcion', sa.Text(), nullable=True),
            sa.Column('datos_anteriores', sa.JSON(), nullable=True),
            sa.Column('datos_nuevos', sa.JSON(), nullable=True),
            sa.Column('ip_address', sa.String(45), nullable=True),
            *_timestamps(updated=False),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['pedido_id'], ['pedidos.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['usuario_id'], ['usuarios.id'], ondelete='SET NULL'),
            sa.CheckConstraint(_in('accion', ACCIONES), name='ck_historial_pedidos_accion'),
            comment='Historial de pedidos - inmutable',
        )
        op.create_index('ix_historial_pedidos_pedido_id', 'historial_pedidos', ['pedido_id'])
        op.create_index('ix_historial_pedidos_accion', 'historial_pedidos', ['accion'])
        op.create_index('ix_historial_pedidos_created_at', 'historial_pedidos', ['created_at'])

    if 'categorias_gasto' not in existentes:
        op.create_table(
            'categorias_gasto',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('nombre', sa.String(100), nullable=True),
            sa.Column('tipo', sa.String(20), nullable=True),
            sa.Column('activa', sa.Boolean(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('nombre'),
            sa.CheckConstraint(_in('tipo', ['operativo', 'nomina']), name='ck_categorias_gasto_tipo'),
        )

    if 'cortes' not in existentes:
        op.create_table(
            'cortes',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('fecha', sa.Date(), nullable=True),
            sa.Column('sucursal_id', sa.Integer(), nullable=True),
            sa.Column('usuario_id', sa.Integer(), nullable=True),
            sa.Column('efectivo_caja', sa.Numeric(10, 2), nullable=True),
            sa.Column('venta_total', sa.Numeric(10, 2), nullable=True),
            sa.Column('inventario_nixta', sa.Numeric(10, 2), nullable=True),
            sa.Column('inventario_extra', sa.Numeric(10, 2), nullable=True),
            sa.Column('consumo_masa', sa.Numeric(10, 2), nullable=True),
            sa.Column('estado', sa.String(20), nullable=True),
            sa.Column('notas', sa.Text(), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['sucursal_id'], ['sucursales.id']),
            sa.ForeignKeyConstraint(['usuario_id'], ['usuarios.id'], ondelete='SET NULL'),
            sa.UniqueConstraint('fecha', 'sucursal_id', name='uq_cortes_fecha_sucursal'),
            sa.CheckConstraint(_in('estado', ESTADOS_CORTE), name='ck_cortes_estado'),
        )
        op.create_index('ix_cortes_fecha', 'cortes', ['fecha'])
        op.create_index('ix_cortes_sucursal_id', 'cortes', ['sucursal_id'])

    if 'gastos' not in existentes:
        op.create_table(
            'gastos',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('corte_id', sa.Integer(), nullable=True),
            sa.Column('categoria_id', sa.Integer(), nullable=True),
            sa.Column('descripcion', sa.String(255), nullable=True),
            sa.Column('monto', sa.Numeric(10, 2), nullable=True),
            *_timestamps(updated=False),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['corte_id'], ['cortes.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['categoria_id'], ['categorias_gasto.id'], ondelete='SET NULL'),
            sa.CheckConstraint('monto > 0', name='ck_gastos_monto_positivo'),
        )
        op.create_index('ix_gastos_corte_id', 'gastos', ['corte_id'])


def downgrade():
    for tabla in (
        'gastos', 'cortes', 'categorias_gasto', 'historial_pedidos', 'detalle_cierre',
        'cortes_pedidos', 'abonos', 'detalle_pedidos', 'pedidos', 'precios_sucursal',
        'precios_cliente', 'productos', 'usuario_roles', 'usuarios', 'clientes', 'sucursales',
    ):
        op.drop_table(tabla)
