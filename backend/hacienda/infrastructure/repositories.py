from datetime import date
from sqlalchemy.orm import Session
from ..domain.models import Cliente, Producto, Usuario, Sucursal, PrecioCliente, PrecioSucursal
from ..domain.models_pedidos import Pedido
from ..domain.models_cortes_pedidos import CortePedidos
from ..domain.enums import EstadoPedido


class PedidoRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, p: Pedido): self.db.add(p); return p
    def get(self, id: int): return self.db.get(Pedido, id)

    def get_for_update(self, id: int):
        """Bloquea la fila del pedido (SELECT ... FOR UPDATE donde el motor lo soporta)."""
        return self.db.query(Pedido).filter(Pedido.id == id).with_for_update().first()

    def pendientes_de_cobro(self, cliente_id: int):
        """Pedidos entregados con saldo, del más antiguo al más reciente."""
        return (
            self.db.query(Pedido)
            .filter(
                Pedido.cliente_id == cliente_id,
                Pedido.estado == EstadoPedido.ENTREGADO.value,
                Pedido.saldo_pendiente > 0,
            )
            .order_by(Pedido.fecha.asc(), Pedido.created_at.asc(), Pedido.id.asc())
            .with_for_update()
            .all()
        )


class ClienteRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, c: Cliente): self.db.add(c); return c
    def get(self, id: int): return self.db.get(Cliente, id)


class UsuarioRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, u: Usuario): self.db.add(u); return u
    def get(self, id: int): return self.db.get(Usuario, id)
    def by_email(self, email: str):
        return self.db.query(Usuario).filter(Usuario.email == email.strip().lower()).first()


class ProductoRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, p: Producto): self.db.add(p); return p
    def get(self, id: int): return self.db.get(Producto, id)


class SucursalRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, s: Sucursal): self.db.add(s); return s
    def get(self, id: int): return self.db.get(Sucursal, id)


class PrecioRepository:
    def __init__(self, db: Session): self.db = db
    def de_cliente(self, cliente_id: int, producto_id: int):
        return self.db.query(PrecioCliente).filter_by(cliente_id=cliente_id, producto_id=producto_id).first()
    def de_sucursal(self, sucursal_id: int, producto_id: int):
        return self.db.query(PrecioSucursal).filter_by(sucursal_id=sucursal_id, producto_id=producto_id).first()


class CortePedidosRepository:
    def __init__(self, db: Session): self.db = db
    def add(self, c: CortePedidos): self.db.add(c); return c
    def by_fecha_repartidor(self, fecha: date, repartidor_id: int):
        return self.db.query(CortePedidos).filter_by(fecha=fecha, repartidor_id=repartidor_id).first()
    def esta_cerrado(self, fecha: date, repartidor_id: int) -> bool:
        corte = self.by_fecha_repartidor(fecha, repartidor_id)
        return bool(corte and corte.completado)
