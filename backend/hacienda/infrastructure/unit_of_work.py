from contextlib import contextmanager
from sqlalchemy.orm import Session
from ..db import SessionLocal
from .repositories import (
    PedidoRepository, ClienteRepository, UsuarioRepository, ProductoRepository,
    SucursalRepository, PrecioRepository, CortePedidosRepository,
)

class UnitOfWork:
    def __init__(self, db: Session = None):
        self.db: Session = db if db is not None else SessionLocal()
        self.pedidos = PedidoRepository(self.db)
        self.clientes = ClienteRepository(self.db)
        self.usuarios = UsuarioRepository(self.db)
        self.productos = ProductoRepository(self.db)
        self.sucursales = SucursalRepository(self.db)
        self.precios = PrecioRepository(self.db)
        self.cortes_pedidos = CortePedidosRepository(self.db)

    def commit(self): self.db.commit()
    def rollback(self): self.db.rollback()
    def close(self): self.db.close()

    @contextmanager
    def transaction(self):
        try:
            yield self
            self.commit()
        except Exception:
            self.rollback()
            raise
        finally:
            self.close()
