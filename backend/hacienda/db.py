import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import settings

if settings.database_url.startswith("sqlite:///./"):
    os.makedirs("./data", exist_ok=True)

engine = create_engine(settings.database_url, echo=False, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def _import_all_models():
    """Importa todos los modelos para que Base.metadata los registre."""
    from .domain import models  # noqa: F401 - Sucursal, Usuario, Cliente, Producto, precios
    from .domain import models_pedidos  # noqa: F401 - Pedido, DetallePedido
    from .domain import models_abonos  # noqa: F401 - Abono
    from .domain import models_cortes_pedidos  # noqa: F401 - CortePedidos, DetalleCierre
    from .domain import models_historial  # noqa: F401 - HistorialPedido (inmutable)
    from .domain import models_cortes  # noqa: F401 - Corte, Gasto, CategoriaGasto


def init_db(bind=None):
    """Crear tablas si no existen (arranque normal)."""
    _import_all_models()
    Base.metadata.create_all(bind=bind or engine)
