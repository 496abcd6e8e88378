"""
Configuración de logging para la aplicación
Crea archivos de log por día en la carpeta indicada por LOG_DIR (logs/ por defecto)
"""
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime
from pathlib import Path

from ..config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_dir: str | None = None):
    """Configura el sistema de logging con archivos diarios"""

    directorio = Path(log_dir or settings.log_dir)
    directorio.mkdir(parents=True, exist_ok=True)

    # Nombre del archivo de log con fecha actual (YYYY-MM-DD)
    today = datetime.now().strftime("%Y-%m-%d")
    log_file = directorio / f"hacienda_{today}.log"

    nivel = logging.DEBUG if settings.debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(nivel)

    # Eliminar handlers existentes para evitar duplicados
    root_logger.handlers.clear()

    # maxBytes=10MB, backupCount=5
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(nivel)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(nivel)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logging.getLogger("hacienda").setLevel(nivel)
    logging.getLogger("hacienda.api").setLevel(logging.INFO)

    # Movimientos de dinero: siempre a INFO como mínimo
    for nombre in ("hacienda.application.services_abonos", "hacienda.application.services_cortes_pedidos"):
        logging.getLogger(nombre).setLevel(min(nivel, logging.INFO))

    # Solo warnings y errores de SQL
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)

    logging.info("Sistema de logging configurado. Archivo: %s", log_file)

    return root_logger
