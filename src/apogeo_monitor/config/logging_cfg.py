"""
Configuracion de logging del proyecto.

- Consola: INFO o superior (nivel configurable en SETTINGS)
- Archivo rotativo en logs/: DEBUG, incluye tramas descartadas
- Todos los loggers cuelgan de "apogeo"

Uso:
    from apogeo_monitor.config.logging_cfg import get_logger
    log = get_logger(__name__)
"""

import logging
import logging.handlers
from pathlib import Path

from apogeo_monitor.config.settings import SETTINGS


NOMBRE_RAIZ = "apogeo"


def _build_logger() -> logging.Logger:
    """Crea el logger raiz del proyecto una sola vez."""
    logger = logging.getLogger(NOMBRE_RAIZ)
    if logger.handlers:  # ya inicializado
        return logger

    logger.setLevel(logging.DEBUG)

    # ---- Consola ----
    consola = logging.StreamHandler()
    consola.setLevel(getattr(logging, SETTINGS.log_nivel_consola.upper(), logging.INFO))
    consola.setFormatter(logging.Formatter(
        "[%(levelname)s] %(asctime)s - %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    ))
    logger.addHandler(consola)

    # ---- Archivo rotativo ----
    # Si no se puede crear la carpeta (solo lectura), se queda solo con consola
    log_dir = Path(SETTINGS.log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        archivo = logging.handlers.RotatingFileHandler(
            log_dir / SETTINGS.log_archivo,
            maxBytes=SETTINGS.log_max_bytes,
            backupCount=SETTINGS.log_backups,
            encoding="utf-8",
        )
    except OSError as e:
        logger.warning("No se pudo abrir el log en archivo (%s): %s", log_dir, e)
    else:
        archivo.setLevel(logging.DEBUG)
        archivo.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(funcName)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(archivo)

    logger.propagate = False
    return logger


def get_logger(nombre_modulo: str) -> logging.Logger:
    """
    Retorna un logger hijo de "apogeo" para el modulo indicado.
    """
    return _build_logger().getChild(nombre_modulo)
