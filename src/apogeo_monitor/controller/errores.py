"""
Errores del sistema Apogeo Monitor.

- Errores de sesion (puerto/archivo): abortan solo esa sesion y se muestran como texto.
- SinDatosValidos: el CSV no tenia ninguna fila util.
- LineaInvalida: una linea/trama mal formada. Nunca se muestra al usuario,
  quien la recibe la descarta y sigue.
"""


class ErrorApogeo(Exception):
    """Base de los errores del proyecto."""


class PuertoNoDisponible(ErrorApogeo):
    """No se pudo abrir el puerto serial."""


class ArchivoNoDisponible(ErrorApogeo):
    """No se pudo abrir el archivo (log o CSV)."""


class SinDatosValidos(ErrorApogeo):
    """El CSV no contiene filas validas."""


class LineaInvalida(ErrorApogeo, ValueError):
    """Linea con cantidad de campos incorrecta o valores no numericos."""
