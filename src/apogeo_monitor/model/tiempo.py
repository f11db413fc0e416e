"""
Conversion de marcas de tiempo.

Formatos:
- "HH:MM:SS:mmm": lo escribe el log en vivo y lo lee el visor CSV
- "HH:MM:SS": solo para mostrar el reloj en pantalla (no se vuelve a parsear)
"""

import math
from typing import Optional


def parse_tiempo(texto: str) -> Optional[float]:
    """
    Convierte "horas:minutos:segundos:milis" a segundos.

    Retorna None si no hay exactamente 4 campos o si alguno no es numerico.
    """
    partes = texto.strip().split(":")
    if len(partes) != 4:
        return None

    try:
        horas, minutos, segundos, milis = (float(p) for p in partes)
    except ValueError:
        return None

    valores = (horas, minutos, segundos, milis)
    if not all(math.isfinite(v) for v in valores):
        return None

    return horas * 3600.0 + minutos * 60.0 + segundos + milis / 1000.0


def parse_tiempo_flexible(texto: str) -> Optional[float]:
    """
    Igual que parse_tiempo, pero acepta tambien segundos decimales ("12.345").
    Lo usa el visor CSV para archivos generados por otras herramientas.
    """
    segundos = parse_tiempo(texto)
    if segundos is not None:
        return segundos

    try:
        segundos = float(texto.strip())
    except ValueError:
        return None

    return segundos if math.isfinite(segundos) else None


def _descomponer(segundos: float):
    # milisegundos truncados; el epsilon evita que 1.001 s quede en 1000 ms
    total_ms = int(max(0.0, segundos) * 1000.0 + 1e-6)
    total_s, milis = divmod(total_ms, 1000)
    horas = total_s // 3600
    minutos = (total_s % 3600) // 60
    return horas, minutos, total_s % 60, milis


def formatear_tiempo(segundos: float) -> str:
    """Segundos -> "HH:MM:SS:mmm" (las horas no se acotan)."""
    horas, minutos, segs, milis = _descomponer(segundos)
    return f"{horas:02d}:{minutos:02d}:{segs:02d}:{milis:03d}"


def formatear_transcurrido(segundos: float) -> str:
    """Segundos -> "HH:MM:SS" para el reloj de la vista."""
    total_s = int(max(0.0, segundos))
    return f"{total_s // 3600:02d}:{(total_s % 3600) // 60:02d}:{total_s % 60:02d}"
