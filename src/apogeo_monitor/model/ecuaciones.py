"""
Ecuaciones del sistema (Apogeo Monitor)

Este modulo contiene las funciones matematicas usadas sobre una serie de muestras:

- Impulso total (integracion trapezoidal del empuje en el tiempo)
- Estadisticas de empuje (maximo, promedio)
- Duracion de la serie
- Impulso especifico (impulso total / g0)

Nota:
- Se asume que el tiempo es creciente (orden de llegada). No se reordena ni se valida.
- Todas las funciones aceptan series vacias y retornan 0.0 en ese caso.
"""

from typing import Sequence

from apogeo_monitor.config.settings import SETTINGS
from apogeo_monitor.model.muestra import Metricas, Muestra


# -------------------------------------------------------
# Impulso
# -------------------------------------------------------

def impulso_total(muestras: Sequence[Muestra]) -> float:
    """
    Integra el empuje en el tiempo con la regla del trapecio:

        I = sum( (F[i] + F[i-1]) / 2 * (t[i] - t[i-1]) )

    Con menos de 2 muestras el impulso es 0.
    """
    if len(muestras) < 2:
        return 0.0

    impulso = 0.0
    for anterior, actual in zip(muestras, muestras[1:]):
        dt = actual.tiempo_s - anterior.tiempo_s
        impulso += (actual.empuje + anterior.empuje) / 2.0 * dt
    return impulso


def impulso_especifico(impulso: float, g0: float = SETTINGS.gravedad) -> float:
    """Impulso especifico (s): I / g0."""
    return impulso / g0


# -------------------------------------------------------
# Estadisticas
# -------------------------------------------------------

def empuje_maximo(muestras: Sequence[Muestra]) -> float:
    if not muestras:
        return 0.0
    return max(m.empuje for m in muestras)


def empuje_promedio(muestras: Sequence[Muestra]) -> float:
    if not muestras:
        return 0.0
    return sum(m.empuje for m in muestras) / len(muestras)


def duracion(muestras: Sequence[Muestra]) -> float:
    """Tiempo entre la primera y la ultima muestra."""
    if not muestras:
        return 0.0
    return muestras[-1].tiempo_s - muestras[0].tiempo_s


def calcular_metricas(muestras: Sequence[Muestra]) -> Metricas:
    """
    Recalcula todas las metricas desde una foto (snapshot) de la serie.
    """
    impulso = impulso_total(muestras)
    return Metricas(
        impulso_total=impulso,
        empuje_maximo=empuje_maximo(muestras),
        empuje_promedio=empuje_promedio(muestras),
        duracion_s=duracion(muestras),
        n_muestras=len(muestras),
        impulso_especifico=impulso_especifico(impulso),
    )
