"""
Definicion de estructuras de datos del sistema

- Muestra: una lectura (tiempo, empuje, temperaturas). Sale del decodificador
  o del CSV y se guarda en el SerieBuffer.
- Metricas: resultados derivados de una serie completa (impulso, estadisticas).

Estas clases son el contrato comun entre Controller, Model y View.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Muestra:
    tiempo_s: float         # segundos desde el inicio de la sesion / del archivo
    empuje: float
    temp_ambiente: float
    temp_tobera: float


@dataclass(frozen=True)
class Metricas:
    impulso_total: float = 0.0
    empuje_maximo: float = 0.0
    empuje_promedio: float = 0.0
    duracion_s: float = 0.0
    n_muestras: int = 0
    impulso_especifico: float = 0.0
