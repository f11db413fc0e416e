"""
Este modulo decodifica lineas de texto que vienen desde la placa de sensores
(por serial) o desde un archivo CSV.

Objetivo:
- Convertir una linea de texto en un objeto Muestra.

Contratos esperados:
  Serial (firmware -> PC):  <empuje>,<temp_ambiente>,<temp_tobera>
  CSV (log del programa):   HH:MM:SS:mmm,<empuje>,<temp_ambiente>,<temp_tobera>

Ejemplos:
  5.5,21.0,33.0
  00:00:01:250,5.5,21.0,33.0

Notas:
- La trama serial no trae tiempo: lo asigna el trabajador serial con su propio reloj.
- Si la linea no cumple el formato se levanta LineaInvalida; quien llama decide
  descartarla (el flujo nunca se detiene por una linea mala).
"""

import math
from typing import List, Sequence

from apogeo_monitor.config.settings import SETTINGS
from apogeo_monitor.controller.errores import LineaInvalida
from apogeo_monitor.model.muestra import Muestra
from apogeo_monitor.model.tiempo import parse_tiempo_flexible


CAMPOS_TRAMA = 3
CAMPOS_CSV = 4


def _separar(linea: str) -> List[str]:
    return [p.strip() for p in linea.strip().split(",")]


def _a_float(texto: str) -> float:
    try:
        valor = float(texto)
    except ValueError as e:
        raise LineaInvalida(f"Linea invalida: '{texto}' no es numerico") from e

    if not math.isfinite(valor):
        raise LineaInvalida(f"Linea invalida: '{texto}' no es un valor finito")
    return valor


def decodificar_trama(linea: str, tiempo_s: float) -> Muestra:
    """
    Decodifica una trama serial "empuje,ambiente,tobera".

    Parametros:
    - linea: texto recibido por serial
    - tiempo_s: segundos desde el inicio de la sesion (reloj del trabajador)

    Errores:
    - LineaInvalida si no hay exactamente 3 campos o falla la conversion
    """
    partes = _separar(linea)

    if len(partes) != CAMPOS_TRAMA:
        raise LineaInvalida(f"Linea invalida: se esperaban {CAMPOS_TRAMA} campos, llegaron {len(partes)}")

    empuje, temp_ambiente, temp_tobera = (_a_float(p) for p in partes)

    return Muestra(
        tiempo_s=float(tiempo_s),
        empuje=empuje,
        temp_ambiente=temp_ambiente,
        temp_tobera=temp_tobera,
    )


def decodificar_fila_csv(linea: str) -> Muestra:
    """
    Decodifica una fila "tiempo,empuje,ambiente,tobera".

    - El tiempo puede venir como HH:MM:SS:mmm o como segundos decimales.
    - Columnas extra al final se ignoran.

    Errores:
    - LineaInvalida si faltan campos o falla alguna conversion
    """
    partes = _separar(linea)

    if len(partes) < CAMPOS_CSV:
        raise LineaInvalida(f"Linea invalida: se esperaban {CAMPOS_CSV} campos, llegaron {len(partes)}")

    tiempo_s = parse_tiempo_flexible(partes[0])
    if tiempo_s is None:
        raise LineaInvalida(f"Linea invalida: tiempo '{partes[0]}' no reconocido")

    return Muestra(
        tiempo_s=tiempo_s,
        empuje=_a_float(partes[1]),
        temp_ambiente=_a_float(partes[2]),
        temp_tobera=_a_float(partes[3]),
    )


def es_encabezado(linea: str, marcadores: Sequence[str] = SETTINGS.marcadores_encabezado) -> bool:
    """True si la linea contiene alguna palabra tipica de encabezado (Tiempo, Empuje, ...)."""
    texto = linea.lower()
    return any(m.lower() in texto for m in marcadores)
