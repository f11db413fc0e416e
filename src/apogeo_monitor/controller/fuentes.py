"""
Este modulo define las fuentes de datos crudos para el controller.

- PuertoSerial: placa de sensores real por puerto serial (pyserial).
- PuertoSimulado: genera tramas de prueba con el mismo formato que el firmware
  (desarrollo / presentacion sin banco de pruebas).
- cargar_csv: lee un archivo CSV completo y entrega la lista de muestras.

Idea de arquitectura:
- El trabajador serial solo conoce el contrato Puerto.leer() / Puerto.cerrar().
- Asi se puede cambiar entre Serial real y Simulado sin tocar el trabajador.
"""

import io
import math
import random
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import serial  # pyserial
from serial.tools import list_ports

from apogeo_monitor.config.logging_cfg import get_logger
from apogeo_monitor.config.settings import SETTINGS
from apogeo_monitor.controller.decodificador import decodificar_fila_csv, es_encabezado
from apogeo_monitor.controller.errores import (
    ArchivoNoDisponible,
    LineaInvalida,
    PuertoNoDisponible,
    SinDatosValidos,
)
from apogeo_monitor.model.muestra import Muestra


log = get_logger(__name__)

NOMBRE_PUERTO_SIMULADO = "SIMULADO"


def listar_puertos() -> List[str]:
    """Nombres de los puertos seriales disponibles en el sistema."""
    return [p.device for p in list_ports.comports()]


# ============================================================
# 0) CONTRATO BASE (interfaz)
# ============================================================

class Puerto:
    """
    Contrato que deben cumplir los puertos usados por el trabajador serial.

    - leer(n) -> bytes  (b"" si no llego nada dentro del timeout)
    - cerrar()
    """

    def leer(self, n: int) -> bytes:
        raise NotImplementedError

    def cerrar(self) -> None:
        raise NotImplementedError


# ============================================================
# 1) PUERTO SERIAL (PLACA REAL)
# ============================================================

class PuertoSerial(Puerto):
    """
    Puerto serial real.

    El timeout de lectura es corto (100 ms por defecto) para que el hilo
    revise la bandera de parada seguido sin quedar girando en vacio.
    """

    def __init__(self, puerto: str, baudrate: int = SETTINGS.baudrate, timeout_s: float = SETTINGS.timeout_s):
        self.puerto = puerto
        self.baudrate = baudrate
        self.timeout_s = timeout_s

        # Objeto serial (pyserial), se inicializa en conectar()
        self._ser = None

    def conectar(self) -> None:
        """
        Abre el puerto serial.

        Errores:
        - PuertoNoDisponible si el puerto no existe, esta ocupado o los parametros son invalidos
        """
        try:
            self._ser = serial.Serial(self.puerto, self.baudrate, timeout=self.timeout_s)
            # Limpia basura que haya quedado en el buffer del sistema operativo
            self._ser.reset_input_buffer()
        except (serial.SerialException, OSError, ValueError) as e:
            self.cerrar()
            raise PuertoNoDisponible(f"Error al abrir el puerto {self.puerto}: {e}") from e

    def leer(self, n: int) -> bytes:
        if self._ser is None:
            raise RuntimeError("Serial no conectado. Llama primero a conectar().")
        return self._ser.read(n)

    def cerrar(self) -> None:
        if self._ser is not None and self._ser.is_open:
            self._ser.close()
        self._ser = None


# ============================================================
# 2) PUERTO SIMULADO (DESARROLLO / PRESENTACION)
# ============================================================

class PuertoSimulado(Puerto):
    """
    Genera tramas "empuje,ambiente,tobera\\n" como lo haria el firmware.

    Curva de empuje: subida rapida, meseta y cola (encendido de ~3 s que se repite).
    Las temperaturas suben lentamente con ruido uniforme.
    """

    def __init__(self, periodo_s: float = 0.05, ruido: float = 0.3, semilla=None):
        self.periodo_s = float(periodo_s)
        self.ruido = float(ruido)
        self._rng = random.Random(semilla)
        self._t0 = time.monotonic()
        self._pendiente = b""

    def _empuje(self, t: float) -> float:
        fase = t % 6.0
        if fase < 0.3:
            return 40.0 * fase / 0.3
        if fase < 2.5:
            return 40.0 - 5.0 * (fase - 0.3)
        if fase < 3.0:
            return max(0.0, 29.0 * (3.0 - fase) / 0.5)
        return 0.0

    def _trama(self) -> bytes:
        t = time.monotonic() - self._t0
        empuje = self._empuje(t) + self._rng.uniform(-self.ruido, self.ruido)
        ambiente = 20.0 + 0.05 * t + self._rng.uniform(-0.1, 0.1)
        tobera = 25.0 + 300.0 * (1.0 - math.exp(-t / 30.0)) + self._rng.uniform(-1.0, 1.0)
        return f"{empuje:.2f},{ambiente:.2f},{tobera:.2f}\n".encode("ascii")

    def leer(self, n: int) -> bytes:
        if not self._pendiente:
            time.sleep(self.periodo_s)
            self._pendiente = self._trama()

        chunk, self._pendiente = self._pendiente[:n], self._pendiente[n:]
        return chunk

    def cerrar(self) -> None:
        self._pendiente = b""


def abrir_puerto(nombre: str, baudrate: int, timeout_s: float = SETTINGS.timeout_s) -> Puerto:
    """
    Fabrica de puertos: "SIMULADO" entrega un PuertoSimulado, cualquier otro
    nombre abre el puerto serial real.
    """
    if nombre.strip().upper() == NOMBRE_PUERTO_SIMULADO:
        return PuertoSimulado()

    puerto = PuertoSerial(nombre, baudrate=baudrate, timeout_s=timeout_s)
    puerto.conectar()
    return puerto


# ============================================================
# 3) CSV (CARGA COMPLETA)
# ============================================================

@dataclass
class ResultadoCarga:
    ruta: str
    muestras: List[Muestra] = field(default_factory=list)
    filas_descartadas: int = 0      # filas no vacias que no se pudieron decodificar
    encabezado_omitido: bool = False


def cargar_csv(ruta: str, desde_byte: int = 0) -> ResultadoCarga:
    """
    Lee un CSV completo (tiempo,empuje,ambiente,tobera) en orden de archivo.

    - La primera fila se omite si parece encabezado (Tiempo / Empuje ...).
    - Filas mal formadas se descartan y se cuentan; lineas vacias no cuentan.
    - desde_byte: lee solo lo que hay a partir de ese offset. Sirve para analizar
      unicamente la ultima sesion de un log en modo append.

    Errores:
    - ArchivoNoDisponible si no se puede abrir/leer el archivo
    - SinDatosValidos si no quedo ninguna fila valida
    """
    path = Path(ruta)
    resultado = ResultadoCarga(ruta=str(ruta))

    try:
        with path.open(mode="rb") as binario:
            binario.seek(max(0, int(desde_byte)))
            with io.TextIOWrapper(binario, encoding="utf-8-sig", errors="replace", newline="") as archivo:
                for n_linea, linea in enumerate(archivo):
                    if n_linea == 0 and es_encabezado(linea):
                        resultado.encabezado_omitido = True
                        continue

                    if not linea.strip():
                        continue

                    try:
                        resultado.muestras.append(decodificar_fila_csv(linea))
                    except LineaInvalida:
                        resultado.filas_descartadas += 1
    except OSError as e:
        raise ArchivoNoDisponible(f"Error al abrir el archivo: {e}") from e

    if not resultado.muestras:
        raise SinDatosValidos("No se encontraron datos válidos en el archivo CSV")

    if resultado.filas_descartadas:
        log.warning("%s: %d filas descartadas por formato invalido", ruta, resultado.filas_descartadas)

    return resultado
