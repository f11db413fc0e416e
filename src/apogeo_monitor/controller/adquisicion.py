"""
Trabajador serial: hilo de adquisicion en vivo.

Responsabilidad:
- Abrir el puerto y el log CSV de la sesion.
- Leer bytes, armar lineas, decodificar tramas "empuje,ambiente,tobera".
- Por cada trama valida: escribir el log, actualizar el texto de estado y
  agregar la Muestra al SerieBuffer.

Maquina de estados:
  IDLE -> CONNECTING -> STREAMING -> STOPPING -> IDLE

Notas:
- Las tramas mal formadas se descartan sin detener el flujo.
- Un error de lectura cuenta como "sin datos en este tick".
- Un error al abrir puerto o archivo termina la sesion y deja el mensaje en el
  texto de estado; nunca se propaga fuera del hilo.
- La bandera "corriendo" se revisa en cada iteracion (latencia ~ timeout de lectura).
"""

import threading
import time
from enum import Enum
from typing import Callable, Optional

import serial

from apogeo_monitor.config.logging_cfg import get_logger
from apogeo_monitor.config.settings import SETTINGS
from apogeo_monitor.controller.decodificador import decodificar_trama
from apogeo_monitor.controller.errores import LineaInvalida, PuertoNoDisponible
from apogeo_monitor.controller.fuentes import Puerto, abrir_puerto
from apogeo_monitor.model.almacenamiento import BanderaCompartida, CeldaTexto, RegistroCSV, SerieBuffer
from apogeo_monitor.model.tiempo import formatear_tiempo


log = get_logger(__name__)


class EstadoAdquisicion(str, Enum):
    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    STREAMING = "STREAMING"
    STOPPING = "STOPPING"


class TrabajadorSerial:
    """
    Un trabajador = una sesion. Se crea al iniciar el monitoreo y el controller
    lo descarta despues de esperar() su hilo.
    """

    def __init__(
        self,
        puerto: str,
        baudrate: int,
        ruta_log: str,
        buffer: SerieBuffer,
        texto_estado: CeldaTexto,
        corriendo: BanderaCompartida,
        t0: Optional[float] = None,
        timeout_s: float = SETTINGS.timeout_s,
        bytes_por_lectura: int = SETTINGS.bytes_por_lectura,
        fabrica_puerto: Callable[..., Puerto] = abrir_puerto,
    ):
        self.puerto_nombre = puerto
        self.baudrate = int(baudrate)
        self.ruta_log = ruta_log
        self.timeout_s = float(timeout_s)
        self.bytes_por_lectura = int(bytes_por_lectura)

        # Estado compartido (lo crea y lo posee el controller)
        self._buffer = buffer
        self._texto_estado = texto_estado
        self._corriendo = corriendo

        # Reloj de la sesion: las marcas de tiempo se miden desde aqui
        self.t0 = time.monotonic() if t0 is None else t0

        self._fabrica_puerto = fabrica_puerto
        self._pendiente = ""

        self._lock_estado = threading.Lock()
        self._estado = EstadoAdquisicion.IDLE
        self._hilo: Optional[threading.Thread] = None

        # Diagnostico
        self.muestras_validas = 0
        self.lineas_descartadas = 0
        self.errores_lectura = 0

    # ----------------------------
    # Estado
    # ----------------------------

    @property
    def estado(self) -> EstadoAdquisicion:
        with self._lock_estado:
            return self._estado

    def _set_estado(self, estado: EstadoAdquisicion) -> None:
        with self._lock_estado:
            self._estado = estado
        log.debug("Adquisicion -> %s", estado.value)

    # ----------------------------
    # Ciclo de vida del hilo
    # ----------------------------

    def iniciar(self) -> None:
        if self._hilo is not None:
            raise RuntimeError("El trabajador ya fue iniciado (uno por sesion).")

        self._hilo = threading.Thread(target=self._run, name="apogeo-serial", daemon=True)
        self._hilo.start()

    def esperar(self, timeout: Optional[float] = None) -> bool:
        """Espera el fin del hilo. Retorna True si el hilo termino."""
        if self._hilo is None:
            return True
        self._hilo.join(timeout)
        return not self._hilo.is_alive()

    def esta_vivo(self) -> bool:
        return self._hilo is not None and self._hilo.is_alive()

    # ----------------------------
    # Hilo
    # ----------------------------

    def _run(self) -> None:
        self._set_estado(EstadoAdquisicion.CONNECTING)

        try:
            puerto = self._fabrica_puerto(self.puerto_nombre, self.baudrate, self.timeout_s)
        except PuertoNoDisponible as e:
            self._fallar(str(e))
            return
        except Exception as e:
            # el hilo no debe morir sin dejar el error en el texto de estado
            log.exception("Fallo inesperado al abrir %s", self.puerto_nombre)
            self._fallar(f"Error al abrir el puerto {self.puerto_nombre}: {e}")
            return

        registro = RegistroCSV(self.ruta_log)
        try:
            registro.abrir()
        except OSError as e:
            puerto.cerrar()
            self._fallar(f"Error al abrir el archivo: {e}")
            return

        log.info("Sesion iniciada: %s @ %d baud -> %s", self.puerto_nombre, self.baudrate, self.ruta_log)
        self._texto_estado.set("Conexión exitosa, esperando datos...")
        self._set_estado(EstadoAdquisicion.STREAMING)

        try:
            while self._corriendo.get():
                self._tick(puerto, registro)
        finally:
            self._set_estado(EstadoAdquisicion.STOPPING)
            puerto.cerrar()
            registro.cerrar()
            log.info(
                "Sesion detenida: %d muestras, %d lineas descartadas, %d errores de lectura",
                self.muestras_validas,
                self.lineas_descartadas,
                self.errores_lectura,
            )
            self._set_estado(EstadoAdquisicion.IDLE)

    def _fallar(self, mensaje: str) -> None:
        log.warning(mensaje)
        self._texto_estado.set(mensaje)
        self._set_estado(EstadoAdquisicion.IDLE)

    def _tick(self, puerto: Puerto, registro: RegistroCSV) -> None:
        try:
            chunk = puerto.leer(self.bytes_por_lectura)
        except (serial.SerialException, OSError) as e:
            # sin datos en este tick; se espera un timeout para no girar en vacio
            self.errores_lectura += 1
            log.debug("Error de lectura en %s: %s", self.puerto_nombre, e)
            time.sleep(self.timeout_s)
            return

        if not chunk:
            # timeout sin datos: lo acumulado sin salto de linea se toma como trama
            if self._pendiente:
                linea, self._pendiente = self._pendiente, ""
                self._procesar_linea(linea, registro)
            return

        self._pendiente += chunk.decode("utf-8", errors="replace")
        *lineas, self._pendiente = self._pendiente.split("\n")

        # el firmware no deberia mandar lineas tan largas: es basura
        if len(self._pendiente) > 4 * self.bytes_por_lectura:
            self.lineas_descartadas += 1
            self._pendiente = ""

        for linea in lineas:
            self._procesar_linea(linea, registro)

    def _procesar_linea(self, linea: str, registro: RegistroCSV) -> None:
        if not linea.strip():
            return

        transcurrido = time.monotonic() - self.t0
        try:
            muestra = decodificar_trama(linea, transcurrido)
        except LineaInvalida as e:
            self.lineas_descartadas += 1
            log.debug("Trama descartada %r: %s", linea, e)
            return

        try:
            registro.escribir(formatear_tiempo(transcurrido), muestra)
        except OSError as e:
            log.warning("No se pudo escribir en %s: %s", self.ruta_log, e)

        self._texto_estado.set(f"{muestra.empuje} | {muestra.temp_ambiente} | {muestra.temp_tobera}")
        self._buffer.agregar(muestra)
        self.muestras_validas += 1
