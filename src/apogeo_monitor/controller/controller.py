"""
Controller del sistema (patron MVC)

Coordina la adquisicion en vivo, la carga de CSV y la exportacion de resultados.
Es el unico dueño del estado compartido (buffer, texto de estado, bandera) y se
lo entrega al trabajador serial al iniciar una sesion.

Contrato con la View:
- ctrl.start_sesion(puerto, baudrate, ruta_log)
- ctrl.stop_sesion()
- ctrl.load_csv(ruta) -> Metricas
- ctrl.get_snapshot() -> list[Muestra]
- ctrl.get_ultimo_estado() -> str
- ctrl.export_resumen(ruta) -> bool
- ctrl.reset()                     (volver a configuracion)
- ctrl.get_modo(), ctrl.get_metricas(), ctrl.get_error_msg()
- ctrl.get_tiempo_transcurrido()   ("HH:MM:SS")
- ctrl.listar_puertos()
"""

import time
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from apogeo_monitor.config.logging_cfg import get_logger
from apogeo_monitor.config.settings import SETTINGS
from apogeo_monitor.controller.adquisicion import EstadoAdquisicion, TrabajadorSerial
from apogeo_monitor.controller.errores import ErrorApogeo
from apogeo_monitor.controller.fuentes import abrir_puerto, cargar_csv, listar_puertos
from apogeo_monitor.model.almacenamiento import BanderaCompartida, CeldaTexto, SerieBuffer, escribir_resumen
from apogeo_monitor.model.ecuaciones import calcular_metricas
from apogeo_monitor.model.muestra import Metricas, Muestra
from apogeo_monitor.model.tiempo import formatear_transcurrido


log = get_logger(__name__)

TEXTO_ESPERANDO = "Esperando datos..."


class ModoApp(str, Enum):
    CONFIGURACION = "CONFIGURACION"
    MONITOREO_VIVO = "MONITOREO_VIVO"
    VISOR_CSV = "VISOR_CSV"


@dataclass
class SesionAdquisicion:
    puerto: str
    baudrate: int
    ruta_log: str
    t0: float
    trabajador: TrabajadorSerial


class ApogeoController:
    def __init__(
        self,
        capacidad_vivo: int = SETTINGS.capacidad_vivo,
        timeout_s: float = SETTINGS.timeout_s,
        fabrica_puerto=abrir_puerto,
    ):
        self.timeout_s = timeout_s
        self._fabrica_puerto = fabrica_puerto

        # Estado compartido con el hilo serial
        self.buffer = SerieBuffer(capacidad_vivo)
        self.texto_estado = CeldaTexto(TEXTO_ESPERANDO)
        self.corriendo = BanderaCompartida(True)
        # si el controller se descarta con una sesion abierta, el hilo se detiene solo
        self._al_descartar = weakref.finalize(self, self.corriendo.set, False)

        self._modo = ModoApp.CONFIGURACION
        self._sesion: Optional[SesionAdquisicion] = None
        self._t0 = time.monotonic()

        self._metricas = Metricas()
        self._ruta_csv = ""
        self._filas_descartadas = 0
        self._error_msg = ""

    # ----------------------------
    # Consultas
    # ----------------------------

    def get_modo(self) -> ModoApp:
        return self._modo

    def get_snapshot(self) -> List[Muestra]:
        return self.buffer.snapshot()

    def get_ultimo_estado(self) -> str:
        return self.texto_estado.get()

    def get_metricas(self) -> Metricas:
        return self._metricas

    def get_error_msg(self) -> str:
        return self._error_msg

    def get_ruta_csv(self) -> str:
        return self._ruta_csv

    def get_filas_descartadas(self) -> int:
        return self._filas_descartadas

    def get_sesion(self) -> Optional[SesionAdquisicion]:
        return self._sesion

    def get_estado_adquisicion(self) -> EstadoAdquisicion:
        if self._sesion is None:
            return EstadoAdquisicion.IDLE
        return self._sesion.trabajador.estado

    def get_tiempo_transcurrido(self) -> str:
        """Reloj de la sesion en vivo ("HH:MM:SS")."""
        return formatear_transcurrido(time.monotonic() - self._t0)

    def listar_puertos(self) -> List[str]:
        return listar_puertos()

    # ----------------------------
    # Monitoreo en vivo
    # ----------------------------

    def start_sesion(self, puerto: str, baudrate: int, ruta_log: str) -> None:
        """
        Inicia una sesion de adquisicion en un hilo dedicado.

        Errores:
        - ValueError si faltan campos o el baudrate no es soportado
        - RuntimeError si ya hay una sesion activa

        Fallos de puerto/archivo NO se levantan aqui: ocurren en el hilo y
        quedan en get_ultimo_estado().
        """
        if not puerto.strip() or not ruta_log.strip():
            self._error_msg = "Por favor, complete todos los campos"
            raise ValueError(self._error_msg)

        if int(baudrate) not in SETTINGS.baudrates_validos:
            self._error_msg = f"Baudrate no soportado: {baudrate}"
            raise ValueError(self._error_msg)

        # una sesion que fallo al conectar ya no tiene hilo vivo: se descarta
        if self._sesion is not None and not self._sesion.trabajador.esta_vivo():
            self.stop_sesion()

        if self._sesion is not None:
            raise RuntimeError("Ya hay una sesion activa. Detenla antes de iniciar otra.")

        self._t0 = time.monotonic()
        self.buffer.set_modo_vivo()
        self.texto_estado.set(TEXTO_ESPERANDO)
        self.corriendo.set(True)

        trabajador = TrabajadorSerial(
            puerto=puerto,
            baudrate=int(baudrate),
            ruta_log=ruta_log,
            buffer=self.buffer,
            texto_estado=self.texto_estado,
            corriendo=self.corriendo,
            t0=self._t0,
            timeout_s=self.timeout_s,
            fabrica_puerto=self._fabrica_puerto,
        )
        self._sesion = SesionAdquisicion(
            puerto=puerto,
            baudrate=int(baudrate),
            ruta_log=ruta_log,
            t0=self._t0,
            trabajador=trabajador,
        )

        self._modo = ModoApp.MONITOREO_VIVO
        self._error_msg = ""
        trabajador.iniciar()

    def stop_sesion(self) -> None:
        """
        Pide detener el hilo, lo espera y deja la bandera lista para otra sesion.
        Los datos del buffer se conservan (se limpian con reset()).
        """
        if self._sesion is None:
            return

        self.corriendo.set(False)
        trabajador = self._sesion.trabajador
        # el hilo revisa la bandera cada timeout_s; el margen cubre un tick lento
        if not trabajador.esperar(timeout=max(2.0, 20 * self.timeout_s)):
            log.warning("El hilo serial no termino a tiempo; se esperara sin limite")
            trabajador.esperar()

        self._sesion = None
        self.corriendo.set(True)

    # ----------------------------
    # Visor CSV
    # ----------------------------

    def load_csv(self, ruta: str, desde_byte: int = 0) -> Metricas:
        """
        Carga un CSV completo, reemplaza el buffer y calcula metricas.
        Con desde_byte > 0 solo se leen las filas agregadas despues de ese offset.

        Errores:
        - ArchivoNoDisponible / SinDatosValidos (tambien quedan en get_error_msg())
        - RuntimeError si hay una sesion en vivo activa
        """
        if self._sesion is not None and self._sesion.trabajador.esta_vivo():
            raise RuntimeError("Detén el monitoreo en vivo antes de cargar un CSV.")
        self.stop_sesion()

        try:
            resultado = cargar_csv(ruta, desde_byte=desde_byte)
        except ErrorApogeo as e:
            self._error_msg = f"Error: {e}"
            log.warning("No se pudo cargar %s: %s", ruta, e)
            raise

        self.buffer.reemplazar(resultado.muestras)
        self._metricas = calcular_metricas(resultado.muestras)
        self._ruta_csv = str(ruta)
        self._filas_descartadas = resultado.filas_descartadas
        self._modo = ModoApp.VISOR_CSV
        self._error_msg = ""

        log.info(
            "CSV cargado: %s (%d muestras, %d filas descartadas, impulso %.2f N·s)",
            ruta,
            self._metricas.n_muestras,
            resultado.filas_descartadas,
            self._metricas.impulso_total,
        )
        return self._metricas

    def recalcular_metricas(self) -> Metricas:
        """Recalcula las metricas desde el contenido actual del buffer."""
        self._metricas = calcular_metricas(self.buffer.snapshot())
        return self._metricas

    def export_resumen(self, ruta: str = SETTINGS.ruta_resumen) -> bool:
        """
        Escribe el resumen del analisis. Retorna False si no hay datos.
        """
        muestras = self.buffer.snapshot()
        if not muestras:
            return False

        metricas = calcular_metricas(muestras)
        try:
            escribir_resumen(ruta, metricas, archivo_analizado=self._ruta_csv)
        except OSError as e:
            self._error_msg = f"Error al exportar el resumen: {e}"
            log.warning(self._error_msg)
            return False

        log.info("Resumen exportado a %s", ruta)
        return True

    # ----------------------------
    # Volver a configuracion
    # ----------------------------

    def reset(self) -> None:
        self.stop_sesion()

        self.buffer.limpiar()
        self.texto_estado.set(TEXTO_ESPERANDO)
        self._metricas = Metricas()
        self._ruta_csv = ""
        self._filas_descartadas = 0
        self._error_msg = ""
        self._modo = ModoApp.CONFIGURACION
