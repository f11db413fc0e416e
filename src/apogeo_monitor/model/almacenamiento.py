"""
Almacenamiento de datos

Este modulo guarda los datos adquiridos por el sistema:

- SerieBuffer: serie temporal compartida entre el hilo serial y la vista
- CeldaTexto / BanderaCompartida: estado compartido simple (texto de estado, bandera running)
- RegistroCSV: log en disco de la sesion en vivo (append)
- escribir_resumen: reporte de texto con las metricas del analisis

Regla de concurrencia:
- Cada objeto compartido tiene su propio Lock.
- El Lock se toma solo para leer/modificar memoria, nunca durante I/O de puerto o archivo.
"""

import threading
from collections import deque
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from apogeo_monitor.config.settings import SETTINGS
from apogeo_monitor.model.muestra import Metricas, Muestra


class ModoBuffer(str, Enum):
    VIVO = "VIVO"   # acotado, descarta la muestra mas antigua
    LOTE = "LOTE"   # sin limite, se reemplaza completo al cargar un CSV


# ============================================================
# 1) SERIE TEMPORAL
# ============================================================

class SerieBuffer:
    """
    Secuencia ordenada de Muestra protegida por un Lock.

    - En modo VIVO tiene capacidad fija: al superar la capacidad se elimina la
      muestra mas antigua (FIFO estricto).
    - En modo LOTE no tiene limite y se reemplaza completa con reemplazar().

    El orden de insercion se conserva tal cual (no se reordena por tiempo).
    """

    def __init__(self, capacidad: int = SETTINGS.capacidad_vivo):
        if capacidad < 1:
            raise ValueError("La capacidad del buffer debe ser >= 1")

        self._lock = threading.Lock()
        self._capacidad = int(capacidad)
        self._modo = ModoBuffer.VIVO
        self._datos = deque(maxlen=self._capacidad)

    # ----------------------------
    # Propiedades
    # ----------------------------

    @property
    def capacidad(self) -> Optional[int]:
        """Capacidad actual (None en modo LOTE)."""
        with self._lock:
            return self._datos.maxlen

    @property
    def modo(self) -> ModoBuffer:
        with self._lock:
            return self._modo

    # ----------------------------
    # Escritura
    # ----------------------------

    def agregar(self, muestra: Muestra) -> None:
        """Agrega al final; en modo VIVO descarta la mas antigua si esta lleno."""
        with self._lock:
            self._datos.append(muestra)

    def reemplazar(self, muestras: Iterable[Muestra]) -> None:
        """Reemplaza todo el contenido y pasa a modo LOTE (sin limite)."""
        nuevos = deque(muestras)
        with self._lock:
            self._datos = nuevos
            self._modo = ModoBuffer.LOTE

    def set_modo_vivo(self, capacidad: Optional[int] = None) -> None:
        """Vacia el buffer y lo deja acotado para una sesion en vivo."""
        if capacidad is not None and capacidad < 1:
            raise ValueError("La capacidad del buffer debe ser >= 1")

        with self._lock:
            if capacidad is not None:
                self._capacidad = int(capacidad)
            self._datos = deque(maxlen=self._capacidad)
            self._modo = ModoBuffer.VIVO

    def limpiar(self) -> None:
        with self._lock:
            self._datos.clear()

    # ----------------------------
    # Lectura
    # ----------------------------

    def snapshot(self) -> List[Muestra]:
        """Copia consistente del contenido actual."""
        with self._lock:
            return list(self._datos)

    def ultima(self) -> Optional[Muestra]:
        with self._lock:
            return self._datos[-1] if self._datos else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._datos)


# ============================================================
# 2) ESTADO COMPARTIDO SIMPLE
# ============================================================

class CeldaTexto:
    """Texto mutable compartido entre hilos (ultimo estado / ultimo error)."""

    def __init__(self, valor: str = ""):
        self._lock = threading.Lock()
        self._valor = valor

    def set(self, valor: str) -> None:
        with self._lock:
            self._valor = valor

    def get(self) -> str:
        with self._lock:
            return self._valor


class BanderaCompartida:
    """
    Bandera booleana compartida. Para la sesion serial:
    True = corriendo, False = se pidio detener.
    """

    def __init__(self, valor: bool = True):
        self._lock = threading.Lock()
        self._valor = bool(valor)

    def set(self, valor: bool) -> None:
        with self._lock:
            self._valor = bool(valor)

    def get(self) -> bool:
        with self._lock:
            return self._valor

    def __bool__(self) -> bool:
        return self.get()


# ============================================================
# 3) LOG CSV DE LA SESION EN VIVO
# ============================================================

class RegistroCSV:
    """
    Log append-only de la sesion en vivo.

    Formato:
      Tiempo,Empuje,Temperatura Ambiente,Temperatura Tobera
      HH:MM:SS:mmm,<empuje>,<ambiente>,<tobera>

    El encabezado se escribe solo si el archivo esta vacio (o es nuevo).
    """

    def __init__(self, ruta: str, encabezado: str = SETTINGS.encabezado_log):
        self.ruta = Path(ruta)
        self.encabezado = encabezado
        self._archivo: Optional[TextIO] = None

    def abrir(self) -> None:
        """Abre (o crea) el archivo en modo append. Propaga OSError."""
        self._archivo = self.ruta.open(mode="a", encoding="utf-8", newline="")

        try:
            if self.ruta.stat().st_size == 0:
                self._archivo.write(self.encabezado + "\n")
                self._archivo.flush()
        except OSError:
            self.cerrar()
            raise

    def escribir(self, marca_tiempo: str, muestra: Muestra) -> None:
        if self._archivo is None:
            raise RuntimeError("Registro no abierto. Llama primero a abrir().")

        self._archivo.write(
            f"{marca_tiempo},{muestra.empuje},{muestra.temp_ambiente},{muestra.temp_tobera}\n"
        )
        self._archivo.flush()

    def cerrar(self) -> None:
        if self._archivo is not None and not self._archivo.closed:
            self._archivo.close()
        self._archivo = None


# ============================================================
# 4) RESUMEN DEL ANALISIS
# ============================================================

def escribir_resumen(ruta: str, metricas: Metricas, archivo_analizado: str = "") -> Path:
    """
    Escribe (sobrescribe) el reporte de texto del analisis y retorna la ruta.
    """
    lineas = [
        "=== RESUMEN DEL ANÁLISIS ===",
        f"Archivo analizado: {archivo_analizado}",
        "",
        "ESTADÍSTICAS DE EMPUJE:",
        f"Empuje máximo: {metricas.empuje_maximo:.2f} N",
        f"Empuje promedio: {metricas.empuje_promedio:.2f} N",
        "",
        "IMPULSO:",
        f"Impulso total: {metricas.impulso_total:.2f} N⋅s",
        f"Impulso específico: {metricas.impulso_especifico:.2f} s",
        "",
        "DURACIÓN:",
        f"Duración total: {metricas.duracion_s:.2f} s",
        f"Muestras totales: {metricas.n_muestras}",
    ]

    path = Path(ruta)
    path.write_text("\n".join(lineas) + "\n", encoding="utf-8")
    return path
