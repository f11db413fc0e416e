"""Puerto de prueba que entrega chunks predefinidos y luego solo timeouts."""

import threading
import time

from apogeo_monitor.controller.fuentes import Puerto


class PuertoFalso(Puerto):
    def __init__(self, chunks=(), timeout_s=0.01, errores=0):
        self._chunks = list(chunks)
        self._lock = threading.Lock()
        self.timeout_s = timeout_s
        self.errores_pendientes = errores
        self.cerrado = False
        self.lecturas = 0

    def leer(self, n):
        with self._lock:
            self.lecturas += 1
            if self.errores_pendientes:
                self.errores_pendientes -= 1
                raise OSError("lectura fallida")
            if self._chunks:
                return self._chunks.pop(0)
        time.sleep(self.timeout_s)
        return b""

    def cerrar(self):
        self.cerrado = True


def fabrica(puerto):
    """Fabrica compatible con abrir_puerto(nombre, baudrate, timeout_s)."""
    def _abrir(nombre, baudrate, timeout_s):
        return puerto
    return _abrir


def esperar_hasta(condicion, timeout=3.0):
    limite = time.monotonic() + timeout
    while time.monotonic() < limite:
        if condicion():
            return True
        time.sleep(0.005)
    return condicion()
