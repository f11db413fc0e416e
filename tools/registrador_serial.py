"""
registrador_serial.py
=====================

OBJETIVO
--------
Capturar un encendido desde la terminal, sin abrir la vista Streamlit.
Usa el mismo ApogeoController que la vista, asi que el log generado tiene el
mismo formato y se puede abrir despues en el visor CSV.

FLUJO DE USO
------------
1) Conectar la placa de sensores (o usar --puerto SIMULADO).
2) En terminal, desde la raiz del repo:
      python tools/registrador_serial.py --puerto COM9 --segundos 30
   (sin --puerto se listan los puertos disponibles)
3) El script:
   - Inicia la sesion y muestra el ultimo dato cada segundo
   - Se detiene al cumplir la duracion (o con Ctrl+C)
   - Recarga del log solo las filas de esta captura y muestra/exporta el resumen
"""

import argparse
import os
import sys
import time
from pathlib import Path

# Permite ejecutar sin instalar el paquete
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from apogeo_monitor.config.settings import SETTINGS  # noqa: E402
from apogeo_monitor.controller.controller import ApogeoController  # noqa: E402
from apogeo_monitor.controller.errores import ErrorApogeo  # noqa: E402
from apogeo_monitor.controller.fuentes import listar_puertos  # noqa: E402
from apogeo_monitor.model.muestra import Metricas  # noqa: E402


def _argumentos(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Captura de banco de pruebas por serial")
    parser.add_argument("--puerto", default="", help="puerto serial (o SIMULADO)")
    parser.add_argument("--baud", type=int, default=SETTINGS.baudrate, choices=SETTINGS.baudrates_validos)
    parser.add_argument("--log", default=SETTINGS.ruta_log, help="CSV de salida (append)")
    parser.add_argument("--segundos", type=float, default=30.0, help="duracion de la captura")
    parser.add_argument("--resumen", default="", help="exportar resumen a este archivo")
    return parser.parse_args(argv)


def capturar(ctrl: ApogeoController, puerto: str, baud: int, ruta_log: str, segundos: float, intervalo_s: float = 1.0) -> Metricas:
    """
    Corre una sesion por `segundos` y devuelve las metricas de ESA sesion.

    El log es append: se anota su tamaño antes de empezar y despues solo se
    analizan las filas que agrego esta corrida.
    """
    inicio_log = os.path.getsize(ruta_log) if os.path.exists(ruta_log) else 0

    ctrl.start_sesion(puerto, baud, ruta_log)
    t_fin = time.monotonic() + segundos
    try:
        while True:
            restante = t_fin - time.monotonic()
            if restante <= 0:
                break
            time.sleep(min(intervalo_s, restante))
            print(f"[{ctrl.get_tiempo_transcurrido()}] {ctrl.get_ultimo_estado()}")
            if not ctrl.get_sesion().trabajador.esta_vivo():
                break  # fallo al conectar; el mensaje ya se imprimio
    except KeyboardInterrupt:
        print("\nCaptura interrumpida por el usuario.")
    finally:
        ctrl.stop_sesion()

    return ctrl.load_csv(ruta_log, desde_byte=inicio_log)


def main(argv=None) -> int:
    args = _argumentos(argv)

    if not args.puerto:
        puertos = listar_puertos()
        print("Puertos disponibles:")
        for p in puertos or ["(ninguno)"]:
            print(f"  {p}")
        print("Usa --puerto <nombre> para iniciar la captura.")
        return 1

    ctrl = ApogeoController()
    print(f"Capturando {args.segundos:.0f} s desde {args.puerto} @ {args.baud} -> {args.log}")
    try:
        m = capturar(ctrl, args.puerto, args.baud, args.log, args.segundos)
    except ErrorApogeo as e:
        print(f"No se pudo analizar la captura: {e}")
        return 1

    print("\n--------------------------------------------")
    print(f"Muestras: {m.n_muestras} | Duración: {m.duracion_s:.2f} s")
    print(f"Empuje máximo: {m.empuje_maximo:.2f} N | promedio: {m.empuje_promedio:.2f} N")
    print(f"Impulso total: {m.impulso_total:.2f} N⋅s | específico: {m.impulso_especifico:.2f} s")
    print("--------------------------------------------")

    if args.resumen and ctrl.export_resumen(args.resumen):
        print(f"Resumen exportado: {args.resumen}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
