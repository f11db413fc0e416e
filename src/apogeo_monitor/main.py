"""
Arranque de la vista Streamlit.

    python -m streamlit run src/apogeo_monitor/main.py
    apogeo-monitor            (con el paquete instalado)
"""

import os
import sys


def _agregar_src() -> None:
    # streamlit run ejecuta este archivo como script suelto
    src_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    if src_dir not in sys.path:
        sys.path.insert(0, src_dir)


def main() -> None:
    _agregar_src()
    from apogeo_monitor.view.vista_streamlit import iniciar

    iniciar()


def lanzar() -> None:
    """Script de consola: relanza este archivo bajo "streamlit run"."""
    from streamlit.web import cli as stcli

    sys.argv = ["streamlit", "run", os.path.abspath(__file__)]
    sys.exit(stcli.main())


if __name__ == "__main__":
    main()
