"""
Vista Streamlit para Apogeo Monitor (MVC)

Esta vista NO implementa el modelo ni la logica del sistema.
Solo:
- configura la fuente (CSV o monitoreo en vivo por serial)
- llama al ApogeoController
- grafica la foto (snapshot) del buffer y muestra estadisticas

Contrato con Controller:
- ctrl.start_sesion(puerto, baudrate, ruta_log) / ctrl.stop_sesion()
- ctrl.load_csv(ruta) -> Metricas
- ctrl.get_snapshot() / ctrl.get_ultimo_estado()
- ctrl.export_resumen(ruta)
- ctrl.reset()
"""

import time
from pathlib import Path

import pandas as pd
import streamlit as st

from apogeo_monitor.config.settings import SETTINGS
from apogeo_monitor.controller.controller import ApogeoController, ModoApp
from apogeo_monitor.controller.errores import ErrorApogeo
from apogeo_monitor.controller.fuentes import NOMBRE_PUERTO_SIMULADO


REFRESCO_S = 0.2


# ============================================================
# Helpers de datos y graficos
# ============================================================

def _snapshot_a_df(muestras, por_tiempo: bool) -> pd.DataFrame:
    if not muestras:
        return pd.DataFrame()

    df = pd.DataFrame({
        "Tiempo (s)": [m.tiempo_s for m in muestras],
        "Empuje (N)": [m.empuje for m in muestras],
        "Temperatura Ambiente (°C)": [m.temp_ambiente for m in muestras],
        "Temperatura Tobera (°C)": [m.temp_tobera for m in muestras],
    })

    # En vivo el eje X es el numero de muestra (ventana deslizante)
    if por_tiempo:
        return df.set_index("Tiempo (s)")
    df.index.name = "Muestras"
    return df.drop(columns=["Tiempo (s)"])


def _graficos(df: pd.DataFrame):
    col_empuje, col_temp = st.columns(2)

    with col_empuje:
        st.markdown("**Empuje**")
        st.line_chart(df[["Empuje (N)"]], height=420)

    with col_temp:
        st.markdown("**Temperatura Ambiente**")
        st.line_chart(df[["Temperatura Ambiente (°C)"]], height=190)
        st.markdown("**Temperatura Tobera**")
        st.line_chart(df[["Temperatura Tobera (°C)"]], height=190)


# ============================================================
# Helpers de session_state
# ============================================================

def _get_ctrl() -> ApogeoController:
    if "ctrl" not in st.session_state:
        st.session_state["ctrl"] = ApogeoController()
    return st.session_state["ctrl"]


def _puertos_disponibles(ctrl: ApogeoController, refrescar: bool = False):
    if refrescar or "puertos" not in st.session_state:
        st.session_state["puertos"] = ctrl.listar_puertos()
    return list(st.session_state["puertos"]) + [NOMBRE_PUERTO_SIMULADO]


# ============================================================
# Pantalla: configuracion
# ============================================================

def _pantalla_configuracion(ctrl: ApogeoController):
    st.title("Dashboard de Análisis")

    if ctrl.get_error_msg():
        st.error(ctrl.get_error_msg())

    tab_csv, tab_vivo = st.tabs(["📊 Cargar archivo CSV", "📡 Monitoreo en vivo"])

    with tab_csv:
        st.subheader("Cargar datos desde CSV")
        ruta = st.text_input("Archivo", value=SETTINGS.ruta_csv, key="ruta_csv")
        subido = st.file_uploader("O subir un CSV", type=["csv", "txt"])

        if st.button("Cargar"):
            if subido is not None:
                tmp_dir = Path("_tmp")
                tmp_dir.mkdir(exist_ok=True)
                ruta = str(tmp_dir / subido.name)
                with open(ruta, "wb") as f:
                    f.write(subido.getbuffer())

            try:
                ctrl.load_csv(ruta)
            except (ErrorApogeo, RuntimeError):
                pass  # el mensaje queda en ctrl.get_error_msg()
            st.rerun()

    with tab_vivo:
        st.subheader("Configuración Serial")

        col_puerto, col_refrescar = st.columns([4, 1])
        with col_refrescar:
            refrescar = st.button("🔄")
        with col_puerto:
            puertos = _puertos_disponibles(ctrl, refrescar)
            indice = puertos.index(SETTINGS.puerto_serial) if SETTINGS.puerto_serial in puertos else 0
            puerto = st.selectbox("Puerto", puertos, index=indice)

        baudrate = st.selectbox(
            "Velocidad",
            list(SETTINGS.baudrates_validos),
            index=list(SETTINGS.baudrates_validos).index(SETTINGS.baudrate),
        )
        ruta_log = st.text_input("Archivo", value=SETTINGS.ruta_log, key="ruta_log")

        if st.button("Iniciar"):
            try:
                ctrl.start_sesion(puerto or "", int(baudrate), ruta_log)
            except (ValueError, RuntimeError):
                pass
            st.rerun()


# ============================================================
# Pantalla: monitoreo (vivo y CSV)
# ============================================================

def _estadisticas_csv(ctrl: ApogeoController, n_muestras: int):
    m = ctrl.get_metricas()

    st.subheader("Estadísticas del Análisis")
    c1, c2 = st.columns(2)
    with c1:
        st.write(f"📊 Empuje máximo: {m.empuje_maximo:.2f} N")
        st.write(f"📈 Empuje promedio: {m.empuje_promedio:.2f} N")
        st.write(f"⏱️ Duración: {m.duracion_s:.2f} s")
    with c2:
        st.write(f"🚀 Impulso total: {m.impulso_total:.2f} N⋅s")
        st.write(f"⚡ Impulso específico: {m.impulso_especifico:.2f} s")
        st.write(f"📋 Muestras totales: {n_muestras}")

    if ctrl.get_filas_descartadas():
        st.caption(f"Filas descartadas por formato inválido: {ctrl.get_filas_descartadas()}")


def _estado_sistema(ctrl: ApogeoController, muestras):
    sesion = ctrl.get_sesion()

    st.subheader("Estado del Sistema")
    c1, c2 = st.columns(2)
    with c1:
        if sesion is not None:
            st.write(f"🔗 Puerto: {sesion.puerto}")
            st.write(f"⚡ Baud Rate: {sesion.baudrate}")
            st.write(f"📁 Archivo: {sesion.ruta_log}")
        st.write(f"Adquisición: {ctrl.get_estado_adquisicion().value}")
    with c2:
        if muestras:
            ultima = muestras[-1]
            st.write(f"📊 Muestras actuales: {len(muestras)}")
            st.write(f"🚀 Último empuje: {ultima.empuje:.2f} N")
            st.write(f"🌡️ Temp. ambiente: {ultima.temp_ambiente:.1f}°C")
            st.write(f"🔥 Temp. tobera: {ultima.temp_tobera:.1f}°C")
        else:
            st.write("⏳ Esperando datos...")
            st.write("🔌 Verificar conexión serial")


def _pantalla_monitoreo(ctrl: ApogeoController):
    es_csv = ctrl.get_modo() == ModoApp.VISOR_CSV

    col_titulo, col_reloj = st.columns([3, 1])
    with col_titulo:
        st.header("Análisis de datos CSV" if es_csv else "Datos en tiempo real")
    if not es_csv:
        with col_reloj:
            st.metric("⏱️ TIEMPO TRANSCURRIDO", ctrl.get_tiempo_transcurrido())

    if es_csv:
        m = ctrl.get_metricas()
        st.write(f"Archivo: {ctrl.get_ruta_csv()} | Impulso total: {m.impulso_total:.2f} N⋅s")
    else:
        st.write(f"Últimos datos: {ctrl.get_ultimo_estado()}")

    c_det, c_vol, c_exp = st.columns(3)
    if not es_csv and c_det.button("Detener"):
        ctrl.stop_sesion()
    if c_vol.button("Volver a configuración"):
        ctrl.reset()
        st.rerun()
    if es_csv and c_exp.button("Exportar resumen"):
        if ctrl.export_resumen(SETTINGS.ruta_resumen):
            st.success(f"Resumen exportado a {SETTINGS.ruta_resumen}")
        else:
            st.error(ctrl.get_error_msg() or "No hay datos para exportar")

    st.divider()

    muestras = ctrl.get_snapshot()
    df = _snapshot_a_df(muestras, por_tiempo=es_csv)
    if len(df) > 0:
        _graficos(df)

    st.divider()

    if es_csv and muestras:
        _estadisticas_csv(ctrl, len(muestras))
    else:
        _estado_sistema(ctrl, muestras)

    # Auto-refresh mientras el hilo serial esta vivo
    sesion = ctrl.get_sesion()
    if sesion is not None and sesion.trabajador.esta_vivo():
        time.sleep(REFRESCO_S)
        st.rerun()


# ============================================================
# UI principal
# ============================================================

def iniciar():
    st.set_page_config(page_title="Apogeo", layout="wide")

    ctrl = _get_ctrl()

    if ctrl.get_modo() == ModoApp.CONFIGURACION:
        _pantalla_configuracion(ctrl)
    else:
        _pantalla_monitoreo(ctrl)


if __name__ == "__main__":
    iniciar()
