"""
Configuracion central del proyecto Apogeo Monitor.

Idea:
- Aqui van los parametros fijos del sistema (serial, buffer, archivos, constantes fisicas).
- El Controller y el trabajador serial usan estos valores como defaults.
- La View puede leer estos valores para armar los selectores (baudrates, rutas).
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    # -------------------------------
    # Puertos / comunicacion (placa de sensores)
    # -------------------------------
    puerto_serial: str = "COM9"     # puerto por defecto (Windows)
    baudrate: int = 115200          # velocidad serial (debe coincidir con el firmware)
    baudrates_validos: tuple = (9600, 19200, 38400, 57600, 115200, 230400)
    timeout_s: float = 0.1          # timeout de lectura: define la latencia de "Detener"
    bytes_por_lectura: int = 64     # bytes maximos pedidos al puerto por iteracion

    # -------------------------------
    # Buffer de la serie temporal
    # -------------------------------
    capacidad_vivo: int = 100       # muestras visibles en monitoreo en vivo

    # -------------------------------
    # Archivos
    # -------------------------------
    ruta_log: str = "datos.csv"                 # log de la sesion en vivo (append)
    ruta_csv: str = "datos.csv"                 # CSV por defecto para el visor
    ruta_resumen: str = "resumen_analisis.txt"  # reporte exportado (se sobrescribe)

    encabezado_log: str = "Tiempo,Empuje,Temperatura Ambiente,Temperatura Tobera"
    marcadores_encabezado: tuple = ("tiempo", "empuje", "time", "thrust")

    # -------------------------------
    # Constantes fisicas
    # -------------------------------
    gravedad: float = 9.81          # g0 para impulso especifico (m/s^2)

    # -------------------------------
    # Logging
    # -------------------------------
    log_dir: str = "logs"
    log_archivo: str = "apogeo.log"
    log_nivel_consola: str = "INFO"
    log_max_bytes: int = 2 * 1024 * 1024
    log_backups: int = 3


# Instancia global utilizada por el resto del proyecto
SETTINGS = Settings()
