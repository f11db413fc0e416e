import gc
import os
import tempfile
import time
import unittest

from puerto_falso import PuertoFalso, esperar_hasta, fabrica

from apogeo_monitor.controller.adquisicion import EstadoAdquisicion
from apogeo_monitor.controller.controller import ApogeoController, ModoApp
from apogeo_monitor.controller.errores import ArchivoNoDisponible, PuertoNoDisponible, SinDatosValidos
from apogeo_monitor.model.almacenamiento import ModoBuffer


FILAS_EJEMPLO = ["00:00:00:000,10.0,20.0,30.0", "00:00:01:000,20.0,21.0,31.0"]


class TestControllerCSV(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.ctrl = ApogeoController()

    def _csv(self, lineas, nombre="datos.csv"):
        ruta = os.path.join(self.tmp.name, nombre)
        with open(ruta, "w", encoding="utf-8") as f:
            f.write("\n".join(lineas) + "\n")
        return ruta

    def test_carga_y_metricas(self):
        m = self.ctrl.load_csv(self._csv(FILAS_EJEMPLO))

        self.assertEqual(len(self.ctrl.get_snapshot()), 2)
        self.assertAlmostEqual(m.impulso_total, 15.0)
        self.assertAlmostEqual(m.empuje_maximo, 20.0)
        self.assertAlmostEqual(m.empuje_promedio, 15.0)
        self.assertAlmostEqual(m.duracion_s, 1.0)
        self.assertEqual(self.ctrl.get_modo(), ModoApp.VISOR_CSV)
        self.assertEqual(self.ctrl.buffer.modo, ModoBuffer.LOTE)

    def test_csv_grande_no_se_recorta(self):
        filas = [f"{i / 10:.1f},1.0,20.0,30.0" for i in range(500)]
        m = self.ctrl.load_csv(self._csv(filas))
        self.assertEqual(m.n_muestras, 500)

    def test_solo_encabezado(self):
        ruta = self._csv(["Tiempo,Empuje,Temperatura Ambiente,Temperatura Tobera"])
        with self.assertRaises(SinDatosValidos):
            self.ctrl.load_csv(ruta)
        self.assertIn("No se encontraron datos", self.ctrl.get_error_msg())
        self.assertEqual(self.ctrl.get_modo(), ModoApp.CONFIGURACION)

    def test_archivo_inexistente(self):
        with self.assertRaises(ArchivoNoDisponible):
            self.ctrl.load_csv(os.path.join(self.tmp.name, "nada.csv"))
        self.assertTrue(self.ctrl.get_error_msg().startswith("Error:"))

    def test_carga_fallida_conserva_datos_previos(self):
        self.ctrl.load_csv(self._csv(FILAS_EJEMPLO))
        with self.assertRaises(SinDatosValidos):
            self.ctrl.load_csv(self._csv(["basura"], nombre="malo.csv"))
        self.assertEqual(len(self.ctrl.get_snapshot()), 2)

    def test_exportar_resumen(self):
        ruta_csv = self._csv(FILAS_EJEMPLO)
        self.ctrl.load_csv(ruta_csv)

        ruta = os.path.join(self.tmp.name, "resumen.txt")
        self.assertTrue(self.ctrl.export_resumen(ruta))
        with open(ruta, encoding="utf-8") as f:
            texto = f.read()
        self.assertIn(f"Archivo analizado: {ruta_csv}", texto)
        self.assertIn("Impulso total: 15.00 N⋅s", texto)

    def test_exportar_sin_datos(self):
        ruta = os.path.join(self.tmp.name, "resumen.txt")
        self.assertFalse(self.ctrl.export_resumen(ruta))
        self.assertFalse(os.path.exists(ruta))

    def test_reset_vuelve_a_configuracion(self):
        self.ctrl.load_csv(self._csv(FILAS_EJEMPLO))
        self.ctrl.reset()

        self.assertEqual(self.ctrl.get_modo(), ModoApp.CONFIGURACION)
        self.assertEqual(self.ctrl.get_snapshot(), [])
        self.assertEqual(self.ctrl.get_metricas().impulso_total, 0.0)


class TestControllerVivo(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.ruta_log = os.path.join(self.tmp.name, "vivo.csv")

    def _ctrl(self, puerto, capacidad=100):
        ctrl = ApogeoController(capacidad_vivo=capacidad, timeout_s=0.01, fabrica_puerto=fabrica(puerto))
        self.addCleanup(ctrl.stop_sesion)
        return ctrl

    def test_iniciar_y_detener(self):
        ctrl = self._ctrl(PuertoFalso([b"5.5,21.0,33.0\n", b"5.5,21.0\n"]))
        ctrl.start_sesion("COM9", 115200, self.ruta_log)

        self.assertEqual(ctrl.get_modo(), ModoApp.MONITOREO_VIVO)
        self.assertTrue(esperar_hasta(lambda: len(ctrl.get_snapshot()) == 1))
        self.assertEqual(ctrl.get_ultimo_estado(), "5.5 | 21.0 | 33.0")

        trabajador = ctrl.get_sesion().trabajador
        inicio = time.monotonic()
        ctrl.stop_sesion()

        self.assertLess(time.monotonic() - inicio, 1.0)
        self.assertFalse(trabajador.esta_vivo())
        self.assertTrue(ctrl.corriendo.get())
        self.assertIsNone(ctrl.get_sesion())
        self.assertEqual(len(ctrl.get_snapshot()), 1)

    def test_iniciar_y_detener_inmediatamente(self):
        ctrl = self._ctrl(PuertoFalso())
        ctrl.start_sesion("COM9", 9600, self.ruta_log)
        trabajador = ctrl.get_sesion().trabajador
        ctrl.stop_sesion()

        self.assertFalse(trabajador.esta_vivo())
        self.assertTrue(ctrl.corriendo.get())

        # la bandera queda lista para otra sesion
        ctrl.start_sesion("COM9", 9600, self.ruta_log)
        self.assertTrue(ctrl.get_sesion().trabajador.esta_vivo())

    def test_capacidad_en_vivo(self):
        chunks = [f"{i}.0,1.0,2.0\n".encode() for i in range(8)]
        ctrl = self._ctrl(PuertoFalso(chunks), capacidad=5)
        ctrl.start_sesion("COM9", 115200, self.ruta_log)

        self.assertTrue(esperar_hasta(lambda: ctrl.get_sesion().trabajador.muestras_validas == 8))
        self.assertEqual([m.empuje for m in ctrl.get_snapshot()], [3.0, 4.0, 5.0, 6.0, 7.0])

    def test_campos_vacios(self):
        ctrl = self._ctrl(PuertoFalso())
        with self.assertRaises(ValueError):
            ctrl.start_sesion("", 115200, self.ruta_log)
        self.assertEqual(ctrl.get_error_msg(), "Por favor, complete todos los campos")
        self.assertIsNone(ctrl.get_sesion())

    def test_baudrate_no_soportado(self):
        ctrl = self._ctrl(PuertoFalso())
        with self.assertRaises(ValueError):
            ctrl.start_sesion("COM9", 12345, self.ruta_log)

    def test_segunda_sesion_activa(self):
        ctrl = self._ctrl(PuertoFalso())
        ctrl.start_sesion("COM9", 115200, self.ruta_log)
        with self.assertRaises(RuntimeError):
            ctrl.start_sesion("COM9", 115200, self.ruta_log)

    def test_fallo_de_puerto_queda_en_el_estado(self):
        def _falla(nombre, baudrate, timeout_s):
            raise PuertoNoDisponible(f"Error al abrir el puerto {nombre}: no existe")

        ctrl = ApogeoController(timeout_s=0.01, fabrica_puerto=_falla)
        self.addCleanup(ctrl.stop_sesion)
        ctrl.start_sesion("COM42", 115200, self.ruta_log)

        self.assertTrue(esperar_hasta(lambda: "COM42" in ctrl.get_ultimo_estado()))
        self.assertTrue(esperar_hasta(lambda: ctrl.get_estado_adquisicion() == EstadoAdquisicion.IDLE))

        # se puede reintentar sin detener a mano
        ctrl.start_sesion("COM42", 115200, self.ruta_log)

    def test_cargar_csv_con_sesion_activa(self):
        ctrl = self._ctrl(PuertoFalso())
        ctrl.start_sesion("COM9", 115200, self.ruta_log)
        with self.assertRaises(RuntimeError):
            ctrl.load_csv(self.ruta_log)

    def test_log_en_vivo_se_puede_abrir_en_el_visor(self):
        chunks = [b"10.0,20.0,30.0\n", b"20.0,21.0,31.0\n"]
        ctrl = self._ctrl(PuertoFalso(chunks))
        ctrl.start_sesion("COM9", 115200, self.ruta_log)
        self.assertTrue(esperar_hasta(lambda: len(ctrl.get_snapshot()) == 2))
        vivo = ctrl.get_snapshot()
        ctrl.stop_sesion()

        m = ctrl.load_csv(self.ruta_log)
        self.assertEqual(m.n_muestras, 2)
        self.assertEqual([x.empuje for x in ctrl.get_snapshot()], [10.0, 20.0])
        # el log guarda milisegundos truncados
        for en_vivo, desde_log in zip(vivo, ctrl.get_snapshot()):
            self.assertLessEqual(abs(en_vivo.tiempo_s - desde_log.tiempo_s), 0.001)

    def test_dos_sesiones_en_el_mismo_log(self):
        primera = self._ctrl(PuertoFalso([b"10.0,20.0,30.0\n", b"20.0,21.0,31.0\n"]))
        primera.start_sesion("COM9", 115200, self.ruta_log)
        self.assertTrue(esperar_hasta(lambda: len(primera.get_snapshot()) == 2))
        primera.stop_sesion()

        inicio = os.path.getsize(self.ruta_log)
        segunda = self._ctrl(PuertoFalso([b"1.0,20.0,30.0\n", b"2.0,20.0,30.0\n", b"3.0,20.0,30.0\n"]))
        segunda.start_sesion("COM9", 115200, self.ruta_log)
        self.assertTrue(esperar_hasta(lambda: len(segunda.get_snapshot()) == 3))
        segunda.stop_sesion()

        m = segunda.load_csv(self.ruta_log, desde_byte=inicio)
        self.assertEqual(m.n_muestras, 3)
        self.assertGreaterEqual(m.duracion_s, 0.0)
        self.assertGreaterEqual(m.impulso_total, 0.0)
        self.assertEqual([x.empuje for x in segunda.get_snapshot()], [1.0, 2.0, 3.0])

    def test_controller_descartado_detiene_el_hilo(self):
        ctrl = ApogeoController(timeout_s=0.01, fabrica_puerto=fabrica(PuertoFalso()))
        ctrl.start_sesion("COM9", 115200, self.ruta_log)
        trabajador = ctrl.get_sesion().trabajador
        self.assertTrue(esperar_hasta(lambda: trabajador.estado == EstadoAdquisicion.STREAMING))

        del ctrl
        gc.collect()

        self.assertTrue(trabajador.esperar(timeout=1.0))
        self.assertEqual(trabajador.estado, EstadoAdquisicion.IDLE)


if __name__ == "__main__":
    unittest.main()
