import os
import time
import logging
from typing import Optional

import requests
from dotenv import load_dotenv
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

# --- Configuración ---
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
load_dotenv(os.path.join(BASE_DIR, ".env"))

HOTFOLDER_PATH = os.getenv("HOTFOLDER_PATH", os.path.join(BASE_DIR, "hotfolder"))
PROCESADOS_PATH = os.getenv("PROCESADOS_PATH", os.path.join(BASE_DIR, "procesados"))
ERROR_PATH = os.getenv("ERROR_PATH", os.path.join(BASE_DIR, "error"))
CORE_BACKEND_URL = os.getenv("CORE_BACKEND_URL", "http://127.0.0.1:8000/ingest")

logger = logging.getLogger(__name__)
# ---------------------

CONTENT_TYPES = {
    "medals_total": "text/csv",
    "medals": "text/csv",
    "geojson": "application/geo+json",
}


def payload_kind(filename: str) -> Optional[str]:
    """
    Decide el tipo de payload por el nombre del fichero:
    medals_total*.csv -> medallero, medals*.csv -> medallistas, *.geojson / *.json -> fronteras.
    """
    name = os.path.basename(filename).lower()
    if name.endswith((".geojson", ".json")):
        return "geojson"
    if not name.endswith(".csv"):
        return None
    if name.startswith("medals_total"):
        return "medals_total"
    if name.startswith("medals"):
        return "medals"
    return None


def safe_move(source_filepath: str, dest_folder: str) -> Optional[str]:
    """
    Mueve un fichero de forma segura.
    Si el destino ya existe, renombra el fichero fuente
    añadiendo un timestamp para evitar colisiones.
    """
    filename = os.path.basename(source_filepath)
    dest_filepath = os.path.join(dest_folder, filename)

    if os.path.exists(dest_filepath):
        filename_without_ext, ext = os.path.splitext(filename)
        timestamp = time.strftime("%Y%m%d_%H%M%S")
        new_filename = f"{filename_without_ext}_{timestamp}{ext}"
        dest_filepath = os.path.join(dest_folder, new_filename)
        logger.warning(f"El destino '{filename}' ya existe. Renombrando a '{new_filename}'.")

    try:
        os.rename(source_filepath, dest_filepath)
        logger.info(f"Fichero movido con éxito a: {dest_filepath}")
        return dest_filepath
    except OSError as e:
        logger.error(f"¡FALLO CRÍTICO AL MOVER! No se pudo mover '{source_filepath}' a '{dest_filepath}': {e}")
        return None


def process_file(filepath: str, settle_seconds: float = 0.5) -> Optional[bool]:
    """
    Envía un fichero al Core Backend y lo mueve a 'procesados' o 'error'.
    Devuelve True/False según el resultado, o None si el fichero se deja
    en el hotfolder (no existe, tipo desconocido o backend caído).
    """
    # Damos un pequeño margen a que termine la copia
    time.sleep(settle_seconds)

    filename = os.path.basename(filepath)

    if not os.path.exists(filepath):
        logger.warning(f"Se intentó procesar '{filename}' pero ya no existe.")
        return None

    kind = payload_kind(filename)
    if kind is None:
        logger.info(f"Ignorando '{filename}': no es un payload de medallas ni GeoJSON.")
        return None

    logger.info(f"Procesando fichero: {filename} (tipo: {kind})")

    try:
        with open(filepath, 'rb') as f:
            content = f.read()

        url = f"{CORE_BACKEND_URL.rstrip('/')}/{kind}"
        logger.info(f"Enviando '{filename}' al Core Backend ({url})...")
        response = requests.post(url,
                                 data=content,
                                 headers={'Content-Type': CONTENT_TYPES[kind]},
                                 timeout=30)

        if response.status_code == 200:
            logger.info(f"Backend procesó '{filename}' con éxito. Moviendo a 'procesados'.")
            safe_move(filepath, PROCESADOS_PATH)
            return True

        logger.error(f"Backend falló al procesar '{filename}' (Status: {response.status_code}). Moviendo a 'error'.")
        logger.error(f"Respuesta del Backend: {response.text}")
        safe_move(filepath, ERROR_PATH)
        return False

    except requests.exceptions.ConnectionError:
        logger.error(f"No se pudo conectar al Core Backend en {CORE_BACKEND_URL}. ¿Está corriendo?")
        # NO movemos el fichero. Se re-intentará en el próximo escaneo o reinicio.
        return None

    except (OSError, requests.exceptions.RequestException) as e:
        logger.error(f"Error general procesando '{filename}': {e}")
        safe_move(filepath, ERROR_PATH)
        return False


class MedalFileHandler(FileSystemEventHandler):
    """ Manejador de eventos que reacciona a la creación de ficheros. """
    def on_created(self, event):
        if event.is_directory:
            return
        if payload_kind(event.src_path) is None:
            return

        logger.info(f"Fichero nuevo detectado por 'on_created': {event.src_path}")
        process_file(event.src_path)


def _sort_key(filename: str):
    # El medallero y los medallistas antes que el GeoJSON: el snapshot se arma antes.
    order = {"medals_total": 0, "medals": 1, "geojson": 2}
    return order.get(payload_kind(filename), 3), filename


def process_existing_files():
    """ Escanea el hotfolder al arrancar y procesa ficheros existentes. """
    logger.info(f"Escaneando ficheros existentes en: {HOTFOLDER_PATH}")
    found_files = 0
    for filename in sorted(os.listdir(HOTFOLDER_PATH), key=_sort_key):
        if payload_kind(filename) is not None:
            found_files += 1
            process_file(os.path.join(HOTFOLDER_PATH, filename))

    if found_files == 0:
        logger.info("No se encontraron ficheros existentes. Esperando nuevos...")
    return found_files


def start_monitoring():
    os.makedirs(HOTFOLDER_PATH, exist_ok=True)
    os.makedirs(PROCESADOS_PATH, exist_ok=True)
    os.makedirs(ERROR_PATH, exist_ok=True)

    logger.info(f"Iniciando monitor... (Enviando datos a: {CORE_BACKEND_URL})")

    # 1. Procesamos los ficheros que ya existan
    process_existing_files()

    # 2. Iniciamos el observador para ficheros nuevos
    logger.info("El vigilante está activo. Esperando ficheros de medallas nuevos...")
    event_handler = MedalFileHandler()
    observer = Observer()
    observer.schedule(event_handler, HOTFOLDER_PATH, recursive=False)
    observer.start()

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        observer.stop()
        logger.info("Monitor detenido por el usuario.")
    observer.join()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s - %(message)s',
                        datefmt='%Y-%m-%d %H:%M:%S')
    start_monitoring()
