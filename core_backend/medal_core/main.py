import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect, status
from fastapi.responses import JSONResponse

from . import json_generator, queries, schemas, store, websockets
from .config import get_settings
from .parsers import MalformedInputError
from .processing import UnknownPayloadError
from .relationship import CapSelection, build_relationship_matrix

# --- Configuración del Logging ---
logging.basicConfig(level=get_settings().log_level,
                    format='%(asctime)s - %(levelname)s - %(message)s',
                    datefmt='%Y-%m-%d %H:%M:%S')
logger = logging.getLogger(__name__)
# ---------------------------------

app = FastAPI(title="Medal Core")


@app.on_event("startup")
def startup_event():
    """
    Al arrancar, carga los ficheros de datos que existan en el directorio
    configurado. Si faltan o estan mal formados el servicio arranca igual
    y espera payloads por /ingest.
    """
    logger.info("Iniciando aplicación. Cargando ficheros de datos...")
    try:
        snapshot = store.get_store().load_files()
        if snapshot is not None:
            logger.info(f"Snapshot inicial listo: {len(snapshot.totals)} paises, {len(snapshot.medals)} medallas.")
        else:
            logger.info("Sin snapshot inicial. Esperando payloads en /ingest.")
    except (ValueError, OSError) as e:
        logger.error(f"Error cargando los ficheros de datos iniciales: {e}", exc_info=True)


def require_snapshot(snapshot_store: store.SnapshotStore = Depends(store.get_store)):
    snapshot = snapshot_store.snapshot
    if snapshot is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                            detail="Medal data not loaded yet")
    return snapshot


@app.get("/")
def read_root():
    """ Endpoint 'Hola Mundo' """
    return {"Hello": "Medal Core"}


@app.post("/ingest/{kind}", response_model=schemas.IngestResponse)
async def ingest_payload(
    kind: str,
    request: Request,
    snapshot_store: store.SnapshotStore = Depends(store.get_store),
):
    """
    Ingesta de un payload crudo (CSV de medallero, CSV de medallistas o GeoJSON).
    Un payload mal formado devuelve 400 y deja el snapshot anterior intacto.
    """
    logger.info(f"¡Conexión recibida en /ingest/{kind}!")

    body = await request.body()
    if not body:
        logger.warning("Body vacío recibido.")
        return JSONResponse(content={"error": "Empty body"}, status_code=status.HTTP_400_BAD_REQUEST)

    try:
        payload = body.decode('utf-8-sig')
        parsed = snapshot_store.ingest(kind, payload)
    except UnknownPayloadError:
        logger.warning(f"No se encontró un parser para el payload: {kind}")
        return JSONResponse(content={"error": f"Unknown payload kind '{kind}'"},
                            status_code=status.HTTP_404_NOT_FOUND)
    except (MalformedInputError, UnicodeDecodeError, ValueError) as e:
        logger.error(f"Payload '{kind}' rechazado: {e}")
        return JSONResponse(content={"error": str(e)}, status_code=status.HTTP_400_BAD_REQUEST)

    await websockets.manager.broadcast("data updated")
    return schemas.IngestResponse(
        status="success",
        kind=kind,
        records=len(parsed),
        warnings=len(parsed.warnings),
        snapshot_ready=snapshot_store.snapshot is not None,
    )


@app.get("/all-data")
def get_all_data(snapshot_store: store.SnapshotStore = Depends(store.get_store)):
    return json_generator.generate_json(snapshot_store.snapshot)


@app.get("/countries/top", response_model=List[schemas.MedalTotal])
def get_top_countries(n: int = Query(10, ge=0), snapshot_store: store.SnapshotStore = Depends(store.get_store)):
    snapshot = snapshot_store.snapshot
    if snapshot is None:
        return []
    return queries.top_countries(snapshot.totals, n)


@app.get("/countries/{code}", response_model=schemas.CountryBreakdownOut)
def get_country(code: str, snapshot=Depends(require_snapshot)):
    breakdown = queries.country_breakdown(snapshot, code)
    if not breakdown.found and not breakdown.medals:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Country '{code}' not found")
    return schemas.CountryBreakdownOut(country_code=breakdown.country_code,
                                       total=breakdown.total,
                                       medals=list(breakdown.medals))


@app.get("/countries/{code}/disciplines", response_model=List[schemas.DisciplineGroupOut])
def get_country_disciplines(code: str, n: int = Query(5, ge=0), snapshot=Depends(require_snapshot)):
    return [
        schemas.DisciplineGroupOut(discipline=g.discipline, count=g.count, medals=list(g.medals))
        for g in queries.top_disciplines(snapshot, code, n)
    ]


@app.get("/countries/{code}/chart", response_model=List[schemas.DisciplineChartRow])
def get_country_chart(code: str, n: int = Query(8, ge=0), snapshot=Depends(require_snapshot)):
    return queries.discipline_chart(snapshot, code, n)


@app.get("/countries/{code}/recent", response_model=List[schemas.DetailedMedal])
def get_country_recent(code: str, n: int = Query(5, ge=0), snapshot=Depends(require_snapshot)):
    return queries.recent_medals(snapshot, code, n)


@app.get("/relationship", response_model=schemas.RelationshipMatrixOut)
def get_relationship(
    max_countries: Optional[int] = Query(None, ge=0),
    max_disciplines: Optional[int] = Query(None, ge=0),
    selection: CapSelection = CapSelection.ALPHABETICAL,
    snapshot=Depends(require_snapshot),
):
    if max_countries is None and max_disciplines is None and selection == snapshot.matrix.selection:
        return snapshot.matrix.to_schema()
    matrix = build_relationship_matrix(snapshot.medals, max_countries, max_disciplines, selection)
    return matrix.to_schema()


@app.get("/map")
def get_map(snapshot=Depends(require_snapshot)):
    return {
        "entries": [e.model_dump() for e in json_generator.map_entries(snapshot.reconciliation)],
        "diagnostics": json_generator.map_diagnostics(snapshot.reconciliation),
    }


@app.get("/timeline", response_model=List[schemas.DailyMedalCountOut])
def get_timeline(snapshot=Depends(require_snapshot)):
    return json_generator.timeline(snapshot)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websockets.manager.connect(websocket)
    try:
        while True:
            # Los clientes solo escuchan; lo que envien se ignora.
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Cliente WebSocket desconectado.")
    finally:
        websockets.manager.disconnect(websocket)
