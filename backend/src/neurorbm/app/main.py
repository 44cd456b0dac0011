"""
Módulo principal de la API de NeuroRBM.

Responsabilidades:
- Instanciación de FastAPI
- Registro de routers (modelos: control de entrenamientos; prediccion: clasificación)
- Endpoints globales mínimos (/health)
- CORS para el panel de control web
- Conectar el destino de observabilidad (logging) para eventos training.*
- Middleware de Correlation-Id (X-Correlation-Id) para trazabilidad
"""

from __future__ import annotations

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from neurorbm.app.logging_config import setup_logging
from neurorbm.observability.middleware_correlation import CorrelationIdMiddleware
from neurorbm.observability.logging_context import install_logrecord_factory
from neurorbm.observability.destinos.log_handler import wire_logging_destination

from .routers import modelos, prediccion


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    - Configura logging (dictConfig con filtro cid)
    - Instala LogRecordFactory que inyecta correlation_id desde ContextVar
    - Conecta el destino de logging para eventos training.*
    """
    setup_logging(os.getenv("NR_LOG_LEVEL"))
    install_logrecord_factory()
    wire_logging_destination()
    logging.getLogger("neurorbm").info("Observability wiring OK: training.* -> logging.INFO")
    yield


app = FastAPI(title="NeuroRBM API", version=os.getenv("API_VERSION", "0.1.0"), lifespan=lifespan)

# ---------------------------------------------------------------------------
# CORS
#   - NR_ALLOWED_ORIGINS (coma-separados) tiene prioridad
#   - Si no está definido, se usan los defaults locales
# ---------------------------------------------------------------------------
_default_origins = ["http://localhost:5173", "http://127.0.0.1:5173"]
_raw_origins = os.getenv("NR_ALLOWED_ORIGINS")
ALLOWED_ORIGINS = (
    [o.strip() for o in _raw_origins.split(",") if o.strip()]
    if _raw_origins
    else _default_origins
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-Id"],
    max_age=600,
)

app.add_middleware(CorrelationIdMiddleware)


@app.get("/health")
def health() -> dict:
    """Endpoint de salud: permite saber si la API está arriba."""
    return {"status": "ok"}


app.include_router(modelos.router,    prefix="/modelos",    tags=["modelos"])
app.include_router(prediccion.router, prefix="/prediccion", tags=["prediccion"])
