# backend/src/neurorbm/app/routers/modelos.py
"""
Control de entrenamientos de la RBM vía HTTP.

Cada POST /modelos/entrenar crea un ``RBMTrainer`` con su propio hilo
trabajador. El estado vive en memoria (``_ESTADOS``) y se alimenta de los
eventos training.* del bus, filtrados por correlation_id == job_id.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

import numpy as np
from fastapi import APIRouter, HTTPException

from ..schemas.modelos import (
    AccionResponse,
    EntrenarRequest,
    EntrenarResponse,
    EstadoResponse,
    GuardarResponse,
)
from ...data.dataset import DatasetBinario, load_dataset, split_dataset
from ...models.errores import PersistenciaError
from ...models.observer.eventos_entrenamiento import (
    TRAINING_COMPLETED,
    TRAINING_EPOCH_END,
    TRAINING_FAILED,
)
from ...models.rbm_manual import PoliticaInicializacion, RestrictedBoltzmannMachine
from ...observability.bus_eventos import BUS
from ...trainers.rbm_trainer import EstadoEntrenamiento, ModeloOcupadoError, RBMTrainer
from ...utils.paths import resolve_run_dir
from ...utils.runs_io import json_safe, list_runs, load_history, load_run_details, save_run

router = APIRouter()
logger = logging.getLogger("neurorbm.app.modelos")

# Registro in-memory de jobs
# _ESTADOS[job_id] = {
#   "job_id": str,
#   "trainer": RBMTrainer,
#   "num_classes": int,
#   "metrics": Dict[str, float],      # último checkpoint
#   "history": list[dict[str, Any]],  # un punto por checkpoint
#   "params": Dict[str, Any],
#   "error": str | None,
# }
_ESTADOS: Dict[str, Dict[str, Any]] = {}


def get_job(job_id: str) -> Dict[str, Any]:
    st = _ESTADOS.get(job_id)
    if st is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} no encontrado")
    return st


def _wire_job_observers(job_id: str) -> None:
    """
    Se suscribe al BUS para capturar:
    - training.epoch_end: agrega un punto a history[] y actualiza metrics
    - training.completed: métricas finales y baja de suscripciones
    - training.failed: guarda el error y baja de suscripciones
    """
    def _match(evt) -> bool:
        return evt.payload.get("correlation_id") == job_id and job_id in _ESTADOS

    def _on_epoch_end(evt) -> None:
        if not _match(evt):
            return
        st = _ESTADOS[job_id]
        point = dict(evt.payload.get("metrics") or {})
        point.setdefault("epoch", evt.payload.get("epoch"))
        st["history"].append(point)
        st["metrics"] = {k: v for k, v in point.items() if k != "epoch"}

    def _on_completed(evt) -> None:
        if not _match(evt):
            return
        final_metrics = evt.payload.get("final_metrics")
        if isinstance(final_metrics, dict) and final_metrics:
            _ESTADOS[job_id]["metrics"] = {k: v for k, v in final_metrics.items() if k != "epoch"}
        _unwire()

    def _on_failed(evt) -> None:
        if not _match(evt):
            return
        _ESTADOS[job_id]["error"] = evt.payload.get("error", "unknown error")
        _unwire()

    handlers = (
        (TRAINING_EPOCH_END, _on_epoch_end),
        (TRAINING_COMPLETED, _on_completed),
        (TRAINING_FAILED, _on_failed),
    )

    def _unwire() -> None:
        for topic, handler in handlers:
            BUS.unsubscribe(topic, handler)

    for topic, handler in handlers:
        BUS.subscribe(topic, handler)


def _resolve_dataset(req: EntrenarRequest) -> DatasetBinario:
    if req.dataset is not None:
        d = req.dataset
        expected = d.width * d.height + d.num_classes
        bad = [i for i, row in enumerate(d.examples) if len(row) != expected]
        if bad:
            raise ValueError(f"Ejemplo {bad[0]} con longitud distinta de {expected} (ancho*alto + num_clases)")
        X = np.asarray(d.examples, dtype=np.int8)
        if not np.all((X == 0) | (X == 1)):
            raise ValueError("Los ejemplos solo pueden contener 0/1")
        return DatasetBinario(num_classes=d.num_classes, width=d.width, height=d.height, examples=X)
    return load_dataset(req.data_ref)


@router.post("/entrenar", response_model=EntrenarResponse)
def entrenar(req: EntrenarRequest):
    try:
        ds = _resolve_dataset(req)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    job_id = str(uuid.uuid4())
    rng = np.random.default_rng(req.seed)
    try:
        parts = split_dataset(
            ds,
            training_percentage=req.train_pct,
            test_percentage=req.test_pct,
            validation_percentage=req.validation_pct,
            rng=rng,
        )
        model = RestrictedBoltzmannMachine.create(
            ds.n_visible,
            req.n_hidden,
            politica=PoliticaInicializacion(sesgo_oculto_inicial=req.hidden_bias_init),
            rng=rng,
        )
        trainer = RBMTrainer(
            model,
            learning_rate=req.learning_rate,
            max_epochs=req.epochs,
            num_classes=ds.num_classes,
            error_check_interval=req.error_check_interval,
            termination_threshold=req.termination_threshold,
            init_visible_biases=req.init_visible_biases,
            rng=rng,
            job_id=job_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    _ESTADOS[job_id] = {
        "job_id": job_id,
        "trainer": trainer,
        "num_classes": ds.num_classes,
        "metrics": {},
        "history": [],
        "params": {**trainer.params(), "n_train": len(parts.train), "n_validation": len(parts.validation),
                   "n_test": len(parts.test), "seed": req.seed},
        "error": None,
    }
    _wire_job_observers(job_id)

    try:
        trainer.start(parts.train, parts.validation, parts.test)
    except ValueError as e:
        _ESTADOS.pop(job_id, None)
        raise HTTPException(status_code=422, detail=str(e))

    logger.info("Job %s lanzado (%d ejemplos de entrenamiento)", job_id, len(parts.train))
    return EntrenarResponse(job_id=job_id, status=trainer.state.value)


@router.post("/{job_id}/pausar", response_model=AccionResponse)
def pausar(job_id: str):
    trainer: RBMTrainer = get_job(job_id)["trainer"]
    if trainer.state not in (EstadoEntrenamiento.RUNNING, EstadoEntrenamiento.PAUSED):
        raise HTTPException(status_code=409, detail=f"El job no está en ejecución (estado={trainer.state.value})")
    trainer.pause()
    return AccionResponse(job_id=job_id, status=trainer.state.value, message="Pausa solicitada")


@router.post("/{job_id}/reanudar", response_model=AccionResponse)
def reanudar(job_id: str):
    trainer: RBMTrainer = get_job(job_id)["trainer"]
    if trainer.state not in (EstadoEntrenamiento.RUNNING, EstadoEntrenamiento.PAUSED):
        raise HTTPException(status_code=409, detail=f"El job no está en ejecución (estado={trainer.state.value})")
    trainer.resume()
    return AccionResponse(job_id=job_id, status=trainer.state.value, message="Reanudación solicitada")


@router.get("/estado/{job_id}", response_model=EstadoResponse)
def estado(job_id: str):
    st: Optional[Dict[str, Any]] = _ESTADOS.get(job_id)
    if st is None:
        return EstadoResponse(job_id=job_id, status="unknown")
    trainer: RBMTrainer = st["trainer"]
    return EstadoResponse(**json_safe({
        "job_id": job_id,
        "status": trainer.state.value,
        "examples_processed": trainer.examples_processed,
        "epochs_run": trainer.epochs_completed,
        "stopped_early": trainer.stopped_early,
        "metrics": st["metrics"],
        "history": list(st["history"]),
        "params": st["params"],
        "error": st["error"],
    }))


@router.post("/{job_id}/guardar", response_model=GuardarResponse)
def guardar(job_id: str):
    st = get_job(job_id)
    trainer: RBMTrainer = st["trainer"]
    try:
        with trainer.hold_model() as model:
            out = save_run(resolve_run_dir(job_id), model, st["params"], trainer.summary())
    except ModeloOcupadoError:
        raise HTTPException(status_code=409, detail="Pausa o espera a que termine el entrenamiento antes de guardar")
    except PersistenciaError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return GuardarResponse(job_id=job_id, run_dir=str(out))


@router.get("/runs")
def runs(model_name: Optional[str] = None):
    return json_safe(list_runs(model_name))


@router.get("/runs/{run_id}")
def run_details(run_id: str):
    """metrics + params de un run guardado, con su historial de checkpoints."""
    run_dir = resolve_run_dir(run_id)
    details = load_run_details(run_dir)
    if details is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} no encontrado")
    details["history"] = load_history(run_dir).to_dict(orient="records")
    return json_safe(details)
