# backend/src/neurorbm/utils/runs_io.py
"""
Artifacts de un run de entrenamiento.

Estructura de ``artifacts/runs/<run_id>/``::

    rbm_state.npz + meta.json   (modelo, ver models.persistencia)
    params.json                 (hiperparámetros)
    metrics.json                (resultado: estado, métricas finales)
    history.json / history.csv  (un registro por checkpoint)
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from ..models.persistencia import save_to_dir
from ..models.rbm_manual import RestrictedBoltzmannMachine
from .paths import runs_dir

logger = logging.getLogger("neurorbm.utils.runs_io")

__all__ = ["json_safe", "save_run", "list_runs", "load_run_details", "load_history"]


def json_safe(obj: Any) -> Any:
    """NaN/inf -> None para que el JSON sea estándar."""
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    if isinstance(obj, dict):
        return {k: json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [json_safe(v) for v in obj]
    return obj


def _write_json(path: Path, data: Any) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(json_safe(data), f, indent=2)


def save_run(
    run_dir: str | Path,
    model: RestrictedBoltzmannMachine,
    params: Dict[str, Any],
    result: Dict[str, Any],
) -> Path:
    """Guarda modelo, parámetros, métricas e historial de un run."""
    out = Path(run_dir)
    out.mkdir(parents=True, exist_ok=True)
    save_to_dir(model, out, extra_meta={"job_id": result.get("job_id")})

    history: List[Dict[str, Any]] = list(result.get("history") or [])
    metrics = {k: v for k, v in result.items() if k != "history"}
    metrics["model_name"] = params.get("model_name", "rbm_binaria")

    _write_json(out / "params.json", params)
    _write_json(out / "metrics.json", metrics)
    _write_json(out / "history.json", history)
    pd.DataFrame.from_records(history).to_csv(out / "history.csv", index=False)

    logger.info("Run guardado en %s (%d checkpoints)", out, len(history))
    return out


def list_runs(model_name: Optional[str] = None, base: Optional[Path] = None) -> List[Dict[str, Any]]:
    """
    Lista los runs en artifacts/runs (más reciente primero).
    Cada subdirectorio con ``metrics.json`` es un run.
    """
    root = Path(base) if base is not None else runs_dir()
    if not root.exists():
        return []

    runs: List[Dict[str, Any]] = []
    for run_dir in sorted(root.glob("*"), key=lambda p: p.stat().st_mtime, reverse=True):
        metrics_path = run_dir / "metrics.json"
        if not run_dir.is_dir() or not metrics_path.exists():
            continue
        try:
            with metrics_path.open("r", encoding="utf-8") as f:
                metrics = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("metrics.json ilegible en %s: %s", run_dir, e)
            continue

        run_model = metrics.get("model_name") or "rbm_binaria"
        if model_name and run_model != model_name:
            continue

        created_at = dt.datetime.fromtimestamp(run_dir.stat().st_mtime, tz=dt.timezone.utc).isoformat()
        runs.append({
            "run_id": run_dir.name,
            "model_name": run_model,
            "created_at": created_at,
            "status": metrics.get("status"),
            "epochs_run": metrics.get("epochs_run"),
            "metrics": metrics.get("metrics", {}),
        })
    return runs


def load_run_details(run_dir: str | Path) -> Optional[Dict[str, Any]]:
    """metrics.json + params.json de un run, o None si no existe."""
    src = Path(run_dir)
    metrics_path = src / "metrics.json"
    if not metrics_path.exists():
        return None
    with metrics_path.open("r", encoding="utf-8") as f:
        metrics = json.load(f)
    params: Dict[str, Any] = {}
    if (src / "params.json").exists():
        with (src / "params.json").open("r", encoding="utf-8") as f:
            params = json.load(f)
    return {"run_id": src.name, "metrics": metrics, "params": params}


def load_history(run_dir: str | Path) -> pd.DataFrame:
    """Historial de checkpoints de un run como DataFrame (vacío si no hay)."""
    path = Path(run_dir) / "history.csv"
    if not path.exists() or path.stat().st_size == 0:
        return pd.DataFrame()
    try:
        return pd.read_csv(path)
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
