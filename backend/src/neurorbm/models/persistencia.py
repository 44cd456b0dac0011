# backend/src/neurorbm/models/persistencia.py
"""
Persistencia de ``RestrictedBoltzmannMachine`` como snapshot completo.

Formato
-------
Archivo ``.npz`` (sin pickle) con los arrays:

- ``W``       (n_visible, n_hidden) float64
- ``bv``      (n_visible,)          float64
- ``bh``      (n_hidden,)           float64
- ``visible`` (n_visible,)          int8
- ``hidden``  (n_hidden,)           int8
- ``meta``    str JSON con ``schema_version``, dimensiones y política de inicialización.

``save``/``load`` trabajan con bytes; ``save_to_dir``/``load_from_dir`` escriben
``rbm_state.npz`` y ``meta.json`` en un directorio (mismo contenido de ``meta``).

Solo se puede cargar un snapshot con la misma ``SCHEMA_VERSION`` con la que se
escribió. Cualquier fallo se reporta como :class:`PersistenciaError`; cargar
nunca modifica un modelo existente (siempre se construye uno nuevo).
"""

from __future__ import annotations

import io
import json
import logging
import zipfile
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

from .capa_neuronas import BinaryNeuronLayer
from .errores import PersistenciaError
from .rbm_manual import PoliticaInicializacion, RestrictedBoltzmannMachine

__all__ = [
    "SCHEMA_VERSION",
    "STATE_FILE",
    "META_FILE",
    "save",
    "load",
    "save_to_dir",
    "load_from_dir",
]

logger = logging.getLogger("neurorbm.models.persistencia")

SCHEMA_VERSION = 1
STATE_FILE = "rbm_state.npz"
META_FILE = "meta.json"

_ARRAYS = ("W", "bv", "bh", "visible", "hidden")


def _meta(model: RestrictedBoltzmannMachine, extra_meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    meta: Dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "n_visible": int(model.n_visible),
        "n_hidden": int(model.n_hidden),
        "politica": model.politica.to_dict(),
    }
    if extra_meta:
        meta.update(extra_meta)
    return meta


def _write_npz(fh, model: RestrictedBoltzmannMachine, meta: Dict[str, Any]) -> None:
    np.savez(
        fh,
        W=model.W,
        bv=model.bv,
        bh=model.bh,
        visible=model.visible.as_vector(),
        hidden=model.hidden.as_vector(),
        meta=np.array(json.dumps(meta)),
    )


def _build(arrays: Dict[str, np.ndarray], meta: Dict[str, Any]) -> RestrictedBoltzmannMachine:
    if not isinstance(meta, dict):
        raise PersistenciaError("Snapshot sin metadatos válidos.")
    version = meta.get("schema_version")
    if version != SCHEMA_VERSION:
        raise PersistenciaError(
            f"Snapshot incompatible: schema_version={version!r}, se esperaba {SCHEMA_VERSION}."
        )
    missing = [k for k in _ARRAYS if k not in arrays]
    if missing:
        raise PersistenciaError(f"Snapshot incompleto, faltan arrays: {missing}")

    try:
        n_visible, n_hidden = int(meta["n_visible"]), int(meta["n_hidden"])
        W = np.asarray(arrays["W"], dtype=np.float64)
        bv = np.asarray(arrays["bv"], dtype=np.float64)
        bh = np.asarray(arrays["bh"], dtype=np.float64)
        if (
            W.shape != (n_visible, n_hidden)
            or bv.shape != (n_visible,)
            or bh.shape != (n_hidden,)
            or arrays["visible"].shape != (n_visible,)
            or arrays["hidden"].shape != (n_hidden,)
        ):
            raise PersistenciaError(
                f"Dimensiones del snapshot incompatibles con meta (n_visible={n_visible}, n_hidden={n_hidden})."
            )
        model = RestrictedBoltzmannMachine(
            BinaryNeuronLayer(arrays["visible"]),
            BinaryNeuronLayer(arrays["hidden"]),
            politica=PoliticaInicializacion.from_dict(meta.get("politica")),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise PersistenciaError(f"Metadatos del snapshot inválidos: {e}") from e

    model.W = W.copy()
    model.bv = bv.copy()
    model.bh = bh.copy()
    return model


def save(model: RestrictedBoltzmannMachine, extra_meta: Optional[Dict[str, Any]] = None) -> bytes:
    """Serializa el modelo completo a bytes."""
    buf = io.BytesIO()
    try:
        _write_npz(buf, model, _meta(model, extra_meta))
    except (OSError, ValueError, TypeError) as e:
        raise PersistenciaError(f"No se pudo serializar la RBM: {e}") from e
    return buf.getvalue()


def load(data: bytes) -> RestrictedBoltzmannMachine:
    """Reconstruye un modelo a partir de los bytes producidos por :func:`save`."""
    try:
        with np.load(io.BytesIO(data), allow_pickle=False) as npz:
            arrays = {k: npz[k] for k in npz.files}
        meta = json.loads(str(arrays.pop("meta")))
    except PersistenciaError:
        raise
    except (OSError, ValueError, KeyError, TypeError, EOFError, zipfile.BadZipFile) as e:
        raise PersistenciaError(f"No se pudo leer la RBM: {e}") from e
    return _build(arrays, meta)


def save_to_dir(
    model: RestrictedBoltzmannMachine,
    out_dir: str | Path,
    extra_meta: Optional[Dict[str, Any]] = None,
) -> Path:
    """Escribe ``rbm_state.npz`` + ``meta.json`` en ``out_dir`` (lo crea si no existe)."""
    out = Path(out_dir)
    meta = _meta(model, extra_meta)
    try:
        out.mkdir(parents=True, exist_ok=True)
        with (out / STATE_FILE).open("wb") as fh:
            _write_npz(fh, model, meta)
        (out / META_FILE).write_text(json.dumps(meta, indent=2), encoding="utf-8")
    except OSError as e:
        raise PersistenciaError(f"No se pudo guardar la RBM en {out}: {e}") from e
    logger.info("RBM guardada en %s (n_visible=%d, n_hidden=%d)", out, model.n_visible, model.n_hidden)
    return out


def load_from_dir(in_dir: str | Path) -> RestrictedBoltzmannMachine:
    """Carga una RBM guardada con :func:`save_to_dir`."""
    src = Path(in_dir)
    state_path = src / STATE_FILE
    meta_path = src / META_FILE
    if not state_path.exists():
        raise PersistenciaError(f"Falta {STATE_FILE} en {src}")
    if not meta_path.exists():
        raise PersistenciaError(f"Falta {META_FILE} en {src}")
    try:
        meta = json.loads(meta_path.read_text(encoding="utf-8"))
        with np.load(state_path, allow_pickle=False) as npz:
            arrays = {k: npz[k] for k in npz.files if k != "meta"}
    except (OSError, ValueError, KeyError, EOFError, zipfile.BadZipFile) as e:
        raise PersistenciaError(f"No se pudo leer la RBM de {src}: {e}") from e
    return _build(arrays, meta)
