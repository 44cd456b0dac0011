"""
neurorbm.utils.paths
====================

Resolver único de rutas para artifacts (runs de entrenamiento).

Reglas de resolución
--------------------
- Si existe `NR_ARTIFACTS_DIR`, ese directorio es la fuente de verdad.
- Si no existe, se usa `<repo_root>/artifacts`.
- `repo_root` se infiere:
  1) `NR_PROJECT_ROOT` si está definido.
  2) Subiendo desde este archivo buscando `pyproject.toml` o carpeta `backend/`.
  3) Fallback: `Path.cwd()`.

Sin side effects: no crea carpetas.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional
import os
import re


_SEGMENT_RE = re.compile(r"[^a-zA-Z0-9._-]+")


def safe_segment(value: Any) -> str:
    """Convierte `value` en un segmento seguro de path.

    - Reemplaza separadores de path y caracteres raros por "_".
    - Evita ".." (path traversal).

    Args:
        value: Valor a convertir (run_id, job_id, ...)

    Returns:
        Segmento apto para usar como nombre de carpeta/archivo.
    """
    s = str(value or "").strip()
    s = s.replace("\\", "_").replace("/", "_")
    s = s.replace("..", "_")
    s = _SEGMENT_RE.sub("_", s)
    s = s.strip("_")
    return s or "x"


def _find_project_root() -> Path:
    env_root = os.getenv("NR_PROJECT_ROOT")
    if env_root:
        p = Path(env_root).expanduser().resolve()
        if p.exists():
            return p

    here = Path(__file__).resolve()
    for p in here.parents:
        if (p / "pyproject.toml").exists() or (p / "backend").is_dir():
            return p

    return Path.cwd().resolve()


_PROJECT_ROOT_CACHE: Optional[Path] = None


def project_root(*, refresh: bool = False) -> Path:
    """Retorna la raíz del repo (ver `_find_project_root`)."""
    global _PROJECT_ROOT_CACHE
    if refresh or _PROJECT_ROOT_CACHE is None:
        _PROJECT_ROOT_CACHE = _find_project_root()
    return _PROJECT_ROOT_CACHE


def artifacts_dir(*, refresh: bool = False) -> Path:
    """Directorio base de artifacts (NR_ARTIFACTS_DIR o <repo_root>/artifacts)."""
    env_art = os.getenv("NR_ARTIFACTS_DIR")
    if env_art:
        return Path(env_art).expanduser().resolve()
    return (project_root(refresh=refresh) / "artifacts").resolve()


def runs_dir() -> Path:
    return artifacts_dir() / "runs"


def resolve_run_dir(run_id: str) -> Path:
    """Directorio de un run: artifacts/runs/<run_id>/."""
    return runs_dir() / safe_segment(run_id)
