# backend/src/neurorbm/data/dataset.py
"""
Proveedor de datasets binarios para la RBM.

Formato de archivo (texto)
--------------------------
::

    <num_clases>
    <ancho>
    <alto>
    [0, 1, 0, ..., 0, 1, 0]
    [1, 1, 0, ..., 1, 0, 0]
    ...

Cada línea es una imagen binaria aplanada seguida de su sufijo one-hot de
``num_clases`` elementos. Los ejemplos vienen agrupados por clase, con el
mismo número de ejemplos por clase.

``split_dataset`` reparte cada clase entre entrenamiento/validación/test
manteniendo el mismo tamaño por clase en cada subconjunto y el agrupamiento
por clase que el trainer necesita para recorrer en round-robin.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from ..models.utils_boltzmann import check_binary_matrix

__all__ = [
    "TRAINING_PERCENTAGE",
    "TEST_PERCENTAGE",
    "VALIDATION_PERCENTAGE",
    "DatasetBinario",
    "ParticionDataset",
    "parse_line",
    "load_dataset",
    "save_dataset",
    "split_dataset",
]

logger = logging.getLogger("neurorbm.data.dataset")

TRAINING_PERCENTAGE = 0.6
TEST_PERCENTAGE = 0.2
VALIDATION_PERCENTAGE = 0.2


@dataclass
class DatasetBinario:
    num_classes: int
    width: int
    height: int
    examples: np.ndarray  # (n_ejemplos, width*height + num_classes) int8

    @property
    def n_visible(self) -> int:
        return self.width * self.height + self.num_classes

    def __len__(self) -> int:
        return int(self.examples.shape[0])


@dataclass
class ParticionDataset:
    train: np.ndarray
    validation: np.ndarray
    test: np.ndarray


def parse_line(line: str) -> List[int]:
    """'[0, 1, 1]' -> [0, 1, 1]"""
    body = line.strip().replace("[", "").replace("]", "")
    try:
        return [int(tok) for tok in body.split(",") if tok.strip()]
    except ValueError as e:
        raise ValueError(f"Línea de dataset inválida: {line[:40]!r}") from e


def load_dataset(path: str | Path) -> DatasetBinario:
    """Carga un dataset en el formato de texto descrito en el módulo."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Dataset no encontrado: {p}")

    lines = [ln.strip() for ln in p.read_text(encoding="utf-8").splitlines()]
    lines = [ln for ln in lines if ln]
    if len(lines) < 3:
        raise ValueError(f"Cabecera incompleta en {p}: se esperaban num_clases, ancho y alto")
    try:
        num_classes, width, height = (int(x) for x in lines[:3])
    except ValueError as e:
        raise ValueError(f"Cabecera inválida en {p}: {lines[:3]}") from e

    rows = [parse_line(ln) for ln in lines[3:]]
    expected = width * height + num_classes
    bad = [i for i, r in enumerate(rows) if len(r) != expected]
    if bad:
        raise ValueError(
            f"{len(bad)} ejemplos con longitud distinta de {expected} (ancho*alto + num_clases); primero en fila {bad[0]}"
        )
    X = np.asarray(rows, dtype=np.int8).reshape(len(rows), expected)
    check_binary_matrix(X, "examples")

    logger.info("Dataset cargado de %s: %d ejemplos, %d clases, %dx%d", p, X.shape[0], num_classes, width, height)
    return DatasetBinario(num_classes=num_classes, width=width, height=height, examples=X)


def save_dataset(ds: DatasetBinario, path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as fh:
        fh.write(f"{ds.num_classes}\n{ds.width}\n{ds.height}\n")
        for row in ds.examples:
            fh.write("[" + ", ".join(str(int(v)) for v in row) + "]\n")
    return p


def _floor_share(n: int, fraction: float) -> int:
    # tolerancia para productos como 0.29 * 100 = 28.999999999999996
    return int(np.floor(n * fraction + 1e-9))


def split_dataset(
    ds: DatasetBinario,
    training_percentage: float = TRAINING_PERCENTAGE,
    test_percentage: float = TEST_PERCENTAGE,
    validation_percentage: float = VALIDATION_PERCENTAGE,
    rng: Optional[np.random.Generator] = None,
) -> ParticionDataset:
    """
    Divide aleatoriamente cada clase en train/test/validación.

    Los tamaños por clase son fijos: test y validación se redondean hacia
    abajo y train se queda con el resto, así que todas las clases aportan
    exactamente lo mismo a cada subconjunto. El azar solo decide qué
    ejemplos van a cada uno. Dentro de un subconjunto los ejemplos siguen
    agrupados por clase y en su orden original.
    """
    total = training_percentage + test_percentage + validation_percentage
    if min(training_percentage, test_percentage, validation_percentage) < 0 or abs(total - 1.0) > 1e-9:
        raise ValueError("Los porcentajes deben ser no negativos y sumar 1")
    k = max(1, ds.num_classes)
    n = len(ds)
    if n % k:
        raise ValueError(f"{n} ejemplos no se pueden repartir en {k} clases de igual tamaño")
    rng = rng if rng is not None else np.random.default_rng()

    per_class = n // k
    n_test = _floor_share(per_class, test_percentage)
    n_val = _floor_share(per_class, validation_percentage)
    n_train = per_class - n_test - n_val
    parts: Dict[str, List[np.ndarray]] = {"train": [], "test": [], "validation": []}

    for c in range(k):
        order = rng.permutation(per_class)
        chosen = {
            "train": order[:n_train],
            "test": order[n_train:n_train + n_test],
            "validation": order[n_train + n_test:],
        }
        for name, idx in chosen.items():
            parts[name].extend(ds.examples[c * per_class + i] for i in np.sort(idx))

    width = ds.examples.shape[1]

    def _stack(rows: List[np.ndarray]) -> np.ndarray:
        return np.asarray(rows, dtype=np.int8).reshape(len(rows), width)

    out = ParticionDataset(
        train=_stack(parts["train"]),
        validation=_stack(parts["validation"]),
        test=_stack(parts["test"]),
    )
    logger.info(
        "Dataset dividido: train=%d validation=%d test=%d",
        len(out.train), len(out.validation), len(out.test),
    )
    return out
