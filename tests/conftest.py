# tests/conftest.py
import numpy as np
import pytest
from fastapi.testclient import TestClient

from neurorbm.app.main import app
from neurorbm.data.dataset import DatasetBinario
from neurorbm.data.etiquetas import add_one_hot

# Dos clases sobre imágenes 2x2: "A" = fila superior, "B" = fila inferior
PATRONES = {
    0: [1, 1, 0, 0],
    1: [0, 0, 1, 1],
}


@pytest.fixture
def toy_dataset() -> DatasetBinario:
    """10 ejemplos por clase, agrupados por clase (A primero)."""
    rows = [add_one_hot(PATRONES[c], c, 2) for c in (0, 1) for _ in range(10)]
    return DatasetBinario(num_classes=2, width=2, height=2, examples=np.asarray(rows, dtype=np.int8))


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("NR_ARTIFACTS_DIR", str(tmp_path / "artifacts"))
    with TestClient(app) as c:
        yield c
