"""
tests/unit/test_dataset.py

Formato de texto del dataset y división por clase train/test/validación.
"""
from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from neurorbm.data.dataset import DatasetBinario, load_dataset, parse_line, save_dataset, split_dataset
from neurorbm.models.rbm_manual import RestrictedBoltzmannMachine
from neurorbm.trainers.rbm_trainer import RBMTrainer


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "ds.txt"
    p.write_text(text, encoding="utf-8")
    return p


def test_parse_line():
    assert parse_line("[0, 1, 1, 0]") == [0, 1, 1, 0]
    assert parse_line("  [1]  ") == [1]
    with pytest.raises(ValueError):
        parse_line("[0, x]")


def test_load_text_format(tmp_path):
    p = _write(tmp_path, "2\n2\n1\n[1, 0, 1, 0]\n[0, 1, 0, 1]\n\n")
    ds = load_dataset(p)
    assert (ds.num_classes, ds.width, ds.height) == (2, 2, 1)
    assert ds.n_visible == 4
    assert ds.examples.tolist() == [[1, 0, 1, 0], [0, 1, 0, 1]]


def test_save_then_load(tmp_path, toy_dataset):
    p = save_dataset(toy_dataset, tmp_path / "sub" / "toy.txt")
    assert p.read_text().splitlines()[3] == "[1, 1, 0, 0, 1, 0]"
    again = load_dataset(p)
    np.testing.assert_array_equal(again.examples, toy_dataset.examples)


@pytest.mark.parametrize(
    "text",
    [
        "2\n2\n",                        # cabecera incompleta
        "dos\n2\n1\n[1, 0, 1, 0]\n",     # cabecera no numérica
        "2\n2\n1\n[1, 0, 1]\n",          # longitud != ancho*alto + clases
        "2\n2\n1\n[1, 0, 2, 0]\n",       # valor no binario
    ],
)
def test_malformed_files(tmp_path, text):
    with pytest.raises(ValueError):
        load_dataset(_write(tmp_path, text))


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_dataset(tmp_path / "nada.txt")


def test_split_sizes_and_grouping(toy_dataset):
    parts = split_dataset(toy_dataset, rng=np.random.default_rng(0))
    assert (len(parts.train), len(parts.test), len(parts.validation)) == (12, 4, 4)

    # mitad A (sufijo [1, 0]) y luego mitad B, en cada subconjunto
    for X in (parts.train, parts.test, parts.validation):
        half = len(X) // 2
        assert np.all(X[:half, -2:] == [1, 0])
        assert np.all(X[half:, -2:] == [0, 1])


def test_split_is_reproducible():
    X = np.eye(8, dtype=np.int8)[:, :8]
    ds = DatasetBinario(num_classes=0, width=8, height=1, examples=X)
    a = split_dataset(ds, rng=np.random.default_rng(5))
    b = split_dataset(ds, rng=np.random.default_rng(5))
    np.testing.assert_array_equal(a.train, b.train)
    assert len(a.train) + len(a.test) + len(a.validation) <= 8


def test_split_rejects_bad_percentages(toy_dataset):
    with pytest.raises(ValueError):
        split_dataset(toy_dataset, 0.5, 0.2, 0.2)


def test_split_rejects_uneven_classes():
    ds = DatasetBinario(num_classes=2, width=1, height=1, examples=np.zeros((3, 3), dtype=np.int8))
    with pytest.raises(ValueError):
        split_dataset(ds)


def _labelled(num_classes: int, per_class: int) -> DatasetBinario:
    """Ejemplos distintos dentro de cada clase: píxeles = one-hot del índice."""
    rows = [
        np.concatenate([np.eye(per_class, dtype=np.int8)[i], np.eye(num_classes, dtype=np.int8)[c]])
        for c in range(num_classes)
        for i in range(per_class)
    ]
    return DatasetBinario(num_classes=num_classes, width=per_class, height=1, examples=np.asarray(rows))


@pytest.mark.parametrize("num_classes,per_class,expected", [
    (2, 3, (3, 0, 0)),
    (3, 3, (3, 0, 0)),
    (3, 5, (3, 1, 1)),
])
def test_split_keeps_equal_class_blocks_for_every_seed(num_classes, per_class, expected):
    ds = _labelled(num_classes, per_class)
    for seed in range(50):
        parts = split_dataset(ds, rng=np.random.default_rng(seed))
        for X, size in zip((parts.train, parts.test, parts.validation), expected):
            assert len(X) == size * num_classes
            # bloque c del subconjunto = solo ejemplos de la clase c
            for c in range(num_classes):
                block = X[c * size:(c + 1) * size]
                assert np.all(block[:, -num_classes:] == np.eye(num_classes, dtype=np.int8)[c])

        # cada ejemplo acaba en exactamente un subconjunto
        used = np.concatenate([parts.train, parts.test, parts.validation])
        assert sorted(map(tuple, used.tolist())) == sorted(map(tuple, ds.examples.tolist()))


def test_split_sizes_floor_test_and_validation():
    ds = _labelled(2, 7)
    parts = split_dataset(ds, 0.5, 0.25, 0.25, rng=np.random.default_rng(0))
    # floor(7 * 0.25) = 1 para test y validación; train se queda con 5
    assert (len(parts.train), len(parts.test), len(parts.validation)) == (10, 2, 2)


def test_split_feeds_round_robin_trainer():
    ds = _labelled(3, 3)
    parts = split_dataset(ds, rng=np.random.default_rng(3))
    rbm = RestrictedBoltzmannMachine.create(ds.n_visible, 2, seed=0)
    out = RBMTrainer(rbm, max_epochs=1, num_classes=3).train(parts.train, parts.validation, parts.test)
    assert out["status"] == "completed"
    assert out["examples_processed"] == 9
