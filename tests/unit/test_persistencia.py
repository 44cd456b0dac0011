"""
tests/unit/test_persistencia.py

Snapshot completo de la RBM: bytes y directorio (rbm_state.npz + meta.json).
Solo numpy, sin FastAPI.
"""
from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest

from neurorbm.models import persistencia
from neurorbm.models.errores import PersistenciaError
from neurorbm.models.rbm_manual import PoliticaInicializacion, RestrictedBoltzmannMachine


def _trained_like(seed=11) -> RestrictedBoltzmannMachine:
    rbm = RestrictedBoltzmannMachine.create(
        6, 4, politica=PoliticaInicializacion(sesgo_oculto_inicial=0.0), seed=seed
    )
    rng = np.random.default_rng(seed)
    rbm.W = rng.standard_normal((6, 4))
    rbm.bv = rng.standard_normal(6)
    rbm.bh = rng.standard_normal(4)
    rbm.set_visible([1, 0, 1, 1, 0, 0])
    rbm.hidden.replace_all([0, 1, 1, 0])
    return rbm


def _assert_same(a: RestrictedBoltzmannMachine, b: RestrictedBoltzmannMachine) -> None:
    np.testing.assert_array_equal(a.W, b.W)
    np.testing.assert_array_equal(a.bv, b.bv)
    np.testing.assert_array_equal(a.bh, b.bh)
    assert a.visible.as_vector().tolist() == b.visible.as_vector().tolist()
    assert a.hidden.as_vector().tolist() == b.hidden.as_vector().tolist()
    assert a.politica == b.politica


def test_bytes_round_trip():
    rbm = _trained_like()
    restored = persistencia.load(persistencia.save(rbm))
    _assert_same(rbm, restored)
    assert restored.free_energy() == pytest.approx(rbm.free_energy())


def test_dir_round_trip_and_meta(tmp_path: Path):
    rbm = _trained_like()
    persistencia.save_to_dir(rbm, tmp_path, extra_meta={"job_id": "abc"})

    assert (tmp_path / "rbm_state.npz").exists()
    meta = json.loads((tmp_path / "meta.json").read_text())
    assert meta["schema_version"] == persistencia.SCHEMA_VERSION
    assert meta["n_visible"] == 6 and meta["n_hidden"] == 4
    assert meta["job_id"] == "abc"
    assert meta["politica"]["sesgo_oculto_inicial"] == 0.0

    _assert_same(rbm, persistencia.load_from_dir(tmp_path))


def test_corrupt_bytes():
    with pytest.raises(PersistenciaError):
        persistencia.load(b"esto no es un npz")


def test_error_is_an_oserror():
    assert issubclass(PersistenciaError, OSError)


def test_schema_version_mismatch(tmp_path: Path):
    persistencia.save_to_dir(_trained_like(), tmp_path)
    meta = json.loads((tmp_path / "meta.json").read_text())
    meta["schema_version"] = persistencia.SCHEMA_VERSION + 1
    (tmp_path / "meta.json").write_text(json.dumps(meta))

    with pytest.raises(PersistenciaError, match="schema_version"):
        persistencia.load_from_dir(tmp_path)


def test_shape_mismatch_with_meta(tmp_path: Path):
    persistencia.save_to_dir(_trained_like(), tmp_path)
    meta = json.loads((tmp_path / "meta.json").read_text())
    meta["n_hidden"] = 5
    (tmp_path / "meta.json").write_text(json.dumps(meta))

    with pytest.raises(PersistenciaError):
        persistencia.load_from_dir(tmp_path)


def test_missing_files(tmp_path: Path):
    with pytest.raises(PersistenciaError):
        persistencia.load_from_dir(tmp_path / "no_existe")


def test_failed_load_leaves_model_untouched():
    rbm = _trained_like()
    W0 = rbm.W.copy()
    with pytest.raises(PersistenciaError):
        persistencia.load(b"\x00" * 10)
    np.testing.assert_array_equal(rbm.W, W0)


@pytest.mark.parametrize("politica", ["corrupta", {"escala_pesos": "abc"}, 5])
def test_corrupt_politica_is_a_persistence_error(tmp_path: Path, politica):
    persistencia.save_to_dir(_trained_like(), tmp_path)
    meta = json.loads((tmp_path / "meta.json").read_text())
    meta["politica"] = politica
    (tmp_path / "meta.json").write_text(json.dumps(meta))

    with pytest.raises(PersistenciaError, match="inválidos"):
        persistencia.load_from_dir(tmp_path)


def test_non_numeric_dimensions_are_a_persistence_error(tmp_path: Path):
    persistencia.save_to_dir(_trained_like(), tmp_path)
    meta = json.loads((tmp_path / "meta.json").read_text())
    meta["n_visible"] = "seis"
    (tmp_path / "meta.json").write_text(json.dumps(meta))

    with pytest.raises(PersistenciaError):
        persistencia.load_from_dir(tmp_path)
