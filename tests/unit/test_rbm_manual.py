"""
tests/unit/test_rbm_manual.py

Reglas de muestreo, ecuaciones CD y energía libre de RestrictedBoltzmannMachine.
"""
from __future__ import annotations

import numpy as np
import pytest

from neurorbm.models.errores import DimensionIncompatibleError, EstadoFaltanteError
from neurorbm.models.rbm_manual import PoliticaInicializacion, RestrictedBoltzmannMachine
from neurorbm.models.utils_boltzmann import sigmoid


class FixedRNG:
    """Generador mínimo que devuelve siempre el mismo valor en random()."""

    def __init__(self, value: float):
        self.value = value

    def random(self, n):
        return np.full(n, self.value)


def _zero_rbm(n_visible=4, n_hidden=3) -> RestrictedBoltzmannMachine:
    rbm = RestrictedBoltzmannMachine.create(
        n_visible, n_hidden, politica=PoliticaInicializacion(sesgo_oculto_inicial=0.0), seed=0
    )
    rbm.W[:] = 0.0
    return rbm


def _cd1(rbm: RestrictedBoltzmannMachine, x, lr: float) -> None:
    rbm.record_original_input(x)
    rbm.set_visible(x)
    rbm.record_initial_hidden_probabilities(rbm.sample_hidden_given_visible())
    rbm.record_final_visible_probabilities(rbm.settle_visible_given_hidden())
    rbm.record_final_hidden_probabilities(rbm.sample_hidden_given_visible())
    rbm.apply_weight_update(lr)
    rbm.apply_bias_update(lr)


def test_initial_parameters():
    rbm = RestrictedBoltzmannMachine.create(50, 40, seed=1)
    assert rbm.W.shape == (50, 40)
    assert np.all(rbm.bh == -1.0)
    assert np.all(rbm.bv == 0.0)
    assert abs(rbm.W.std() - 0.01) < 0.003
    assert rbm.visible.as_vector().tolist() == [0] * 50


def test_hidden_bias_can_start_at_zero():
    rbm = RestrictedBoltzmannMachine.create(3, 2, politica=PoliticaInicializacion(sesgo_oculto_inicial=0.0))
    assert np.all(rbm.bh == 0.0)


def test_same_seed_same_weights():
    a = RestrictedBoltzmannMachine.create(6, 4, seed=7)
    b = RestrictedBoltzmannMachine.create(6, 4, seed=7)
    np.testing.assert_array_equal(a.W, b.W)


def test_none_layers_rejected():
    with pytest.raises(ValueError):
        RestrictedBoltzmannMachine(None, None)


def test_sample_hidden_returns_probabilities():
    rbm = _zero_rbm()
    rbm.W[:] = 0.3
    rbm.set_visible([1, 0, 1, 0])
    p = rbm.sample_hidden_given_visible()
    np.testing.assert_allclose(p, sigmoid(np.full(3, 0.6)))
    assert set(rbm.hidden.as_vector().tolist()) <= {0, 1}


def test_hidden_threshold_is_strict_visible_is_inclusive():
    rbm = _zero_rbm()
    rng = FixedRNG(0.5)

    p_h = rbm.sample_hidden_given_visible(rng)
    np.testing.assert_allclose(p_h, 0.5)
    assert rbm.hidden.as_vector().tolist() == [0, 0, 0]

    p_v = rbm.sample_visible_given_hidden(rng)
    np.testing.assert_allclose(p_v, 0.5)
    assert rbm.visible.as_vector().tolist() == [1, 1, 1, 1]


def test_saturated_biases_fix_samples():
    rbm = _zero_rbm()
    rbm.bh[:] = 50.0
    rbm.sample_hidden_given_visible()
    assert rbm.hidden.as_vector().tolist() == [1, 1, 1]

    rbm.bv[:] = -50.0
    rbm.sample_visible_given_hidden()
    assert rbm.visible.as_vector().tolist() == [0, 0, 0, 0]


def test_settle_rounds_half_up():
    rbm = _zero_rbm()
    rbm.bv[:] = [0.0, -1.0, 1.0, 0.0]
    p = rbm.settle_visible_given_hidden()
    np.testing.assert_allclose(p, sigmoid(rbm.bv))
    assert rbm.visible.as_vector().tolist() == [1, 0, 1, 1]


@pytest.mark.parametrize("skip", ["original", "h0", "hn", "vn"])
def test_update_without_full_step_fails(skip):
    rbm = _zero_rbm()
    if skip != "original":
        rbm.record_original_input([1, 0, 1, 0])
    if skip != "h0":
        rbm.record_initial_hidden_probabilities(np.full(3, 0.5))
    if skip != "hn":
        rbm.record_final_hidden_probabilities(np.full(3, 0.5))
    if skip != "vn":
        rbm.record_final_visible_probabilities(np.full(4, 0.5))

    W0 = rbm.W.copy()
    with pytest.raises(EstadoFaltanteError):
        rbm.apply_weight_update(0.1)
    with pytest.raises(EstadoFaltanteError):
        rbm.apply_bias_update(0.1)
    np.testing.assert_array_equal(rbm.W, W0)


def test_weight_and_bias_update_equations():
    rbm = _zero_rbm()
    v0 = np.array([1, 0, 1, 1.0])
    h0 = np.array([0.2, 0.9, 0.5])
    vn = np.array([0.7, 0.1, 0.4, 0.6])
    hn = np.array([0.3, 0.8, 0.1])
    rbm.record_original_input(v0.astype(int))
    rbm.record_initial_hidden_probabilities(h0)
    rbm.record_final_visible_probabilities(vn)
    rbm.record_final_hidden_probabilities(hn)

    rbm.apply_weight_update(0.5)
    rbm.apply_bias_update(0.5)

    np.testing.assert_allclose(rbm.W, 0.5 * (np.outer(v0, h0) - np.outer(vn, hn)))
    np.testing.assert_allclose(rbm.bv, 0.5 * (v0 - vn))
    np.testing.assert_allclose(rbm.bh, 0.5 * (h0 - hn))


def test_zero_input_has_no_positive_phase():
    rbm = _zero_rbm()
    _cd1(rbm, [0, 0, 0, 0], 0.1)
    # v(0) = 0 anula el término positivo; solo queda -lr * vn hn^T
    np.testing.assert_allclose(rbm.W, -0.1 * np.outer(np.full(4, 0.5), np.full(3, 0.5)))


def test_free_energy_matches_formula():
    rbm = RestrictedBoltzmannMachine.create(5, 3, seed=3)
    rbm.bv[:] = [0.1, -0.2, 0.3, 0.0, 0.5]
    v = np.array([1, 0, 1, 1, 0])
    rbm.set_visible(v)
    expected = -(rbm.bv @ v) - np.sum(np.log1p(np.exp(v @ rbm.W + rbm.bh)))
    assert rbm.free_energy() == pytest.approx(expected)


def test_free_energy_of_empty_model():
    rbm = _zero_rbm(n_visible=4, n_hidden=3)
    assert rbm.free_energy() == pytest.approx(-3 * np.log(2.0))


def test_free_energy_is_finite_for_large_fields():
    rbm = _zero_rbm()
    rbm.W[:] = 500.0
    rbm.set_visible([1, 1, 1, 1])
    assert np.isfinite(rbm.free_energy())


def test_training_lowers_free_energy_of_pattern():
    rbm = RestrictedBoltzmannMachine.create(6, 4, seed=0)
    x = np.array([1, 1, 0, 0, 1, 0])
    rbm.set_visible(x)
    before = rbm.free_energy()
    for _ in range(50):
        _cd1(rbm, x, 0.1)
    rbm.set_visible(x)
    assert rbm.free_energy() < before


def test_reconstruct_checks_dimension():
    rbm = _zero_rbm()
    with pytest.raises(DimensionIncompatibleError):
        rbm.reconstruct([1, 0])
    out = rbm.reconstruct([1, 0, 1, 0])
    assert out.shape == (4,)


def test_set_visible_biases_length():
    rbm = _zero_rbm()
    with pytest.raises(ValueError):
        rbm.set_visible_biases([0.0, 1.0])


def test_hidden_probabilities_depend_only_on_visible_state():
    rbm = RestrictedBoltzmannMachine.create(5, 4, seed=9)
    rbm.set_visible([1, 0, 1, 0, 1])
    p1 = rbm.sample_hidden_given_visible()
    p2 = rbm.sample_hidden_given_visible()
    np.testing.assert_array_equal(p1, p2)


def test_settle_is_deterministic():
    rbm = RestrictedBoltzmannMachine.create(5, 4, seed=9)
    rbm.hidden.replace_all([1, 0, 1, 1])
    p1 = rbm.settle_visible_given_hidden()
    v1 = rbm.visible.as_vector()
    p2 = rbm.settle_visible_given_hidden()
    np.testing.assert_array_equal(p1, p2)
    np.testing.assert_array_equal(v1, rbm.visible.as_vector())
