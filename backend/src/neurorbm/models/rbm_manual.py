# backend/src/neurorbm/models/rbm_manual.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import numpy as np

from .capa_neuronas import BinaryNeuronLayer
from .errores import DimensionIncompatibleError, EstadoFaltanteError
from .utils_boltzmann import (
    as_binary_vector,
    round_half_up,
    sigmoid,
    softplus,
)


@dataclass(frozen=True)
class PoliticaInicializacion:
    """
    Valores iniciales de los parámetros de la RBM.

    escala_pesos          : desviación de la normal N(0, .) usada para W
    sesgo_oculto_inicial  : sesgo inicial de las ocultas (negativo desalienta
                            estados con todas las ocultas activas; 0.0 lo desactiva)
    sesgo_visible_inicial : sesgo inicial de las visibles (el trainer suele
                            sobrescribirlo con las frecuencias del dataset)
    """
    escala_pesos: float = 0.01
    sesgo_oculto_inicial: float = -1.0
    sesgo_visible_inicial: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {k: float(v) for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "PoliticaInicializacion":
        d = dict(d or {})
        return cls(**{k: float(v) for k, v in d.items() if k in cls.__dataclass_fields__})


class RestrictedBoltzmannMachine:
    """
    RBM binaria (visibles y ocultas en {0,1}) entrenada ejemplo a ejemplo con CD.

    Guarda W (n_visible x n_hidden), los sesgos de ambas capas y las dos capas
    de neuronas. Las probabilidades que consumen las ecuaciones de
    actualización NO se guardan al muestrear: el llamador las registra
    explícitamente con ``record_*``. Así se pueden ejecutar pasos de Gibbs
    extra entre el registro inicial y el final (CD-k).

    Un paso de CD-1:

        rbm.record_original_input(x)
        rbm.set_visible(x)
        rbm.record_initial_hidden_probabilities(rbm.sample_hidden_given_visible())
        rbm.record_final_visible_probabilities(rbm.settle_visible_given_hidden())
        rbm.record_final_hidden_probabilities(rbm.sample_hidden_given_visible())
        rbm.apply_weight_update(lr)
        rbm.apply_bias_update(lr)

    Aleatoriedad: cada operación estocástica acepta ``rng``; si no se pasa, se
    usa el generador propio del modelo (sembrable con ``seed``).
    """

    def __init__(
        self,
        visible: BinaryNeuronLayer,
        hidden: BinaryNeuronLayer,
        politica: Optional[PoliticaInicializacion] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        if visible is None or hidden is None:
            raise ValueError("Las capas de la RBM no pueden ser None.")
        self.visible = visible
        self.hidden = hidden
        self.n_visible = visible.size()
        self.n_hidden = hidden.size()
        self.politica = politica or PoliticaInicializacion()
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        self.W = self.rng.normal(
            0.0, self.politica.escala_pesos, size=(self.n_visible, self.n_hidden)
        )
        self.bh = np.full(self.n_hidden, self.politica.sesgo_oculto_inicial, dtype=np.float64)
        self.bv = np.full(self.n_visible, self.politica.sesgo_visible_inicial, dtype=np.float64)

        # Buffers de CD: v(0), h(0), h(n), v(n)
        self._original_input: Optional[np.ndarray] = None
        self._h0: Optional[np.ndarray] = None
        self._hn: Optional[np.ndarray] = None
        self._vn: Optional[np.ndarray] = None

    @classmethod
    def create(
        cls,
        n_visible: int,
        n_hidden: int,
        politica: Optional[PoliticaInicializacion] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ) -> "RestrictedBoltzmannMachine":
        return cls(
            BinaryNeuronLayer.zeros(n_visible),
            BinaryNeuronLayer.zeros(n_hidden),
            politica=politica,
            rng=rng,
            seed=seed,
        )

    # ---- Estado de capas / sesgos ----
    def set_visible(self, vector) -> None:
        """Fija (clamp) la capa visible al vector dado."""
        self.visible.replace_all(vector)

    def set_visible_biases(self, biases) -> None:
        b = np.asarray(biases, dtype=np.float64).reshape(-1)
        if b.shape[0] != self.n_visible:
            raise ValueError(
                f"Longitud inválida de sesgos visibles: se esperaban {self.n_visible}, llegaron {b.shape[0]}."
            )
        self.bv = b.copy()

    def is_compatible(self, example) -> bool:
        return np.asarray(example).reshape(-1).shape[0] == self.n_visible

    # ---- Energías de activación ----
    def _hidden_probabilities(self) -> np.ndarray:
        v = self.visible.as_vector().astype(np.float64)
        return sigmoid(v @ self.W + self.bh)

    def _visible_probabilities(self) -> np.ndarray:
        h = self.hidden.as_vector().astype(np.float64)
        return sigmoid(self.W @ h + self.bv)

    # ---- Gibbs ----
    def sample_hidden_given_visible(self, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Muestrea h|v y devuelve las probabilidades (no los estados)."""
        rng = rng if rng is not None else self.rng
        p = self._hidden_probabilities()
        self.hidden.replace_all((rng.random(self.n_hidden) < p).astype(np.int8))
        return p

    def sample_visible_given_hidden(self, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """
        Muestrea v|h y devuelve las probabilidades.
        Umbral inclusivo (random <= p), a diferencia de las ocultas (random < p).
        """
        rng = rng if rng is not None else self.rng
        p = self._visible_probabilities()
        self.visible.replace_all((rng.random(self.n_visible) <= p).astype(np.int8))
        return p

    def settle_visible_given_hidden(self) -> np.ndarray:
        """Actualización determinista (campo medio): v_i = round(p_i)."""
        p = self._visible_probabilities()
        self.visible.replace_all(round_half_up(p))
        return p

    # ---- Registro de buffers CD ----
    def record_original_input(self, vector) -> None:
        self._original_input = as_binary_vector(vector, "original_input").astype(np.float64)

    def record_initial_hidden_probabilities(self, p) -> None:
        self._h0 = np.array(p, dtype=np.float64).reshape(-1)

    def record_final_hidden_probabilities(self, p) -> None:
        self._hn = np.array(p, dtype=np.float64).reshape(-1)

    def record_final_visible_probabilities(self, p) -> None:
        self._vn = np.array(p, dtype=np.float64).reshape(-1)

    def _require_state(self, what: str) -> None:
        missing = [
            name
            for name, buf in (
                ("v(0)", self._original_input),
                ("h(0)", self._h0),
                ("h(n)", self._hn),
                ("v(n)", self._vn),
            )
            if buf is None
        ]
        if missing:
            raise EstadoFaltanteError(
                f"No se realizó ningún paso de Gibbs. Imposible actualizar {what} (faltan {', '.join(missing)})."
            )

    # ---- Actualizaciones CD ----
    def apply_weight_update(self, learning_rate: float) -> None:
        """W_ij += lr * (h0_j * v0_i - hn_j * vn_i)"""
        self._require_state("pesos")
        positive = np.outer(self._original_input, self._h0)
        negative = np.outer(self._vn, self._hn)
        self.W += float(learning_rate) * (positive - negative)

    def apply_bias_update(self, learning_rate: float) -> None:
        self._require_state("sesgos")
        lr = float(learning_rate)
        self.bv += lr * (self._original_input - self._vn)
        self.bh += lr * (self._h0 - self._hn)

    # ---- Diagnóstico ----
    def free_energy(self) -> float:
        """
        Energía libre del vector visible actual:
            F(v) = - b_v^T v - sum_j log(1 + exp(b_h_j + (v^T W)_j))
        Solo tiene sentido como comparación relativa (menor = más probable).
        """
        v = self.visible.as_vector().astype(np.float64)
        return float(-(self.bv @ v) - np.sum(softplus(v @ self.W + self.bh)))

    # ---- Inferencia ----
    def reconstruct(self, vector, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Clamp visible, muestrea ocultas una vez y asienta las visibles (campo medio)."""
        if not self.is_compatible(vector):
            raise DimensionIncompatibleError(
                f"Dimensiones incompatibles: el vector tiene {np.asarray(vector).size} "
                f"elementos y la capa visible {self.n_visible}."
            )
        self.set_visible(vector)
        self.sample_hidden_given_visible(rng)
        self.settle_visible_given_hidden()
        return self.visible.as_vector()

    def get_params(self) -> Dict[str, Any]:
        return {
            "n_visible": self.n_visible,
            "n_hidden": self.n_hidden,
            **self.politica.to_dict(),
        }
