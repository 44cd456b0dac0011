# backend/src/neurorbm/models/utils_boltzmann.py
from __future__ import annotations
import numpy as np
from typing import Sequence

__all__ = [
    "BIAS_CLAMP",
    "sigmoid",
    "softplus",
    "round_half_up",
    "as_binary_vector",
    "check_binary_matrix",
    "activation_frequencies",
    "initial_visible_biases",
]

# Magnitud máxima de un sesgo visible inicial (p=0 -> -7, p=1 -> +7).
BIAS_CLAMP = 7.0

def sigmoid(x: np.ndarray) -> np.ndarray:
    """Sigmoid numéricamente estable."""
    x = np.clip(x, -40.0, 40.0)
    return 1.0 / (1.0 + np.exp(-x, dtype=np.float64))

def softplus(x: np.ndarray) -> np.ndarray:
    """log(1 + exp(x)) sin overflow."""
    return np.logaddexp(0.0, np.asarray(x, dtype=np.float64))

def round_half_up(p: np.ndarray) -> np.ndarray:
    """Redondeo al entero más cercano con 0.5 -> 1 (np.rint redondea a par)."""
    return np.floor(np.asarray(p, dtype=np.float64) + 0.5).astype(np.int8)

def as_binary_vector(values: Sequence[int] | np.ndarray, name: str = "vector") -> np.ndarray:
    """Convierte a vector 1D int8 validando que solo contenga 0/1."""
    if values is None:
        raise ValueError(f"{name} no puede ser None")
    v = np.asarray(values)
    if v.ndim != 1:
        raise ValueError(f"{name} debe ser 1D (shape={v.shape})")
    if v.size and not np.all((v == 0) | (v == 1)):
        raise ValueError(f"{name} solo puede contener 0/1")
    return v.astype(np.int8, copy=True)

def check_binary_matrix(X: np.ndarray, name: str = "X") -> None:
    """Valida que el array sea 2D y binario (valores en {0,1})."""
    if not isinstance(X, np.ndarray):
        raise TypeError(f"{name} debe ser np.ndarray")
    if X.ndim != 2:
        raise ValueError(f"{name} debe ser 2D (shape=(n_samples, n_features))")
    if X.size and not np.all((X == 0) | (X == 1)):
        raise ValueError(f"{name} contiene valores distintos de 0/1")

def activation_frequencies(X: np.ndarray) -> np.ndarray:
    """Frecuencia empírica de activación de cada componente visible."""
    X = np.asarray(X, dtype=np.float64)
    if X.shape[0] == 0:
        raise ValueError("No se pueden estimar frecuencias de un conjunto vacío")
    return X.mean(axis=0)

def initial_visible_biases(X: np.ndarray, clamp: float = BIAS_CLAMP) -> np.ndarray:
    """
    Sesgos visibles iniciales b_i = log(p_i / (1 - p_i)), con p_i la frecuencia
    de activación de la unidad i en el conjunto de entrenamiento.
    p_i en {0, 1} produce -clamp / +clamp.
    """
    p = activation_frequencies(X)
    with np.errstate(divide="ignore"):
        logit = np.log(p) - np.log1p(-p)
    return np.clip(logit, -clamp, clamp)

