# backend/src/neurorbm/models/capa_neuronas.py
from __future__ import annotations

from typing import Sequence

import numpy as np

from .errores import OperacionNoSoportadaError

__all__ = ["BinaryNeuronLayer"]


class BinaryNeuronLayer:
    """
    Capa (visible u oculta) de una RBM binaria.

    Guarda el estado 0/1 de cada neurona en un vector de tamaño fijo. El tamaño
    se decide al construir la capa y no cambia nunca. La capa no valida que los
    valores escritos sean 0/1: el modelo solo escribe 0 o 1.
    """

    def __init__(self, initial_values: Sequence[int] | np.ndarray):
        if initial_values is None:
            raise ValueError("Los valores de la capa no pueden ser None.")
        self._values = np.array(initial_values, dtype=np.int8).reshape(-1)

    @classmethod
    def zeros(cls, size: int) -> "BinaryNeuronLayer":
        if int(size) < 0:
            raise ValueError(f"Tamaño de capa inválido: {size}")
        return cls(np.zeros(int(size), dtype=np.int8))

    def _check_index(self, index: int) -> int:
        i = int(index)
        if not 0 <= i < self._values.shape[0]:
            raise IndexError(f"Índice {index} fuera de rango [0, {self._values.shape[0]})")
        return i

    def get(self, index: int) -> int:
        return int(self._values[self._check_index(index)])

    def set(self, index: int, value: int) -> None:
        self._values[self._check_index(index)] = value

    def as_vector(self) -> np.ndarray:
        return self._values.copy()

    def replace_all(self, values: Sequence[int] | np.ndarray) -> None:
        if values is None:
            raise ValueError("Los valores de la capa no pueden ser None.")
        new = np.array(values, dtype=np.int8).reshape(-1)
        if new.shape[0] != self._values.shape[0]:
            raise OperacionNoSoportadaError(
                f"Intento de cambiar la dimensión de la capa de {self._values.shape[0]} a {new.shape[0]}."
            )
        self._values = new

    def size(self) -> int:
        return int(self._values.shape[0])

    def __len__(self) -> int:
        return self.size()

    def __repr__(self) -> str:
        return f"BinaryNeuronLayer({self._values.tolist()})"
