# backend/src/neurorbm/data/etiquetas.py
"""
Sufijo de etiqueta one-hot al final de cada vector de ejemplo.

Un ejemplo etiquetado es ``[pixeles..., e_0, ..., e_{k-1}]`` con ``k`` el
número de clases y exactamente un ``e_c == 1``. Para clasificar se usa el
mismo vector con el sufijo a ceros y se deja que la RBM lo reconstruya.

Las clases se nombran con letras a partir de ``A`` (clase 0 -> "A").
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np

__all__ = [
    "ENCODING_BEGIN",
    "add_one_hot",
    "add_empty_encoding",
    "remove_encoding",
    "get_encoding",
    "clear_label_copy",
    "decode_label",
    "class_name",
    "class_index",
    "classify",
]

ENCODING_BEGIN = ord("A")


def _check_num_classes(vector: np.ndarray, num_classes: int) -> None:
    if num_classes < 0 or num_classes > vector.shape[0]:
        raise ValueError(
            f"num_classes={num_classes} inválido para un vector de longitud {vector.shape[0]}"
        )


def class_index(letter: str) -> int:
    """'A' -> 0, 'B' -> 1, ..."""
    if not letter:
        raise ValueError("Letra de clase vacía")
    return ord(letter[0].upper()) - ENCODING_BEGIN


def add_one_hot(image_vector, class_idx: int, num_classes: int) -> np.ndarray:
    v = np.asarray(image_vector, dtype=np.int8).reshape(-1)
    if not 0 <= class_idx < num_classes:
        raise ValueError(f"Clase {class_idx} fuera de rango [0, {num_classes})")
    encoding = np.zeros(num_classes, dtype=np.int8)
    encoding[class_idx] = 1
    return np.concatenate([v, encoding])


def add_empty_encoding(image_vector, num_classes: int) -> np.ndarray:
    v = np.asarray(image_vector, dtype=np.int8).reshape(-1)
    return np.concatenate([v, np.zeros(num_classes, dtype=np.int8)])


def remove_encoding(encoded_vector, num_classes: int) -> np.ndarray:
    v = np.asarray(encoded_vector).reshape(-1)
    _check_num_classes(v, num_classes)
    return v[: v.shape[0] - num_classes].copy()


def get_encoding(encoded_vector, num_classes: int) -> np.ndarray:
    """Últimos ``num_classes`` elementos del vector."""
    v = np.asarray(encoded_vector).reshape(-1)
    _check_num_classes(v, num_classes)
    return v[v.shape[0] - num_classes:].copy()


def clear_label_copy(example, num_classes: int) -> np.ndarray:
    """Copia del ejemplo con el sufijo de etiqueta a ceros."""
    v = np.array(example, copy=True).reshape(-1)
    _check_num_classes(v, num_classes)
    if num_classes:
        v[v.shape[0] - num_classes:] = 0
    return v


def decode_label(encoded_vector, num_classes: int) -> List[int]:
    """Índices de las clases activas en el sufijo (vacío si ninguna)."""
    return [int(i) for i in np.flatnonzero(get_encoding(encoded_vector, num_classes) == 1)]


def class_name(encoded_vector, num_classes: int) -> str:
    """Nombre(s) de la(s) clase(s) activas separados por espacio; '' si no hay ninguna."""
    return " ".join(chr(ENCODING_BEGIN + i) for i in decode_label(encoded_vector, num_classes))


def classify(model, image_vector, num_classes: int, rng: Optional[np.random.Generator] = None) -> dict:
    """
    Clasifica una imagen binaria (sin sufijo) con una RBM ya entrenada.

    Se añade el sufijo vacío, se reconstruye con ``model.reconstruct`` y se
    decodifica la etiqueta resultante.
    """
    query = add_empty_encoding(image_vector, num_classes)
    generated = model.reconstruct(query, rng)
    classes = decode_label(generated, num_classes)
    return {
        "reconstruction": remove_encoding(generated, num_classes),
        "classes": classes,
        "label": class_name(generated, num_classes),
    }
