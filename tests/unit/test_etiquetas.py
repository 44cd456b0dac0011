"""
tests/unit/test_etiquetas.py

Sufijo one-hot de etiqueta y clasificación por reconstrucción.
"""
import numpy as np
import pytest

from neurorbm.data import etiquetas


def test_add_and_remove_encoding():
    v = etiquetas.add_one_hot([1, 0, 1], 2, 3)
    assert v.tolist() == [1, 0, 1, 0, 0, 1]
    assert etiquetas.remove_encoding(v, 3).tolist() == [1, 0, 1]
    assert etiquetas.get_encoding(v, 3).tolist() == [0, 0, 1]
    assert etiquetas.add_empty_encoding([1, 1], 2).tolist() == [1, 1, 0, 0]


def test_add_one_hot_range():
    with pytest.raises(ValueError):
        etiquetas.add_one_hot([1, 0], 3, 3)


def test_clear_label_copy_does_not_touch_original():
    x = np.array([1, 1, 0, 1], dtype=np.int8)
    cleared = etiquetas.clear_label_copy(x, 2)
    assert cleared.tolist() == [1, 1, 0, 0]
    assert x.tolist() == [1, 1, 0, 1]
    assert etiquetas.clear_label_copy(x, 0).tolist() == x.tolist()


def test_decode_and_class_name():
    assert etiquetas.decode_label([1, 0, 0, 1, 0], 3) == [1]
    assert etiquetas.class_name([1, 0, 0, 1, 0], 3) == "B"
    assert etiquetas.class_name([1, 1, 0, 1], 3) == "A C"
    assert etiquetas.class_name([1, 0, 0, 0], 3) == ""
    assert etiquetas.class_index("c") == 2


def test_num_classes_longer_than_vector():
    with pytest.raises(ValueError):
        etiquetas.get_encoding([1, 0], 3)


class EchoLabelModel:
    """Modelo falso: 'reconstruye' poniendo la clase 1 en el sufijo."""

    def __init__(self):
        self.received = None

    def reconstruct(self, vector, rng=None):
        self.received = np.asarray(vector).copy()
        out = self.received.copy()
        out[-2:] = [0, 1]
        return out


def test_classify_queries_with_empty_suffix():
    model = EchoLabelModel()
    out = etiquetas.classify(model, [1, 0, 1, 1], 2)
    assert model.received.tolist() == [1, 0, 1, 1, 0, 0]
    assert out["classes"] == [1]
    assert out["label"] == "B"
    assert out["reconstruction"].tolist() == [1, 0, 1, 1]
