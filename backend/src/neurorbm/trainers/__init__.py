# backend/src/neurorbm/trainers/__init__.py
from .rbm_trainer import EstadoEntrenamiento, ModeloOcupadoError, RBMTrainer

__all__ = ["RBMTrainer", "EstadoEntrenamiento", "ModeloOcupadoError"]
