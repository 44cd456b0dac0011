# backend/src/neurorbm/models/__init__.py
from .capa_neuronas import BinaryNeuronLayer
from .errores import (
    DimensionIncompatibleError,
    EstadoFaltanteError,
    OperacionNoSoportadaError,
    PersistenciaError,
)
from .rbm_manual import PoliticaInicializacion, RestrictedBoltzmannMachine

__all__ = [
    "BinaryNeuronLayer",
    "RestrictedBoltzmannMachine",
    "PoliticaInicializacion",
    "OperacionNoSoportadaError",
    "EstadoFaltanteError",
    "DimensionIncompatibleError",
    "PersistenciaError",
]
