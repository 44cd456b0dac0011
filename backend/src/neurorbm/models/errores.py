# backend/src/neurorbm/models/errores.py
"""
Taxonomía de errores del núcleo RBM.

- Errores de construcción: ``ValueError`` / ``OperacionNoSoportadaError``.
- Estado de entrenamiento incompleto: ``EstadoFaltanteError`` (error de
  programación, no se reintenta).
- Persistencia: ``PersistenciaError`` (subclase de ``OSError``).
- Dimensiones de ejemplo vs. capa visible: ``DimensionIncompatibleError``.
"""

from __future__ import annotations

__all__ = [
    "OperacionNoSoportadaError",
    "EstadoFaltanteError",
    "DimensionIncompatibleError",
    "PersistenciaError",
]


class OperacionNoSoportadaError(RuntimeError):
    """Intento de cambiar la dimensión de una capa de neuronas."""


class EstadoFaltanteError(RuntimeError):
    """Actualización de pesos/sesgos sin haber registrado un paso de Gibbs completo."""


class DimensionIncompatibleError(ValueError):
    """El ejemplo no coincide con el tamaño de la capa visible del modelo."""


class PersistenciaError(OSError):
    """Fallo de lectura/escritura o snapshot estructuralmente incompatible."""
