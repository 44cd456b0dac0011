# backend/src/neurorbm/__init__.py
"""
NeuroRBM: RBM binaria entrenada con Contrastive Divergence (CD-1).

Subpaquetes:
- models        : capas, RBM, persistencia y eventos de entrenamiento
- trainers      : bucle de entrenamiento con pausa/reanudación y parada temprana
- data          : datasets binarios y sufijo de etiquetas one-hot
- observability : bus de eventos y logging con correlation_id
- utils         : rutas y artifacts de runs
- app           : API FastAPI y comandos de línea
"""

__version__ = "0.1.0"
