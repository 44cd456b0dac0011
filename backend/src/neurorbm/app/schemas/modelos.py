# backend/src/neurorbm/app/schemas/modelos.py
from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field, model_validator


class DatasetInline(BaseModel):
    """Dataset enviado en el cuerpo (mismo contenido que el archivo de texto)."""
    num_classes: int = Field(ge=0, description="Número de clases (longitud del sufijo one-hot).")
    width: int = Field(ge=1)
    height: int = Field(ge=1)
    examples: List[List[int]] = Field(
        min_length=1,
        description="Ejemplos binarios (imagen aplanada + sufijo one-hot), agrupados por clase."
    )


class EntrenarRequest(BaseModel):
    data_ref: Optional[str] = Field(
        default=None,
        description="Ruta a un dataset en formato texto (num_clases, ancho, alto, [0, 1, ...] por línea)."
    )
    dataset: Optional[DatasetInline] = Field(
        default=None,
        description="Dataset inline; alternativa a data_ref."
    )
    n_hidden: int = Field(default=100, ge=1, le=10000, description="Neuronas ocultas.")
    learning_rate: float = Field(default=0.1, gt=0, le=10)
    epochs: int = Field(default=100, ge=1, le=100000, description="Número máximo de épocas.")
    error_check_interval: int = Field(default=1, ge=1, description="Épocas entre checkpoints.")
    termination_threshold: Optional[float] = Field(
        default=None, ge=0,
        description="Umbral de |F_val - F_train| para parada temprana (None = sin parada temprana)."
    )
    hidden_bias_init: float = Field(default=-1.0, description="Sesgo inicial de las ocultas (0.0 lo desactiva).")
    init_visible_biases: bool = True
    train_pct: float = Field(default=0.6, ge=0, le=1)
    test_pct: float = Field(default=0.2, ge=0, le=1)
    validation_pct: float = Field(default=0.2, ge=0, le=1)
    seed: Optional[int] = None

    @model_validator(mode="after")
    def _exactly_one_source(self):
        if (self.data_ref is None) == (self.dataset is None):
            raise ValueError("Indica exactamente uno de data_ref o dataset.")
        return self


class EntrenarResponse(BaseModel):
    job_id: str
    status: str
    message: str = "Entrenamiento lanzado"


class EpochItem(BaseModel):
    epoch: int
    free_energy_train: Optional[float] = None
    free_energy_val: Optional[float] = None
    free_energy_gap: Optional[float] = None
    recon_error: Optional[float] = None
    misclassified_train: Optional[int] = None
    misclassified_val: Optional[int] = None
    misclassified_test: Optional[int] = None
    time_sec: Optional[float] = None


class EstadoResponse(BaseModel):
    job_id: str
    status: str  # idle|running|paused|completed|aborted|unknown
    examples_processed: int = 0
    epochs_run: int = 0
    stopped_early: bool = False
    metrics: Dict[str, Optional[float]] = {}
    history: List[EpochItem] = []
    params: Dict[str, Any] = {}
    error: Optional[str] = None


class AccionResponse(BaseModel):
    job_id: str
    status: str
    message: str


class GuardarResponse(BaseModel):
    job_id: str
    run_dir: str
