# backend/src/neurorbm/app/schemas/prediccion.py
from pydantic import BaseModel, Field
from typing import List


class ClasificarRequest(BaseModel):
    job_id: str
    imagen: List[int] = Field(min_length=1, description="Imagen binaria aplanada, sin sufijo de etiqueta.")


class ClasificarResponse(BaseModel):
    job_id: str
    clases: List[int]
    etiqueta: str
    reconstruccion: List[int]
    correlation_id: str
