# backend/src/neurorbm/app/routers/prediccion.py
import numpy as np
from fastapi import APIRouter, HTTPException, Request

from neurorbm.app.schemas.prediccion import ClasificarRequest, ClasificarResponse
from neurorbm.app.routers.modelos import get_job
from neurorbm.data.etiquetas import classify
from neurorbm.trainers.rbm_trainer import ModeloOcupadoError

router = APIRouter(tags=["prediccion"])


@router.post("/clasificar", response_model=ClasificarResponse)
def clasificar(req: Request, body: ClasificarRequest):
    """
    Reconstruye la imagen (sufijo de etiqueta a ceros) con la RBM del job
    y decodifica la etiqueta generada.
    """
    cid = getattr(req.state, "correlation_id", "-")
    st = get_job(body.job_id)
    trainer = st["trainer"]

    try:
        with trainer.hold_model() as model:
            # generador propio: el del trainer solo lo usa el trabajador
            out = classify(model, body.imagen, st["num_classes"], rng=np.random.default_rng())
    except ModeloOcupadoError:
        raise HTTPException(status_code=409, detail="El modelo está entrenando; pausa el job para clasificar")
    except ValueError as e:  # incluye DimensionIncompatibleError
        raise HTTPException(status_code=422, detail=str(e))

    return ClasificarResponse(
        job_id=body.job_id,
        clases=out["classes"],
        etiqueta=out["label"],
        reconstruccion=[int(v) for v in out["reconstruction"]],
        correlation_id=cid,
    )
