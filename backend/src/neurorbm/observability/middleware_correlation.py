# backend/src/neurorbm/observability/middleware_correlation.py
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from starlette.requests import Request
from starlette.responses import Response
from .logging_context import correlation_id_var

HEADER = "X-Correlation-Id"

class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    - Lee o genera un X-Correlation-Id por request
    - Lo expone en request.state.correlation_id
    - Lo devuelve en la respuesta
    - Lo guarda en ContextVar mientras dura la request, para los logs de la API.
      Los jobs de entrenamiento usan su propio job_id en su hilo.
    """
    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(self, request: Request, call_next):
        cid = (request.headers.get(HEADER) or "").strip() or str(uuid.uuid4())
        request.state.correlation_id = cid

        token = correlation_id_var.set(cid)
        try:
            response: Response = await call_next(request)
        finally:
            correlation_id_var.reset(token)

        response.headers[HEADER] = cid
        return response
