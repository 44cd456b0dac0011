# backend/src/neurorbm/app/logging_config.py
import logging
import logging.config

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,  # mantiene loggers de uvicorn/fastapi
    "filters": {
        "cid": {
            "()": "neurorbm.observability.logging_filters.CorrelationIdLogFilter"
        }
    },
    "formatters": {
        "default": {
            # cid = job_id en el hilo de entrenamiento, X-Correlation-Id en la API
            "format": "%(asctime)s %(levelname)s [cid=%(correlation_id)s] %(name)s: %(message)s"
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "INFO",
            "filters": ["cid"],
            "formatter": "default",
        },
    },
    "root": {
        "level": "INFO",
        "handlers": ["console"]
    },
    "loggers": {
        "uvicorn.error": {
            "level": "INFO",
            "handlers": ["console"],
            "propagate": False
        },
        "uvicorn.access": {
            "level": "INFO",
            "handlers": ["console"],
            "propagate": False
        },
        "neurorbm": {
            "level": "INFO",
            "handlers": ["console"],
            "propagate": False
        }
    }
}


def setup_logging(level: str | None = None) -> None:
    """Aplica LOGGING; ``level`` sobrescribe el nivel del logger ``neurorbm``."""
    config = {**LOGGING, "loggers": {k: dict(v) for k, v in LOGGING["loggers"].items()}}
    if level:
        config["loggers"]["neurorbm"]["level"] = level.upper()
    logging.config.dictConfig(config)
