from typing import Dict, Any
from ...observability.bus_eventos import BUS

TRAINING_STARTED = "training.started"
TRAINING_EPOCH_END = "training.epoch_end"
TRAINING_PAUSED = "training.paused"
TRAINING_RESUMED = "training.resumed"
TRAINING_COMPLETED = "training.completed"
TRAINING_FAILED = "training.failed"

TRAINING_TOPICS = (
    TRAINING_STARTED,
    TRAINING_EPOCH_END,
    TRAINING_PAUSED,
    TRAINING_RESUMED,
    TRAINING_COMPLETED,
    TRAINING_FAILED,
)

def emit_training_started(job_id: str, modelo: str, params: Dict[str, Any]):
    BUS.publish(TRAINING_STARTED, {"correlation_id": job_id, "model": modelo, "params": params})

def emit_epoch_end(job_id: str, epoch: int, train_metric: float, validation_metric: float, metrics: Dict[str, float]):
    BUS.publish(TRAINING_EPOCH_END, {
        "correlation_id": job_id,
        "epoch": epoch,
        "train_metric": train_metric,
        "validation_metric": validation_metric,
        "metrics": metrics,
    })

def emit_training_paused(job_id: str, epoch: int, examples_processed: int):
    BUS.publish(TRAINING_PAUSED, {"correlation_id": job_id, "epoch": epoch, "examples_processed": examples_processed})

def emit_training_resumed(job_id: str, epoch: int, examples_processed: int):
    BUS.publish(TRAINING_RESUMED, {"correlation_id": job_id, "epoch": epoch, "examples_processed": examples_processed})

def emit_training_completed(job_id: str, metrics: Dict[str, float]):
    BUS.publish(TRAINING_COMPLETED, {"correlation_id": job_id, "final_metrics": metrics})

def emit_training_failed(job_id: str, error_msg: str):
    BUS.publish(TRAINING_FAILED, {"correlation_id": job_id, "error": error_msg})
