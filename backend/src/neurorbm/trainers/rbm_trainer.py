# backend/src/neurorbm/trainers/rbm_trainer.py
"""
Entrenamiento CD-1 de la RBM binaria, ejemplo a ejemplo.

Ciclo de vida de un trainer::

    idle -> running -> {paused <-> running} -> completed | aborted

- ``train(...)`` ejecuta en el hilo llamador; ``start(...)`` lanza el único
  hilo trabajador y ``join()`` espera su resultado (re-lanza su excepción).
- ``pause()``/``resume()`` actúan sobre un único punto de suspensión que se
  revisa antes de cada ejemplo: una actualización en curso nunca se
  interrumpe y al reanudar se continúa con el siguiente ejemplo.
- Cada ``error_check_interval`` épocas se calculan las energías libres
  medias de train/validación, se notifica a los callbacks
  ``cb(train_fe, val_fe)`` y se publica ``training.epoch_end`` en el bus.
  Si ``|val_fe - train_fe| > termination_threshold`` se detiene el
  entrenamiento (parada temprana).
"""

from __future__ import annotations

import contextlib
import enum
import json
import logging
import threading
import time
import uuid
from pathlib import Path
from typing import Any, Callable, ClassVar, Dict, Iterator, List, Optional, Set

import numpy as np

from ..data.etiquetas import clear_label_copy
from ..models.errores import DimensionIncompatibleError
from ..models.observer.eventos_entrenamiento import (
    emit_epoch_end,
    emit_training_completed,
    emit_training_failed,
    emit_training_paused,
    emit_training_resumed,
    emit_training_started,
)
from ..models.rbm_manual import RestrictedBoltzmannMachine
from ..models.utils_boltzmann import check_binary_matrix, initial_visible_biases
from ..observability.logging_context import correlation_id_var
from ..utils.runs_io import json_safe

Callback = Callable[[float, float], None]

logger = logging.getLogger("neurorbm.trainers.rbm_trainer")


class EstadoEntrenamiento(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABORTED = "aborted"


_STOPPED = (EstadoEntrenamiento.PAUSED, EstadoEntrenamiento.COMPLETED, EstadoEntrenamiento.ABORTED)


class ModeloOcupadoError(RuntimeError):
    """El trabajador puede estar modificando el modelo."""


class RBMTrainer:
    # ids de modelos con una ejecución activa (una sola por modelo)
    _active_models: ClassVar[Set[int]] = set()
    _active_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(
        self,
        model: RestrictedBoltzmannMachine,
        learning_rate: float = 0.1,
        max_epochs: int = 1000,
        num_classes: int = 0,
        error_check_interval: int = 1,
        termination_threshold: Optional[float] = None,
        init_visible_biases: bool = True,
        rng: Optional[np.random.Generator] = None,
        job_id: Optional[str] = None,
        out_dir: Optional[str | Path] = None,
        model_name: str = "rbm_binaria",
    ):
        if model is None:
            raise ValueError("El trainer necesita un modelo.")
        if learning_rate <= 0:
            raise ValueError(f"learning_rate debe ser > 0 (llegó {learning_rate})")
        if max_epochs < 0:
            raise ValueError(f"max_epochs debe ser >= 0 (llegó {max_epochs})")
        if num_classes < 0:
            raise ValueError(f"num_classes debe ser >= 0 (llegó {num_classes})")
        if error_check_interval < 1:
            raise ValueError(f"error_check_interval debe ser >= 1 (llegó {error_check_interval})")

        self.model = model
        self.learning_rate = float(learning_rate)
        self.max_epochs = int(max_epochs)
        self.num_classes = int(num_classes)
        self.error_check_interval = int(error_check_interval)
        self.termination_threshold = termination_threshold
        self.init_visible_biases = init_visible_biases
        self.rng = rng if rng is not None else model.rng
        self.job_id = job_id or str(uuid.uuid4())
        self.out_dir = Path(out_dir) if out_dir is not None else None
        self.model_name = model_name

        self.callbacks: List[Callback] = []
        self.history: List[Dict[str, float]] = []
        self.examples_processed = 0
        self.epoch = 0
        self.epochs_completed = 0
        self.stopped_early = False
        self.error: Optional[BaseException] = None
        self.result: Optional[Dict[str, Any]] = None

        self._state = EstadoEntrenamiento.IDLE
        self._pause_requested = False
        self._cond = threading.Condition()
        self._thread: Optional[threading.Thread] = None

    # ---- Observadores ----
    def add_callback(self, cb: Callback) -> None:
        self.callbacks.append(cb)

    def remove_callback(self, cb: Callback) -> bool:
        try:
            self.callbacks.remove(cb)
        except ValueError:
            return False
        return True

    def _run_callbacks(self, train_fe: float, val_fe: float) -> None:
        for cb in list(self.callbacks):
            cb(train_fe, val_fe)

    # ---- Estado / pausa ----
    @property
    def state(self) -> EstadoEntrenamiento:
        with self._cond:
            return self._state

    def _set_state(self, state: EstadoEntrenamiento) -> None:
        with self._cond:
            self._state = state
            self._cond.notify_all()

    def is_paused(self) -> bool:
        return self.state is EstadoEntrenamiento.PAUSED

    def pause(self) -> None:
        """Pide la pausa; el trabajador se detiene antes del siguiente ejemplo."""
        with self._cond:
            self._pause_requested = True
            self._cond.notify_all()

    def resume(self) -> None:
        with self._cond:
            self._pause_requested = False
            self._cond.notify_all()

    def wait_for(self, *states: EstadoEntrenamiento, timeout: Optional[float] = None) -> bool:
        """Bloquea hasta que el trainer esté en alguno de ``states``."""
        with self._cond:
            return self._cond.wait_for(lambda: self._state in states, timeout=timeout)

    @contextlib.contextmanager
    def hold_model(self) -> Iterator[RestrictedBoltzmannMachine]:
        """
        Acceso exclusivo al modelo desde otro hilo (guardar, clasificar).

        Solo se concede con el trabajador detenido (paused, completed o
        aborted). Mientras dura, ``resume()`` queda bloqueado, así que el
        trabajador no vuelve a tocar el modelo hasta salir del bloque.
        """
        with self._cond:
            if self._state not in _STOPPED:
                raise ModeloOcupadoError(
                    f"El modelo no está detenido (estado={self._state.value})."
                )
            yield self.model

    def _suspension_point(self) -> None:
        with self._cond:
            if not self._pause_requested:
                return
            self._state = EstadoEntrenamiento.PAUSED
            self._cond.notify_all()
        logger.info("Entrenamiento en pausa (época %d, %d ejemplos)", self.epoch, self.examples_processed)
        emit_training_paused(self.job_id, self.epoch, self.examples_processed)

        with self._cond:
            self._cond.wait_for(lambda: not self._pause_requested)
            self._state = EstadoEntrenamiento.RUNNING
            self._cond.notify_all()
        logger.info("Entrenamiento reanudado (época %d, %d ejemplos)", self.epoch, self.examples_processed)
        emit_training_resumed(self.job_id, self.epoch, self.examples_processed)

    # ---- Datos ----
    def _prepare_set(self, X, name: str) -> np.ndarray:
        X = np.asarray(X)
        if X.ndim == 1 and X.size == 0:
            X = X.reshape(0, self.model.n_visible)
        check_binary_matrix(X, name)
        if X.shape[1] != self.model.n_visible:
            raise DimensionIncompatibleError(
                f"{name}: los ejemplos tienen {X.shape[1]} elementos y la capa visible {self.model.n_visible}."
            )
        return X.astype(np.int8)

    def _per_class(self, n: int) -> int:
        k = max(1, self.num_classes)
        if n % k:
            raise ValueError(f"El conjunto de entrenamiento ({n}) no es divisible entre {k} clases.")
        return n // k

    # ---- Ejecución ----
    def _begin(self) -> None:
        with self._cond:
            if self._state is not EstadoEntrenamiento.IDLE:
                raise RuntimeError(f"El trainer ya fue usado (estado={self._state.value}).")
            with RBMTrainer._active_lock:
                if id(self.model) in RBMTrainer._active_models:
                    raise RuntimeError("Ya hay un entrenamiento activo sobre este modelo.")
                RBMTrainer._active_models.add(id(self.model))
            self._state = EstadoEntrenamiento.RUNNING
            self._cond.notify_all()

    def _release(self) -> None:
        with RBMTrainer._active_lock:
            RBMTrainer._active_models.discard(id(self.model))

    def train(self, train_set, validation_set, test_set=None) -> Dict[str, Any]:
        """Entrena de forma síncrona y devuelve el resultado de la ejecución."""
        X_train = self._prepare_set(train_set, "train")
        X_val = self._prepare_set(validation_set, "validation")
        X_test = self._prepare_set(test_set, "test") if test_set is not None else None
        per_class = self._per_class(X_train.shape[0])
        self._begin()
        return self._run(X_train, X_val, X_test, per_class)

    def start(self, train_set, validation_set, test_set=None) -> threading.Thread:
        """Lanza el entrenamiento en su hilo trabajador dedicado."""
        X_train = self._prepare_set(train_set, "train")
        X_val = self._prepare_set(validation_set, "validation")
        X_test = self._prepare_set(test_set, "test") if test_set is not None else None
        per_class = self._per_class(X_train.shape[0])
        self._begin()
        self._thread = threading.Thread(
            target=self._run_worker,
            args=(X_train, X_val, X_test, per_class),
            name=f"rbm-trainer-{self.job_id[:8]}",
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def _run_worker(self, X_train, X_val, X_test, per_class) -> None:
        try:
            self._run(X_train, X_val, X_test, per_class)
        except Exception as e:  # se re-lanza en join()
            self.error = e

    def join(self, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        if self._thread is not None:
            self._thread.join(timeout)
        if self.error is not None:
            raise self.error
        return self.result

    def _run(self, X_train, X_val, X_test, per_class: int) -> Dict[str, Any]:
        token = correlation_id_var.set(self.job_id)
        try:
            emit_training_started(self.job_id, self.model_name, self.params())
            logger.info(
                "Inicio de entrenamiento: %d ejemplos, %d clases, %d épocas, lr=%.4g",
                X_train.shape[0], self.num_classes, self.max_epochs, self.learning_rate,
            )
            if self.init_visible_biases and X_train.shape[0] > 0:
                self.model.set_visible_biases(initial_visible_biases(X_train))

            k = max(1, self.num_classes)
            for epoch in range(self.max_epochs):
                self.epoch = epoch
                t0 = time.time()
                sq_error = 0.0
                for i in range(per_class):
                    for c in range(k):
                        self._suspension_point()
                        sq_error += self._train_example(X_train[c * per_class + i])
                self.epochs_completed += 1
                recon_error = sq_error / max(1, X_train.shape[0])
                logger.debug("Época %d: error de reconstrucción %.6f", epoch, recon_error)

                if epoch % self.error_check_interval == 0:
                    gap = self._checkpoint(epoch, X_train, X_val, X_test, recon_error, time.time() - t0)
                    if self.termination_threshold is not None and gap > self.termination_threshold:
                        self.stopped_early = True
                        logger.info("Parada temprana en época %d: |val - train| = %.4f", epoch, gap)
                        break

            # resultado y modelo libres antes de despertar a quien espere el estado final
            self.result = self._result(EstadoEntrenamiento.COMPLETED)
            self._release()
            self._set_state(EstadoEntrenamiento.COMPLETED)
            emit_training_completed(self.job_id, self.result["metrics"])
            logger.info(
                "Entrenamiento completado: %d épocas, %d ejemplos procesados",
                self.result["epochs_run"], self.examples_processed,
            )
            return self.result
        except Exception as e:
            self.error = e
            self.result = self._result(EstadoEntrenamiento.ABORTED)
            self._release()
            self._set_state(EstadoEntrenamiento.ABORTED)
            emit_training_failed(self.job_id, str(e))
            logger.exception("Entrenamiento abortado en época %d", self.epoch)
            raise
        finally:
            self._release()
            with self._cond:
                self._pause_requested = False
            correlation_id_var.reset(token)

    def _train_example(self, example: np.ndarray) -> float:
        """Un paso de CD-1. Devuelve el error cuadrático de reconstrucción."""
        rbm = self.model
        rbm.record_original_input(example)
        rbm.set_visible(example)
        rbm.record_initial_hidden_probabilities(rbm.sample_hidden_given_visible(self.rng))
        rbm.record_final_visible_probabilities(rbm.settle_visible_given_hidden())
        rbm.record_final_hidden_probabilities(rbm.sample_hidden_given_visible(self.rng))
        rbm.apply_weight_update(self.learning_rate)
        rbm.apply_bias_update(self.learning_rate)
        self.examples_processed += 1
        diff = example.astype(np.float64) - rbm.visible.as_vector()
        return float(diff @ diff)

    # ---- Diagnóstico ----
    def average_free_energy(self, X: np.ndarray) -> float:
        """
        Energía libre media del conjunto; NaN si está vacío.
        Por ejemplo: clamp visible, una muestra de ocultas y ``free_energy()``.
        """
        if X.shape[0] == 0:
            return float("nan")
        total = 0.0
        for x in X:
            self.model.set_visible(x)
            self.model.sample_hidden_given_visible(self.rng)
            total += self.model.free_energy()
        return total / X.shape[0]

    def count_misclassified(self, X: Optional[np.ndarray]) -> int:
        """Ejemplos cuya etiqueta reconstruida (sufijo sin pista) no coincide."""
        if X is None or self.num_classes == 0:
            return 0
        k = self.num_classes
        wrong = 0
        for x in X:
            rec = self.model.reconstruct(clear_label_copy(x, k), self.rng)
            if not np.array_equal(rec[-k:], x[-k:]):
                wrong += 1
        return wrong

    def _checkpoint(self, epoch, X_train, X_val, X_test, recon_error: float, elapsed: float) -> float:
        train_fe = self.average_free_energy(X_train)
        val_fe = self.average_free_energy(X_val)
        gap = abs(val_fe - train_fe)
        record: Dict[str, float] = {
            "epoch": epoch,
            "free_energy_train": train_fe,
            "free_energy_val": val_fe,
            "free_energy_gap": gap,
            "recon_error": recon_error,
            "time_sec": elapsed,
        }
        if self.num_classes > 0:
            record["misclassified_train"] = self.count_misclassified(X_train)
            record["misclassified_val"] = self.count_misclassified(X_val)
            if X_test is not None:
                record["misclassified_test"] = self.count_misclassified(X_test)
        self.history.append(record)

        self._run_callbacks(train_fe, val_fe)
        emit_epoch_end(self.job_id, epoch, train_fe, val_fe, record)
        self._save_metrics()
        logger.info(
            "Checkpoint época %d: F_train=%.4f F_val=%.4f |dif|=%.4f",
            epoch, train_fe, val_fe, gap,
        )
        return gap

    def _save_metrics(self) -> None:
        if self.out_dir is None:
            return
        self.out_dir.mkdir(parents=True, exist_ok=True)
        with (self.out_dir / "metrics_rbm.json").open("w", encoding="utf-8") as f:
            json.dump(json_safe(self.history), f, indent=2)

    # ---- Resultado ----
    def params(self) -> Dict[str, Any]:
        return {
            **self.model.get_params(),
            "learning_rate": self.learning_rate,
            "max_epochs": self.max_epochs,
            "num_classes": self.num_classes,
            "error_check_interval": self.error_check_interval,
            "termination_threshold": self.termination_threshold,
            "init_visible_biases": self.init_visible_biases,
        }

    def summary(self) -> Dict[str, Any]:
        """Resultado parcial (o final) con el estado actual del trainer."""
        return self.result if self.result is not None else self._result(self.state)

    def _result(self, status: EstadoEntrenamiento) -> Dict[str, Any]:
        last = self.history[-1] if self.history else {}
        return {
            "job_id": self.job_id,
            "status": status.value,
            "stopped_early": self.stopped_early,
            "epochs_run": self.epochs_completed,
            "examples_processed": self.examples_processed,
            "metrics": dict(last),
            "history": list(self.history),
        }
