"""
Entrena una RBM binaria (NumPy, CD-1 ejemplo a ejemplo) sobre un dataset de
imágenes binarias etiquetadas.

Resumen de funcionalidad
------------------------

- Lee un dataset en formato texto (``num_clases``, ``ancho``, ``alto`` y un
  ejemplo ``[0, 1, ...]`` por línea).
- Lo divide por clase en entrenamiento/test/validación (60/20/20 por defecto).
- Entrena con :class:`~neurorbm.trainers.rbm_trainer.RBMTrainer`, con
  checkpoints de energía libre y parada temprana opcional.
- Guarda el run (modelo, parámetros, métricas e historial) en ``--out-dir``
  y escribe un reporte JSON en stdout.

El punto de entrada principal es la función :func:`main`.
"""

from __future__ import annotations

import argparse
import json
import logging
from typing import Optional, Sequence

import numpy as np

from neurorbm.app.logging_config import setup_logging
from neurorbm.data.dataset import load_dataset, split_dataset
from neurorbm.models.rbm_manual import PoliticaInicializacion, RestrictedBoltzmannMachine
from neurorbm.observability.destinos.log_handler import wire_logging_destination
from neurorbm.observability.logging_context import install_logrecord_factory
from neurorbm.trainers.rbm_trainer import RBMTrainer
from neurorbm.utils.runs_io import json_safe, save_run

logger = logging.getLogger("neurorbm.jobs.train_rbm")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Entrenamiento de una RBM binaria con CD-1 y parada temprana por energía libre."
    )
    ap.add_argument("--in", dest="src", required=True, help="Ruta al dataset en formato texto")
    ap.add_argument("--out-dir", required=True, help="Directorio del run (modelo, métricas, historial)")

    ap.add_argument("--n-hidden", type=int, default=100, help="Número de neuronas ocultas")
    ap.add_argument("--lr", type=float, default=0.1, help="Learning rate")
    ap.add_argument("--epochs", type=int, default=1000, help="Número máximo de épocas")
    ap.add_argument(
        "--error-interval",
        type=int,
        default=1,
        help="Épocas entre checkpoints de energía libre",
    )
    ap.add_argument(
        "--term-threshold",
        type=float,
        default=None,
        help="Parada temprana si |F_val - F_train| supera este umbral",
    )
    ap.add_argument(
        "--hidden-bias-init",
        type=float,
        default=-1.0,
        help="Sesgo inicial de las ocultas (0 lo desactiva)",
    )
    ap.add_argument(
        "--no-visible-bias-init",
        action="store_true",
        help="No inicializar los sesgos visibles con log(p/(1-p))",
    )
    ap.add_argument("--seed", type=int, default=None, help="Seed para reproducibilidad")
    ap.add_argument("--log-level", default="INFO", help="Nivel de logging del paquete neurorbm")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Punto de entrada del script: carga y divide el dataset, entrena y
    guarda el run. Devuelve 0 si el entrenamiento terminó.
    """
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level)
    install_logrecord_factory()
    wire_logging_destination()

    ds = load_dataset(args.src)
    rng = np.random.default_rng(args.seed)
    parts = split_dataset(ds, rng=rng)

    rbm = RestrictedBoltzmannMachine.create(
        ds.n_visible,
        args.n_hidden,
        politica=PoliticaInicializacion(sesgo_oculto_inicial=args.hidden_bias_init),
        rng=rng,
    )
    trainer = RBMTrainer(
        rbm,
        learning_rate=args.lr,
        max_epochs=args.epochs,
        num_classes=ds.num_classes,
        error_check_interval=args.error_interval,
        termination_threshold=args.term_threshold,
        init_visible_biases=not args.no_visible_bias_init,
        rng=rng,
        out_dir=args.out_dir,
    )

    def log_callback(train_fe: float, val_fe: float) -> None:
        logger.info("F_train=%.4f F_val=%.4f", train_fe, val_fe)

    trainer.add_callback(log_callback)
    result = trainer.train(parts.train, parts.validation, parts.test)

    params = {
        **trainer.params(),
        "dataset": args.src,
        "width": ds.width,
        "height": ds.height,
        "seed": args.seed,
    }
    out = save_run(args.out_dir, rbm, params, result)

    report = {
        "dataset": args.src,
        "run_dir": str(out),
        "params": params,
        "status": result["status"],
        "stopped_early": result["stopped_early"],
        "epochs_run": result["epochs_run"],
        "metrics": result["metrics"],
    }
    print(json.dumps(json_safe(report), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
