# backend/src/neurorbm/data/__init__.py
from .dataset import DatasetBinario, ParticionDataset, load_dataset, save_dataset, split_dataset

__all__ = ["DatasetBinario", "ParticionDataset", "load_dataset", "save_dataset", "split_dataset"]
