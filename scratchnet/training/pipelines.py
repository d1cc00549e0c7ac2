"""Pipeline assembly: presets, config resolution and single training runs."""

from __future__ import annotations

import dataclasses
import json
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import numpy as np

from ..core.init import initialize
from ..core.network import Network
from ..core.types import RunResult
from ..data import registry
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from .trainer import Trainer

_PRESETS: Dict[str, Mapping[str, object]] = {
    "step-tanh": {
        "data": {
            "name": "step",
            "options": {"n_points": 2500, "low": -6.0, "high": 6.0, "seed": 0, "test_split": 0.2},
        },
        "model": {
            "layers": [1, 8, 8, 1],
            "hidden_activation": "tanh",
            "output_activation": "tanh",
            "init": "xavier_normal",
            "bias_range": [-0.01, 0.01],
        },
        "train": {
            "steps": 2000,
            "batch_size": 50,
            "lr": 0.01,
            "seed": 2727272,
            "eval_every": 100,
            "run_dir": "runs/step-tanh",
            "enable_plots": False,
        },
    },
    "curve-fitting": {
        "data": {"name": "gaussian_bump", "options": {"n_points": 2500, "seed": 0}},
        "model": {
            "layers": [1, 16, 16, 1],
            "hidden_activation": "leaky_relu",
            "output_activation": "leaky_relu",
            "init": "xavier_normal",
            "bias_range": [-0.01, 0.01],
        },
        "train": {
            "steps": 5000,
            "batch_size": 10,
            "lr": 0.01,
            "seed": 2727272,
            "eval_every": 250,
            "run_dir": "runs/curve-fitting",
            "enable_plots": False,
        },
    },
    "blobs-classifier": {
        "data": {"name": "blobs", "options": {"n_points": 600, "num_classes": 3, "seed": 0}},
        "model": {
            "layers": [2, 16, 3],
            "hidden_activation": "leaky_relu",
            "output_activation": "logistic",
            "init": "xavier_normal",
            "per_layer_fan": True,
        },
        "train": {
            "steps": 1500,
            "batch_size": 20,
            "lr": 0.1,
            "seed": 1,
            "eval_every": 100,
            "run_dir": "runs/blobs-classifier",
            "enable_plots": False,
        },
    },
    "smoke": {
        "data": {"name": "constant", "options": {"n_points": 64, "value": 0.5, "seed": 0}},
        "model": {
            "layers": [1, 4, 1],
            "hidden_activation": "tanh",
            "output_activation": "identity",
            "init": "uniform",
            "weight_range": [-0.5, 0.5],
        },
        "train": {
            "steps": 50,
            "batch_size": 8,
            "lr": 0.05,
            "seed": 7,
            "eval_every": 10,
            "run_dir": "runs/smoke",
            "enable_plots": False,
        },
    },
    "lr-sweep": {
        "sweep": {"lrs": [0.01, 0.05], "seeds": [0, 1]},
        "data": {"name": "constant", "options": {"n_points": 64, "value": 0.5, "seed": 0}},
        "model": {
            "layers": [1, 4, 1],
            "hidden_activation": "tanh",
            "output_activation": "identity",
            "init": "xavier_uniform",
        },
        "train": {
            "steps": 40,
            "batch_size": 8,
            "eval_every": 10,
            "run_dir": "runs/lr-sweep",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def read_config_file(path: Path) -> Mapping[str, object]:
    """Load a JSON or YAML config file into a mapping."""

    suffix = path.suffix.lower()
    if suffix not in {".yaml", ".yml", ".json"}:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    text = path.read_text()
    if suffix == ".json":
        data = json.loads(text or "{}")
    else:
        import yaml

        data = yaml.safe_load(text) or {}

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = {"data", "model", "train"} - set(data)
                if missing:
                    missing_str = ", ".join(sorted(missing))
                    raise KeyError(f"Preset {file.name} is missing required sections: {missing_str}")
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def run_pipeline(config: Mapping[str, object]) -> RunResult | List[RunResult]:
    if "sweep" in config:
        return _run_sweep(config)
    return _train_single(config)


def _run_sweep(config: Mapping[str, object]) -> List[RunResult]:
    sweep_cfg = config["sweep"]
    base_dir = Path(str(config.get("train", {}).get("run_dir", "runs/sweep")))
    results: List[RunResult] = []
    for lr in sweep_cfg.get("lrs", [config.get("train", {}).get("lr", 0.01)]):
        for seed in sweep_cfg.get("seeds", [config.get("train", {}).get("seed", 0)]):
            cfg = deepcopy(dict(config))
            cfg.pop("sweep", None)
            train_cfg = dict(cfg.get("train", {}))
            train_cfg.update({"lr": lr, "seed": seed, "run_dir": str(base_dir / f"lr{lr}-seed{seed}")})
            cfg["train"] = train_cfg
            results.append(_train_single(cfg))
    return results


def _train_single(config: Mapping[str, object]) -> RunResult:
    data_cfg = dict(config["data"])
    model_cfg = dict(config["model"])
    train_cfg = dict(config["train"])

    dataset = registry.get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))
    data_spec = dataset.data_spec

    seed = int(train_cfg.get("seed", 0))
    steps = int(train_cfg.get("steps", 100))
    batch_size = int(train_cfg.get("batch_size", 1))
    learning_rate = float(train_cfg.get("lr", 0.01))
    eval_every = int(train_cfg.get("eval_every", max(1, steps // 10)))

    dims = _build_dims(model_cfg, data_spec.d_in, data_spec.d_out)
    if dims[0] != data_spec.d_in:
        raise ValueError(f"Configured input width {dims[0]} but dataset {dataset.name!r} has {data_spec.d_in}")
    if dims[-1] != data_spec.d_out:
        raise ValueError(f"Configured output width {dims[-1]} but dataset {dataset.name!r} has {data_spec.d_out}")

    network = Network.from_layers(
        dims,
        hidden=str(model_cfg.get("hidden_activation", "leaky_relu")),
        output=model_cfg.get("output_activation"),
    )
    topology = network.topology
    init_name = str(model_cfg.get("init", "xavier_normal"))
    initialize(
        network,
        init_name,
        np.random.default_rng(seed),
        bias_range=tuple(model_cfg.get("bias_range", (-0.01, 0.01))),
        weight_range=tuple(model_cfg["weight_range"]) if "weight_range" in model_cfg else None,
        per_layer=bool(model_cfg.get("per_layer_fan", False)),
    )

    eval_rows = dataset.rows("test")
    if eval_rows.shape[0] == 0:
        eval_rows = dataset.rows("train")
    eval_size = train_cfg.get("eval_size")
    if eval_size is not None:
        eval_rows = eval_rows[: int(eval_size)]

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    _print_startup_summary(
        dataset_name=dataset.name,
        dims=dims,
        activations=topology.describe()["activations"],
        init=init_name,
        learning_rate=learning_rate,
        batch_size=batch_size,
        param_count=topology.parameter_count(),
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", split="test", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv", split="test")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    trainer = Trainer(
        network,
        dataset.rows("train"),
        learning_rate=learning_rate,
        batch_size=batch_size,
        rng=np.random.default_rng(seed),
        eval_examples=eval_rows,
        eval_every=eval_every,
        task_type=data_spec.task_type,
        callbacks=[jsonl, csv_sink, plots],
    )
    initial = dict(trainer.evaluate())
    jsonl.on_step(0, initial)
    csv_sink.on_step(0, initial)
    plots.on_step(0, initial)

    result = trainer.run(steps)
    plots.close()

    (run_dir / "metrics_final.json").write_text(json.dumps(result.final_metrics, indent=2))
    resolved = json.loads(json.dumps(config))
    resolved["model"]["layers"] = dims
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=resolved,
        dataset_provenance=dataset.provenance,
        topology=topology.describe(),
    )
    (run_dir / "config.json").write_text(json.dumps(resolved, indent=2))

    return dataclasses.replace(result, metrics_path=str(jsonl.path), manifest_path=manifest)


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _build_dims(model_cfg: Mapping[str, object], d_in: int, d_out: int) -> List[int]:
    if "layers" in model_cfg:
        return [int(size) for size in model_cfg["layers"]]  # type: ignore[union-attr]
    dims = [int(model_cfg.get("d_in", d_in))]
    dims.extend(int(h) for h in model_cfg.get("hidden", []))  # type: ignore[union-attr]
    dims.append(int(model_cfg.get("d_out", d_out)))
    return dims


def _print_startup_summary(
    *,
    dataset_name: str,
    dims: Sequence[int],
    activations: Sequence[str],
    init: str,
    learning_rate: float,
    batch_size: int,
    param_count: int,
) -> None:
    print("=== scratchnet run ===")
    print(f"Dataset       : {dataset_name}")
    print(f"Layers        : {list(dims)}")
    print(f"Activations   : {list(activations)}")
    print(f"Initializer   : {init}")
    print(f"Learning rate : {learning_rate}")
    print(f"Batch size    : {batch_size}")
    print(f"Parameters    : {param_count}")
    print("======================")


__all__ = ["load_preset", "presets", "read_config_file", "run_pipeline"]
