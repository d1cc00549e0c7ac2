import json
from pathlib import Path

import pytest

from scratchnet.training import pipelines


def _smoke_config(run_dir: Path) -> dict:
    config = pipelines.load_preset("smoke")
    config["train"]["run_dir"] = str(run_dir)
    return config


def test_pipeline_produces_artifacts(tmp_path, capsys):
    config = _smoke_config(tmp_path / "run")
    result = pipelines.run_pipeline(config)

    assert result.steps == 50
    assert not result.stopped
    assert Path(result.metrics_path).exists()
    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["config"]["train"]["seed"] == 7
    assert manifest["dataset"]["type"] == "constant"
    assert manifest["topology"] == {"layers": [1, 4, 1], "activations": ["tanh", "identity"]}

    records = [json.loads(line) for line in Path(result.metrics_path).read_text().splitlines() if line]
    assert [r["step"] for r in records] == [0, 10, 20, 30, 40, 50]
    assert all("cost" in r and "sha" in r and r["seed"] == 7 for r in records)
    assert records[-1]["cost"] < records[0]["cost"]

    run_dir = tmp_path / "run"
    assert (run_dir / "metrics.csv").read_text().startswith("cost,")
    final = json.loads((run_dir / "metrics_final.json").read_text())
    assert final["cost"] == pytest.approx(result.final_metrics["cost"])
    assert "=== scratchnet run ===" in capsys.readouterr().out


def test_pipeline_determinism(tmp_path):
    first = pipelines.run_pipeline(_smoke_config(tmp_path / "run1"))
    second = pipelines.run_pipeline(_smoke_config(tmp_path / "run2"))

    def _strip(path):
        return [
            {k: v for k, v in json.loads(line).items() if k != "sha"}
            for line in Path(path).read_text().splitlines()
        ]

    assert _strip(first.metrics_path) == _strip(second.metrics_path)


def test_sweep_runs_every_combination(tmp_path):
    config = pipelines.load_preset("lr-sweep")
    config["train"]["run_dir"] = str(tmp_path / "sweep")
    results = pipelines.run_pipeline(config)
    assert len(results) == 4
    assert len({r.metrics_path for r in results}) == 4
    assert all(r.steps == 40 for r in results)


def test_pipeline_rejects_mismatched_layers(tmp_path):
    config = _smoke_config(tmp_path / "bad")
    config["model"]["layers"] = [2, 4, 1]
    with pytest.raises(ValueError, match="input width"):
        pipelines.run_pipeline(config)


def test_pipeline_builds_layers_from_hidden(tmp_path):
    config = _smoke_config(tmp_path / "hidden")
    del config["model"]["layers"]
    config["model"]["hidden"] = [3, 3]
    config["train"]["steps"] = 5
    result = pipelines.run_pipeline(config)
    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["topology"]["layers"] == [1, 3, 3, 1]


def test_presets_include_file_presets():
    names = set(pipelines.presets())
    assert {"step-tanh", "curve-fitting", "blobs-classifier", "smoke", "blobs-ten-way"} <= names
    ten_way = pipelines.load_preset("blobs-ten-way")
    assert ten_way["model"]["layers"] == [16, 32, 10]
    with pytest.raises(KeyError):
        pipelines.load_preset("nope")


def test_read_config_file(tmp_path):
    yaml_path = tmp_path / "override.yaml"
    yaml_path.write_text("train:\n  steps: 3\n")
    assert pipelines.read_config_file(yaml_path) == {"train": {"steps": 3}}
    json_path = tmp_path / "override.json"
    json_path.write_text('{"train": {"lr": 0.5}}')
    assert pipelines.read_config_file(json_path) == {"train": {"lr": 0.5}}
    with pytest.raises(ValueError):
        pipelines.read_config_file(tmp_path / "override.toml")
    list_path = tmp_path / "list.json"
    list_path.write_text("[1, 2]")
    with pytest.raises(TypeError):
        pipelines.read_config_file(list_path)
