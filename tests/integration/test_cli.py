import json

import numpy as np
import pytest

from cli.main import main
from flatprop.core.serialization import load_network


def test_cli_xor_preset(tmp_path, capsys):
    run_dir = tmp_path / "run"
    main(["--preset", "xor-rprop", "--run-dir", str(run_dir), "--save-network", str(tmp_path / "xor.npz")])
    payload = json.loads(capsys.readouterr().out)

    assert 1 <= payload["iterations"] <= 500
    lines = (run_dir / "metrics.jsonl").read_text().splitlines()
    assert len(lines) == payload["iterations"]
    assert json.loads(lines[-1])["error"] == payload["error"]
    assert (run_dir / "metrics.csv").exists()
    assert load_network(payload["network"]).output_count == 1


def test_cli_csv_with_holdout(tmp_path, capsys):
    rng = np.random.default_rng(0)
    rows = rng.uniform(0, 10, size=(20, 2))
    labels = (rows[:, 0] > rows[:, 1]).astype(int)
    csv_path = tmp_path / "data.csv"
    csv_path.write_text(
        "id,a,b,label\n"
        + "".join(f"{i},{a},{b},{y}\n" for i, ((a, b), y) in enumerate(zip(rows, labels)))
    )
    config_path = tmp_path / "cfg.yaml"
    config_path.write_text("train:\n  max_iterations: 50\n")
    dump = tmp_path / "resolved.json"

    main(
        [
            "--csv", str(csv_path),
            "--output-cols", "label",
            "--ignore-cols", "id",
            "--normalize",
            "--test-size", "0.25",
            "--config", str(config_path),
            "--run-dir", str(tmp_path / "run"),
            "--dump-config", str(dump),
        ]
    )
    payload = json.loads(capsys.readouterr().out)
    assert payload["iterations"] <= 50
    assert 0.0 <= payload["accuracy"] <= 100.0
    resolved = json.loads(dump.read_text())
    assert resolved["network"]["input"] == 2
    assert resolved["train"]["max_iterations"] == 50


def test_cli_list_presets(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--list-presets"])
    assert exc.value.code == 0
    assert "xor-adam" in capsys.readouterr().out.split()
