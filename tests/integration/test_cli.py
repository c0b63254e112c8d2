import json

import numpy as np
import pytest
import soundfile as sf

from cli.main import main, parse_args, resolve_config


def _corpus(root):
    audio = root / "audio"
    audio.mkdir()
    rng = np.random.default_rng(1)
    rows = ["Input.filename,Answer.label"]
    for idx in range(4):
        if idx % 2 == 0:
            data, label = rng.integers(-1500, 1500, size=600).astype(np.int16), "has-vocals"
        else:
            data, label = np.zeros(600, dtype=np.int16), "no-vocals"
        sf.write(str(audio / f"take{idx}.wav"), data, 8000, subtype="PCM_16")
        rows.append(f"take{idx},{label}")
    manifest = root / "labels.csv"
    manifest.write_text("\n".join(rows) + "\n")
    return manifest, audio


@pytest.mark.parametrize(
    "argv",
    [[], ["--bogus", "tmp"], ["-m", "zero", "tmp"], ["-m", "0", "tmp"], ["-d", "only.csv"], ["--preprocess-only", "tmp"]],
)
def test_usage_errors_exit_nonzero(argv, capsys):
    with pytest.raises(SystemExit) as info:
        main(argv)
    assert info.value.code != 0
    assert "usage" in capsys.readouterr().err.lower()


def test_help_exits_zero(capsys):
    with pytest.raises(SystemExit) as info:
        main(["-h"])
    assert info.value.code == 0
    assert "-d DATA_CSV AUDIO_DIR" in capsys.readouterr().out


def test_missing_training_data_is_reported(tmp_path, capsys):
    with pytest.raises(SystemExit) as info:
        main([str(tmp_path)])
    assert info.value.code == 1
    assert "error:" in capsys.readouterr().err


def test_config_file_and_flags_merge(tmp_path):
    config_path = tmp_path / "run.yaml"
    config_path.write_text("max_epochs: 7\nhidden_layers: [5, 2]\nmin_delta_error: 0.001\n")
    args = parse_args(["--config", str(config_path), "-e", "0.5", "-r", str(tmp_path)])
    config = resolve_config(args)
    assert config.max_epochs == 7
    assert config.hidden_layers == (5, 2)
    assert config.min_delta_error == 0.5
    assert config.recurse is True
    assert config.max_threads is None


def test_preprocess_only(tmp_path, capsys):
    manifest, audio = _corpus(tmp_path)
    temp = tmp_path / "mfc"
    with pytest.raises(SystemExit) as info:
        main([str(temp), "-d", str(manifest), str(audio), "--preprocess-only"])
    assert info.value.code == 0
    assert len(list(temp.glob("*.mfc"))) == 4
    assert "Preprocessed 4 files" in capsys.readouterr().out


def test_full_run_writes_artifacts(tmp_path, capsys):
    manifest, audio = _corpus(tmp_path)
    temp = tmp_path / "mfc"
    metrics = tmp_path / "out" / "metrics.jsonl"
    metrics_csv = tmp_path / "out" / "metrics.csv"
    plot = tmp_path / "out" / "error.png"
    saved = tmp_path / "out" / "net.npz"
    argv = [
        str(temp),
        "-d", str(manifest), str(audio),
        "-m", "2",
        "-e", "0",
        "-t", "2",
        "--seed", "0",
        "--metrics", str(metrics),
        "--metrics-csv", str(metrics_csv),
        "--plot", str(plot),
        "--save", str(saved),
    ]
    with pytest.warns(RuntimeWarning):
        with pytest.raises(SystemExit) as info:
            main(argv)
    assert info.value.code == 0

    records = [json.loads(line) for line in metrics.read_text().splitlines()]
    assert [r["epoch"] for r in records] == [1, 2]
    csv_lines = metrics_csv.read_text().splitlines()
    assert "epoch" in csv_lines[0].split(",")
    assert len(csv_lines) == 3
    assert plot.exists()
    assert saved.exists()

    out = capsys.readouterr().out
    summary = json.loads(out.strip().splitlines()[-1])
    assert summary["epochs"] == 2
    assert summary["exceeded_max_epochs"] is True
    assert "|" in out

    # a second run trains straight from the feature files
    with pytest.raises(SystemExit) as info:
        main([str(temp), "-m", "1", "-e", "1"])
    assert info.value.code == 0
