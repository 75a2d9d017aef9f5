from __future__ import annotations

from pathlib import Path

from gopybind.cli import main
from gopybind.loader import write_manifest


def test_cli_gen_writes_source(tmp_path: Path, shapes_manifest, capsys):
    model = write_manifest(shapes_manifest, tmp_path / "shapes.json")
    out_dir = tmp_path / "out"

    rc = main(["gen", "--model", str(model), "--out", str(out_dir)])

    assert rc == 0
    out_file = out_dir / "shapes.c"
    assert out_file.exists()
    assert "PyInit_shapes" in out_file.read_text(encoding="utf-8")
    assert str(out_file) in capsys.readouterr().out


def test_cli_gen_refuses_partial_output_by_default(tmp_path: Path, capsys):
    model = write_manifest(
        {"name": "p", "funcs": [{"name": "F", "params": ["chan int"]}]},
        tmp_path / "p.msgpack",
    )
    out_dir = tmp_path / "out"

    rc = main(["gen", "--model", str(model), "--out", str(out_dir)])
    assert rc == 1
    assert not (out_dir / "p.c").exists()
    err = capsys.readouterr().err
    assert "p.F" in err
    assert "--allow-partial" in err

    rc = main(["gen", "--model", str(model), "--out", str(out_dir), "--allow-partial"])
    assert rc == 0
    assert (out_dir / "p.c").exists()


def test_cli_gen_uses_env_out_dir(tmp_path: Path, shapes_manifest, monkeypatch):
    model = write_manifest(shapes_manifest, tmp_path / "shapes.json")
    monkeypatch.setenv("GOPYBIND_OUT_DIR", str(tmp_path / "env-out"))
    assert main(["gen", "--model", str(model)]) == 0
    assert (tmp_path / "env-out" / "shapes.c").exists()


def test_cli_gen_reports_bad_model(tmp_path: Path, capsys):
    rc = main(["gen", "--model", str(tmp_path / "missing.json")])
    assert rc == 2
    assert "not found" in capsys.readouterr().err
