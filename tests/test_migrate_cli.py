from __future__ import annotations

import json

from quiz_core import config as qc_config
from tools import migrate_configs

from tests.conftest import legacy_container_config, legacy_regular_config


def test_migrates_directory_into_out_dir(tmp_path, capsys):
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.json").write_text(json.dumps(legacy_regular_config()), encoding="utf-8")
    (src / "b.json").write_text(json.dumps(legacy_container_config()), encoding="utf-8")
    out = tmp_path / "out"

    exit_code = migrate_configs.main([str(src), "--out", str(out)])
    captured = capsys.readouterr()

    assert exit_code == 0
    assert "2/2 config(s) resolved" in captured.out
    migrated = json.loads((out / "b.json").read_text(encoding="utf-8"))
    assert migrated["version"] == "v2"
    assert migrated["type"] == "container"


def test_bad_files_give_warning_exit(tmp_path, capsys):
    good = tmp_path / "good.json"
    good.write_text(json.dumps(legacy_regular_config()), encoding="utf-8")
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")

    exit_code = migrate_configs.main([str(good), str(broken), "--check"])
    captured = capsys.readouterr()

    assert exit_code == 2
    assert "1/2 config(s) resolved" in captured.out
    assert '"version"' not in captured.out


def test_strict_blanks_flag(tmp_path, monkeypatch):
    monkeypatch.setattr(qc_config, "STRICT_BLANKS", False)
    raw = legacy_regular_config()
    raw["pages"][0]["questions"][1]["correctAnswers"] = []
    path = tmp_path / "quiz.json"
    path.write_text(json.dumps(raw), encoding="utf-8")

    assert migrate_configs.main([str(path), "--check"]) == 0
    assert migrate_configs.main([str(path), "--check", "--strict-blanks"]) == 2
