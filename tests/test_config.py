import json
from pathlib import Path

from advscript.presentation.cli import config


def test_missing_config_returns_defaults(tmp_path: Path) -> None:
    assert config.load_config(tmp_path / "missing.json") == config.default_config()


def test_corrupt_config_returns_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")

    assert config.load_config(path) == config.default_config()


def test_non_object_config_returns_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("[1, 2]", encoding="utf-8")

    assert config.load_config(path) == config.default_config()


def test_save_then_load(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "config.json"

    config.save_config({"debug_mode": True, "max_steps": 500, "log_level": "debug"}, path)

    assert config.load_config(path) == {"debug_mode": True, "max_steps": 500, "log_level": "DEBUG"}
    assert json.loads(path.read_text(encoding="utf-8"))["max_steps"] == 500


def test_invalid_values_fall_back() -> None:
    normalized = config.normalize_config(
        {"debug_mode": "yes", "max_steps": 0, "log_level": "LOUD", "extra": 1}
    )

    assert normalized == config.default_config()
    assert config.normalize_config({"max_steps": True})["max_steps"] is None


def test_user_data_dir_on_posix(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(config, "_is_windows", lambda: False)
    monkeypatch.setattr(config.Path, "home", lambda: tmp_path)

    assert config.get_default_config_path() == tmp_path / ".config" / "advscript" / "config.json"


def test_user_data_dir_on_windows(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(config, "_is_windows", lambda: True)
    monkeypatch.setenv("APPDATA", str(tmp_path))

    assert config.get_user_data_dir() == tmp_path / "advscript"


def test_user_data_dir_on_windows_without_appdata(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(config, "_is_windows", lambda: True)
    monkeypatch.delenv("APPDATA", raising=False)
    monkeypatch.setattr(config.Path, "home", lambda: tmp_path)

    assert config.get_user_data_dir() == tmp_path / "advscript"
