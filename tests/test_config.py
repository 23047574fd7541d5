"""Tests for configuration checks"""

from config import Config


def test_validate_configuration_flags_missing_key(tmp_path, monkeypatch):
    monkeypatch.setattr(Config, "STORAGE_DIR", tmp_path)
    monkeypatch.setattr(Config, "UPLOADS_DIR", tmp_path / "uploads")
    monkeypatch.setattr(Config, "OPENAI_API_KEY", "")
    monkeypatch.setattr(Config, "USE_OCR", True)

    assert Config.validate_configuration() is False
    assert (tmp_path / "uploads").is_dir()


def test_validate_configuration_thresholds(tmp_path, monkeypatch):
    monkeypatch.setattr(Config, "STORAGE_DIR", tmp_path)
    monkeypatch.setattr(Config, "UPLOADS_DIR", tmp_path / "uploads")
    monkeypatch.setattr(Config, "OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(Config, "MIN_READABLE_CHARS", 500)

    assert Config.validate_configuration() is False

    monkeypatch.setattr(Config, "MIN_READABLE_CHARS", 100)
    assert Config.validate_configuration() is True
