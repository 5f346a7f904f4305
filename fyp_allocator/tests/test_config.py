"""Tests for environment-driven configuration."""

import pytest

from fyp_allocator.config import firestore_config, load_env, runtime_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in (
        "FYP_STORE_BACKEND",
        "FYP_DEFAULT_QUOTA",
        "FYP_STUDENT_ID_PREFIX",
        "FYP_BATCH_LIMIT",
        "FYP_FIRESTORE_PROJECT",
        "FYP_FIRESTORE_DATABASE",
        "FYP_FIRESTORE_TOKEN",
        "FYP_FIRESTORE_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("FYP_DATA_DIR", str(tmp_path / "data"))


class TestRuntimeConfig:
    def test_defaults(self, tmp_path):
        cfg = runtime_config()
        assert cfg.store_backend == "json"
        assert cfg.default_quota == 5
        assert cfg.student_id_prefix == "UP"
        assert cfg.batch_limit == 500
        assert cfg.data_dir == (tmp_path / "data").resolve()
        assert cfg.data_dir.is_dir()

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("FYP_STORE_BACKEND", "Memory")
        monkeypatch.setenv("FYP_DEFAULT_QUOTA", "10")
        monkeypatch.setenv("FYP_STUDENT_ID_PREFIX", "UOP")
        monkeypatch.setenv("FYP_BATCH_LIMIT", "100")
        cfg = runtime_config()
        assert cfg.store_backend == "memory"
        settings = cfg.engine_settings()
        assert settings.default_quota == 10
        assert settings.student_id_prefix == "UOP"
        assert settings.batch_limit == 100

    def test_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("FYP_STORE_BACKEND", "sqlite")
        with pytest.raises(ValueError, match="FYP_STORE_BACKEND"):
            runtime_config()

    @pytest.mark.parametrize("value", ["0", "501", "lots"])
    def test_bad_batch_limit(self, monkeypatch, value):
        monkeypatch.setenv("FYP_BATCH_LIMIT", value)
        with pytest.raises(ValueError, match="FYP_BATCH_LIMIT"):
            runtime_config()


class TestFirestoreConfig:
    def test_requires_project(self):
        with pytest.raises(ValueError, match="FYP_FIRESTORE_PROJECT"):
            firestore_config()

    def test_values(self, monkeypatch):
        monkeypatch.setenv("FYP_FIRESTORE_PROJECT", "fyp-demo")
        monkeypatch.setenv("FYP_FIRESTORE_TOKEN", "tok")
        cfg = firestore_config()
        assert cfg.project_id == "fyp-demo"
        assert cfg.database == "(default)"
        assert cfg.token == "tok"
        assert cfg.api_key is None


class TestLoadEnv:
    def test_reads_dotenv_file(self, monkeypatch, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("FYP_DEFAULT_QUOTA=7\n", encoding="utf-8")
        # register the variable so monkeypatch removes it again on teardown
        monkeypatch.setenv("FYP_DEFAULT_QUOTA", "")
        monkeypatch.delenv("FYP_DEFAULT_QUOTA")
        load_env(env_file)
        assert runtime_config().default_quota == 7
