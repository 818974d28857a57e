from __future__ import annotations

import os

import pytest

from b2storage.config import ConfigError, load_credentials, load_env_file_if_present
from b2storage.models import Credentials

B2_KEYS = ["B2_KEY_ID", "B2_APPLICATION_KEY", "B2_BUCKET_ID", "B2_BUCKET_NAME"]


@pytest.fixture
def clean_env(monkeypatch):
    for key in B2_KEYS + ["QUOTED_VALUE", "SINGLE_QUOTED", "EXPORTED", "EMPTY_LINE"]:
        monkeypatch.delenv(key, raising=False)
    yield
    for key in ["QUOTED_VALUE", "SINGLE_QUOTED", "EXPORTED", "EMPTY_LINE"] + B2_KEYS:
        os.environ.pop(key, None)


class TestLoadEnvFileIfPresent:
    def test_parses_env_file(self, tmp_path, clean_env):
        env_file = tmp_path / ".env"
        env_file.write_text(
            """
# B2 credentials
B2_KEY_ID=0012345
EMPTY_LINE=
export EXPORTED=yes

QUOTED_VALUE="with spaces"
SINGLE_QUOTED='single'
not a pair
"""
        )

        result = load_env_file_if_present(env_file)

        assert result == {
            "B2_KEY_ID": "0012345",
            "EMPTY_LINE": "",
            "EXPORTED": "yes",
            "QUOTED_VALUE": "with spaces",
            "SINGLE_QUOTED": "single",
        }
        assert os.environ["B2_KEY_ID"] == "0012345"
        assert os.environ["QUOTED_VALUE"] == "with spaces"

    def test_missing_file_returns_empty_dict(self, tmp_path):
        assert load_env_file_if_present(tmp_path / "missing.env") == {}

    def test_existing_environment_wins(self, tmp_path, clean_env, monkeypatch):
        monkeypatch.setenv("B2_KEY_ID", "from_env")
        env_file = tmp_path / ".env"
        env_file.write_text("B2_KEY_ID=from_file\n")

        load_env_file_if_present(env_file)
        assert os.environ["B2_KEY_ID"] == "from_env"

        load_env_file_if_present(env_file, override=True)
        assert os.environ["B2_KEY_ID"] == "from_file"


class TestLoadCredentials:
    def test_reads_environment(self, monkeypatch, clean_env):
        monkeypatch.setenv("B2_KEY_ID", "keyId")
        monkeypatch.setenv("B2_APPLICATION_KEY", "applicationKey")
        monkeypatch.setenv("B2_BUCKET_ID", "bucketId")
        monkeypatch.setenv("B2_BUCKET_NAME", "bucketName")

        creds = load_credentials(dotenv=False)

        assert creds == Credentials("keyId", "applicationKey", "bucketId", "bucketName")

    def test_custom_prefix(self, monkeypatch):
        for suffix, value in [
            ("KEY_ID", "k"),
            ("APPLICATION_KEY", "a"),
            ("BUCKET_ID", "b"),
            ("BUCKET_NAME", "n"),
        ]:
            monkeypatch.setenv(f"IMAGES_{suffix}", value)

        creds = load_credentials(prefix="IMAGES_", dotenv=False)

        assert creds.bucket_name == "n"

    def test_reports_all_missing_variables(self, monkeypatch, clean_env):
        monkeypatch.setenv("B2_KEY_ID", "keyId")
        monkeypatch.setenv("B2_BUCKET_ID", "")

        with pytest.raises(ConfigError) as exc:
            load_credentials(dotenv=False)

        message = str(exc.value)
        assert "B2_APPLICATION_KEY" in message
        assert "B2_BUCKET_ID" in message
        assert "B2_BUCKET_NAME" in message
        assert "B2_KEY_ID" not in message

    def test_loads_dotenv_from_working_directory(self, tmp_path, monkeypatch, clean_env):
        (tmp_path / ".env").write_text(
            "B2_KEY_ID=k\nB2_APPLICATION_KEY=a\nB2_BUCKET_ID=b\nB2_BUCKET_NAME=n\n"
        )
        monkeypatch.chdir(tmp_path)

        creds = load_credentials()

        assert creds == Credentials("k", "a", "b", "n")
