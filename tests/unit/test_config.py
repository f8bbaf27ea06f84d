from datetime import timedelta

from pydantic import ValidationError
import pytest

from ollamaclient.config import DEFAULT_HOST, DEFAULT_MODEL, Config, env_bool, parse_timeout
from ollamaclient.errors import ConfigError
from ollamaclient.pull.session import DEFAULT_PULL_TIMEOUT


def test_defaults() -> None:
    c = Config()
    assert c.host == DEFAULT_HOST
    assert c.model == DEFAULT_MODEL
    assert c.verbose is False
    assert c.pull_timeout == timedelta(hours=48) == DEFAULT_PULL_TIMEOUT


def test_from_env() -> None:
    env = {
        "OLLAMA_HOST": "http://gpu-box:11434/",
        "OLLAMA_MODEL": "mistral:7b",
        "OLLAMA_VERBOSE": "true",
        "OLLAMA_PULL_TIMEOUT": "90",
    }
    c = Config.from_env(environ=env)
    assert c.host == "http://gpu-box:11434"
    assert c.model == "mistral:7b"
    assert c.verbose is True
    assert c.pull_timeout == timedelta(seconds=90)


def test_from_env_empty() -> None:
    c = Config.from_env(environ={})
    assert c == Config()


def test_arguments_win_over_env() -> None:
    env = {"OLLAMA_HOST": "http://a:1", "OLLAMA_MODEL": "a", "OLLAMA_VERBOSE": "1"}
    c = Config.from_env(model="b", host="http://b:2", verbose=False, environ=env)
    assert (c.host, c.model, c.verbose) == ("http://b:2", "b", False)


def test_from_env_reads_dotenv(tmp_path, monkeypatch) -> None:
    (tmp_path / ".env").write_text("OLLAMA_MODEL=from-dotenv\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("OLLAMA_MODEL", "unset-by-test")
    monkeypatch.delenv("OLLAMA_MODEL")
    assert Config.from_env().model == "from-dotenv"


def test_host_without_scheme() -> None:
    assert Config(host="localhost:11434").host == "http://localhost:11434"


def test_url() -> None:
    assert Config(host="http://h:1/").url("/api/pull") == "http://h:1/api/pull"


def test_invalid_timeout() -> None:
    with pytest.raises(ValidationError):
        Config(pull_timeout=timedelta(0))


@pytest.mark.parametrize(("value", "expected"), [("1", True), ("Yes", True), ("0", False), ("", False), (None, False)])
def test_env_bool(value: str | None, expected: bool) -> None:
    assert env_bool(value) is expected


# -- bad settings ------------------------------------------------------------


def test_parse_timeout() -> None:
    assert parse_timeout("1.5") == timedelta(seconds=1.5)
    assert parse_timeout(" 3600 ") == timedelta(hours=1)


@pytest.mark.parametrize("value", ["two days", "0", "-5", "nan", "inf", "1e30"])
def test_bad_pull_timeout_from_env(value: str) -> None:
    with pytest.raises(ConfigError, match="OLLAMA_PULL_TIMEOUT must be a positive number of seconds") as excinfo:
        Config.from_env(environ={"OLLAMA_PULL_TIMEOUT": value})
    assert repr(value) in str(excinfo.value)


def test_bad_host_from_env() -> None:
    with pytest.raises(ConfigError, match="host must not be empty"):
        Config.from_env(environ={"OLLAMA_HOST": "   "})


def test_config_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        Config.from_env(environ={"OLLAMA_PULL_TIMEOUT": "soon"})
