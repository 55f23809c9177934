"""Tests for environment-driven configuration."""
import pytest

from symbolranges.config import DEFAULT_EXCLUDED_DIRS, Config, get_config, reset_config

ENV_VARS = (
    "SYMBOLRANGES_ADDED_INDEX_OFFSET",
    "SYMBOLRANGES_FAIL_POLICY",
    "SYMBOLRANGES_OUTPUT",
    "SYMBOLRANGES_EXCLUDED_DIRS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def no_dotenv(tmp_path):
    return tmp_path / "missing.env"


def test_defaults(no_dotenv):
    """Without environment values the built-in defaults apply."""
    config = Config(no_dotenv)

    assert config.added_index_offset == 100
    assert config.fail_policy == "method"
    assert config.output_path == "symbol_ranges.jsonl"
    assert config.excluded_dirs == set(DEFAULT_EXCLUDED_DIRS)


def test_environment_overrides(monkeypatch, no_dotenv):
    """Environment values are parsed and normalized."""
    monkeypatch.setenv("SYMBOLRANGES_ADDED_INDEX_OFFSET", "1000")
    monkeypatch.setenv("SYMBOLRANGES_FAIL_POLICY", " Unit ")
    monkeypatch.setenv("SYMBOLRANGES_EXCLUDED_DIRS", "build, vendor,,")

    config = Config(no_dotenv)

    assert config.added_index_offset == 1000
    assert config.fail_policy == "unit"
    assert config.excluded_dirs == {"build", "vendor"}


def test_dotenv_file_is_loaded(monkeypatch, tmp_path):
    """Values from a .env file are picked up."""
    env_file = tmp_path / ".env"
    env_file.write_text("SYMBOLRANGES_ADDED_INDEX_OFFSET=250\n")
    # load_dotenv sets the variable for real; let monkeypatch undo it
    monkeypatch.setenv("SYMBOLRANGES_ADDED_INDEX_OFFSET", "")
    monkeypatch.delenv("SYMBOLRANGES_ADDED_INDEX_OFFSET")

    assert Config(env_file).added_index_offset == 250


@pytest.mark.parametrize("value", ["abc", "0", "-5"])
def test_invalid_offset(monkeypatch, no_dotenv, value):
    """Non-numeric or non-positive offsets are rejected."""
    monkeypatch.setenv("SYMBOLRANGES_ADDED_INDEX_OFFSET", value)
    with pytest.raises(ValueError, match="SYMBOLRANGES_ADDED_INDEX_OFFSET"):
        Config(no_dotenv)


def test_invalid_fail_policy(monkeypatch, no_dotenv):
    """An unknown fail policy is rejected."""
    monkeypatch.setenv("SYMBOLRANGES_FAIL_POLICY", "file")
    with pytest.raises(ValueError, match="SYMBOLRANGES_FAIL_POLICY"):
        Config(no_dotenv)


def test_get_config_is_cached_until_reset():
    """get_config returns one instance until reset_config."""
    first = get_config()
    assert get_config() is first

    reset_config()
    assert get_config() is not first
