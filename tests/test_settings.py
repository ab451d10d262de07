import pytest

from config.settings import Settings
from etl.errors import ConfigurationError, ErrorKind


def test_defaults(env):
    settings = Settings(env=env)
    assert settings.FEISHU_BASE_URL == "https://open.feishu.cn/open-apis"
    assert settings.OSS_OBJECT_KEY == "app-data.json"
    assert settings.SHEET_RANGE == "A1:Z3000"
    assert settings.FETCH_MODE == "batch"
    assert settings.REQUEST_TIMEOUT == 15.0
    assert settings.storage_configured


def test_missing_required_lists_every_field(env):
    del env["FEISHU_APP_SECRET"]
    env["OSS_BUCKET"] = ""
    with pytest.raises(ConfigurationError) as excinfo:
        Settings(env=env)
    assert excinfo.value.kind is ErrorKind.CONFIGURATION
    assert excinfo.value.detail["missing"] == ["FEISHU_APP_SECRET", "OSS_BUCKET"]


def test_storage_optional_when_not_required(env):
    for key in ("OSS_REGION", "OSS_ACCESS_KEY_ID", "OSS_ACCESS_KEY_SECRET", "OSS_BUCKET"):
        del env[key]
    settings = Settings(env=env, require_storage=False)
    assert not settings.storage_configured


def test_feishu_optional_when_not_required(env):
    del env["FEISHU_APP_ID"]
    Settings(env=env, require_feishu=False)
    with pytest.raises(ConfigurationError):
        Settings(env=env)


@pytest.mark.parametrize("key,value", [
    ("FETCH_MODE", "turbo"),
    ("REQUEST_TIMEOUT", "soon"),
    ("REQUEST_TIMEOUT", "0"),
    ("REQUEST_TIMEOUT", "inf"),
    ("REQUEST_TIMEOUT", "nan"),
])
def test_invalid_values(env, key, value):
    env[key] = value
    with pytest.raises(ConfigurationError):
        Settings(env=env)


def test_fetch_mode_normalized(env):
    env["FETCH_MODE"] = " Parallel "
    assert Settings(env=env).FETCH_MODE == "parallel"


def test_repr_hides_credentials(env):
    env["FEISHU_APP_SECRET"] = "app-secret-value"
    env["OSS_ACCESS_KEY_SECRET"] = "oss-secret-value"
    text = repr(Settings(env=env))
    assert "app-secret-value" not in text
    assert "oss-secret-value" not in text
