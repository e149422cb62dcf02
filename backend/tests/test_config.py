import pytest

from asset_gateway.core.config import ConfigurationError, Settings, get_settings


def test_settings_are_read_from_environment(settings):
    assert settings.aws_region == "eu-north-1"
    assert settings.aws_bucket_name == "test-bucket"
    assert settings.signed_url_ttl == 3600
    assert settings.presigned_upload_ttl == 900
    assert settings.max_upload_bytes == 10 * 1024 * 1024
    assert settings.missing_storage_settings() == []


def test_missing_storage_settings_are_listed(monkeypatch):
    monkeypatch.delenv("AWS_REGION")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "  ")

    settings = Settings(_env_file=None)

    assert settings.missing_storage_settings() == ["AWS_REGION", "AWS_SECRET_ACCESS_KEY"]
    with pytest.raises(ConfigurationError, match="AWS_REGION, AWS_SECRET_ACCESS_KEY"):
        settings.validate_for_startup()


def test_app_refuses_to_start_without_bucket(monkeypatch):
    from asset_gateway.main import create_app

    monkeypatch.delenv("AWS_BUCKET_NAME")
    get_settings.cache_clear()

    with pytest.raises(ConfigurationError, match="AWS_BUCKET_NAME"):
        create_app()


def test_required_auth_needs_a_secret(settings):
    configured = settings.model_copy(update={"upload_auth_required": True, "jwt_secret_key": None})
    with pytest.raises(ConfigurationError, match="JWT_SECRET_KEY"):
        configured.validate_for_startup()


def test_ttl_bounds_are_validated(monkeypatch):
    monkeypatch.setenv("SIGNED_URL_TTL", "700000")
    with pytest.raises(ValueError):
        Settings(_env_file=None)


def test_cors_origins_parse_json_list(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", '["https://frontend.example.com"]')
    assert Settings(_env_file=None).cors_origins == ["https://frontend.example.com"]
