from app.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.window_size == 5
    assert settings.port == 5000
    assert settings.system_prompt == "You are a helpful assistant."


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("WINDOW_SIZE", "8")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    monkeypatch.setenv("ALLOWED_ORIGINS", '["https://chat.example.com"]')
    monkeypatch.setenv("PORT", "8080")

    settings = Settings(_env_file=None)

    assert settings.window_size == 8
    assert settings.anthropic_api_key == "sk-test"
    assert settings.allowed_origins == ["https://chat.example.com"]
    assert settings.port == 8080
