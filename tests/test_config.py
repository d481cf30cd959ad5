"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from ghostbuster.config import Settings

TOKEN = '123:abc'


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv('TELEGRAM_BOT_TOKEN', raising=False)


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None, telegram_bot_token=TOKEN)

        assert settings.default_window_days == 60
        assert settings.default_grace_days == 7
        assert (settings.sweep_hour, settings.sweep_minute) == (9, 0)
        assert settings.sweep_timezone == 'Europe/Warsaw'
        assert settings.admin_user_id is None

    def test_token_is_required(self):
        with pytest.raises(ValidationError, match='telegram_bot_token'):
            Settings(_env_file=None)

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv('TELEGRAM_BOT_TOKEN', TOKEN)
        monkeypatch.setenv('DEFAULT_WINDOW_DAYS', '30')
        monkeypatch.setenv('SWEEP_TIMEZONE', 'UTC')
        monkeypatch.setenv('ADMIN_USER_ID', '123456')

        settings = Settings(_env_file=None)

        assert settings.telegram_bot_token == TOKEN
        assert settings.default_window_days == 30
        assert settings.sweep_timezone == 'UTC'
        assert settings.admin_user_id == 123456

    def test_env_file(self, tmp_path):
        env_file = tmp_path / '.env'
        env_file.write_text(f'TELEGRAM_BOT_TOKEN={TOKEN}\nDEFAULT_GRACE_DAYS=0\n')

        settings = Settings(_env_file=env_file)

        assert settings.telegram_bot_token == TOKEN
        assert settings.default_grace_days == 0

    @pytest.mark.parametrize("name, value", [
        ('DEFAULT_WINDOW_DAYS', '5'),
        ('DEFAULT_WINDOW_DAYS', '400'),
        ('SWEEP_HOUR', '24'),
        ('SWEEP_CONCURRENCY', '0'),
    ])
    def test_out_of_range_values_are_rejected(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            Settings(_env_file=None, telegram_bot_token=TOKEN)
