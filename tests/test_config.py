import pytest

from convergence.config import Settings, is_rivalry, load_rivalries
from convergence.models import Sport


def test_rivalries_are_read_only_and_directional():
    table = load_rivalries()

    assert is_rivalry(Sport.NBA, 'BOS', 'LAL')
    assert is_rivalry(Sport.NBA, 'NYK', 'BOS')
    assert not is_rivalry(Sport.NBA, 'BOS', 'ORL')
    assert not is_rivalry(Sport.NBA, 'ORL', 'BOS')

    with pytest.raises(TypeError):
        table[Sport.NBA]['BOS'] = frozenset()


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv('NBA_SEASON', '2024-25')
    monkeypatch.setenv('CACHE_TTL_HOURS', '2')
    monkeypatch.setenv('BOARD_BATCH_SIZE', '12')
    monkeypatch.delenv('SUPABASE_URL', raising=False)

    settings = Settings.from_env()

    assert settings.nba_season == '2024-25'
    assert settings.cache_ttl_seconds == 7200
    assert settings.board_batch_size == 12
    assert settings.supabase_url is None
