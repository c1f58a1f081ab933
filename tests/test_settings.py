import pytest

from config.settings import ConfigManager, FeedConfig
from core.exceptions import ConfigurationError


def write_config(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_defaults_fill_missing_values(tmp_path):
    manager = ConfigManager(write_config(tmp_path, "database_path: news.db\nfeed:\n  page_size: 25\n"))

    config = manager.load_config()

    assert config['logging']['level'] == 'INFO'
    assert manager.get_database_config().path == "news.db"
    assert manager.get_feed_config() == FeedConfig(page_size=25)
    assert manager.get_preferences_config().path == "preferences.json"


def test_empty_file_uses_defaults(tmp_path):
    manager = ConfigManager(write_config(tmp_path, ""))
    manager.load_config()

    assert manager.get_feed_config() == FeedConfig()


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        ConfigManager(str(tmp_path / "absent.yaml")).load_config()


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        ConfigManager(write_config(tmp_path, "feed: [unclosed\n")).load_config()


@pytest.mark.parametrize("feed", [
    "page_size: 0",
    "page_size: ten",
    "score_floor: 3",
    "top_score_window_days: 6\n  newest_window_days: 5",
    "newest_window_days: 0",
])
def test_invalid_feed_values(tmp_path, feed):
    with pytest.raises(ConfigurationError):
        ConfigManager(write_config(tmp_path, f"feed:\n  {feed}\n")).load_config()


def test_accessors_require_validation():
    with pytest.raises(ConfigurationError):
        ConfigManager("unused.yaml").get_feed_config()
