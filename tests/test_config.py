import yaml
import pytest
from pathlib import Path
from citation_dashboard.config import load_config, Config, DEFAULT_PAPER_DOI

def _clear_env(monkeypatch, name):
    # setenv first so monkeypatch also undoes whatever load_dotenv writes
    monkeypatch.setenv(name, "")
    monkeypatch.delenv(name)

def test_config_defaults():
    config = Config()
    assert config.paper_doi == DEFAULT_PAPER_DOI
    assert config.mode == "dual"
    assert config.openalex.per_page == 200
    assert config.openalex.page_delay == 0.1
    assert config.semantic_scholar.limit == 1000
    assert config.cache_path == Path.home() / ".citation-dashboard" / "cache.db"

def test_load_config_yaml(tmp_path, monkeypatch):
    _clear_env(monkeypatch, "CITATION_DASHBOARD_MAILTO")
    yaml_file = tmp_path / "config.yaml"
    raw = {
        "paper_doi": "10.1/other",
        "mailto": "me@example.org",
        "mode": "single",
        "data_dir": "~/custom-dir",
        "openalex": {"page_delay": 0.5, "max_pages": 10},
        "semantic_scholar": {"api_key_env": "CUSTOM_KEY"},
        "csv_urls": ["https://a.example/c.csv"],
    }
    with yaml_file.open("w") as f:
        yaml.dump(raw, f)

    config = load_config(config_path=yaml_file, env_path=tmp_path / "missing.env")
    assert config.paper_doi == "10.1/other"
    assert config.mailto == "me@example.org"
    assert config.mode == "single"
    assert config.data_dir == Path.home() / "custom-dir"
    assert config.openalex.page_delay == 0.5
    assert config.openalex.max_pages == 10
    assert config.openalex.per_page == 200
    assert config.semantic_scholar.api_key_env == "CUSTOM_KEY"
    assert config.csv_urls == ["https://a.example/c.csv"]

def test_load_config_env(tmp_path, monkeypatch):
    _clear_env(monkeypatch, "CITATION_DASHBOARD_MAILTO")
    _clear_env(monkeypatch, "SEMANTIC_SCHOLAR_API_KEY")
    env_file = tmp_path / ".env"
    with env_file.open("w") as f:
        f.write("SEMANTIC_SCHOLAR_API_KEY=test-key\nCITATION_DASHBOARD_MAILTO=env@example.org\n")

    config = load_config(config_path=tmp_path / "missing.yaml", env_path=env_file)
    assert config.semantic_scholar.api_key == "test-key"
    assert config.mailto == "env@example.org"

def test_load_config_rejects_unknown_mode(tmp_path):
    yaml_file = tmp_path / "config.yaml"
    yaml_file.write_text("mode: triple\n")
    with pytest.raises(ValueError, match="Unknown mode"):
        load_config(config_path=yaml_file, env_path=tmp_path / "missing.env")
