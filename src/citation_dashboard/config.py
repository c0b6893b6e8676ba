"""Configuration loading from .env and YAML files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

DEFAULT_PAPER_DOI = "10.48550/arXiv.2309.08532"
MODES = ("dual", "single", "csv")


@dataclass
class OpenAlexConfig:
    per_page: int = 200
    page_delay: float = 0.1
    max_pages: int = 1000


@dataclass
class SemanticScholarConfig:
    limit: int = 1000
    api_key_env: str = "SEMANTIC_SCHOLAR_API_KEY"

    @property
    def api_key(self) -> str:
        return os.environ.get(self.api_key_env, "")


@dataclass
class Config:
    paper_doi: str = DEFAULT_PAPER_DOI
    mailto: str = ""
    mode: str = "dual"
    openalex: OpenAlexConfig = field(default_factory=OpenAlexConfig)
    semantic_scholar: SemanticScholarConfig = field(default_factory=SemanticScholarConfig)
    csv_urls: list[str] = field(default_factory=list)
    data_dir: Path = field(default_factory=lambda: Path.home() / ".citation-dashboard")
    timeout: float = 30.0

    @property
    def cache_path(self) -> Path:
        return self.data_dir / "cache.db"


def load_config(config_path: Path | None = None, env_path: Path | None = None) -> Config:
    """Load configuration from .env and optional YAML config file."""
    env_file = env_path or Path(".env")
    if env_file.exists():
        load_dotenv(env_file)

    config = Config()

    yaml_file = config_path or Path("config.yaml")
    if yaml_file.exists():
        with yaml_file.open() as f:
            raw = yaml.safe_load(f) or {}

        if "paper_doi" in raw:
            config.paper_doi = raw["paper_doi"]

        if "mailto" in raw:
            config.mailto = raw["mailto"]

        if "mode" in raw:
            config.mode = raw["mode"]

        if "openalex" in raw:
            oa_raw = raw["openalex"] or {}
            config.openalex = OpenAlexConfig(
                per_page=int(oa_raw.get("per_page", config.openalex.per_page)),
                page_delay=float(oa_raw.get("page_delay", config.openalex.page_delay)),
                max_pages=int(oa_raw.get("max_pages", config.openalex.max_pages)),
            )

        if "semantic_scholar" in raw:
            ss_raw = raw["semantic_scholar"] or {}
            config.semantic_scholar = SemanticScholarConfig(
                limit=int(ss_raw.get("limit", config.semantic_scholar.limit)),
                api_key_env=ss_raw.get("api_key_env", config.semantic_scholar.api_key_env),
            )

        if "csv_urls" in raw:
            config.csv_urls = list(raw["csv_urls"] or [])

        if "data_dir" in raw:
            config.data_dir = Path(raw["data_dir"]).expanduser()

        if "timeout" in raw:
            config.timeout = float(raw["timeout"])

    mailto_env = os.environ.get("CITATION_DASHBOARD_MAILTO")
    if mailto_env:
        config.mailto = mailto_env

    if config.mode not in MODES:
        raise ValueError(f"Unknown mode {config.mode!r}; expected one of {', '.join(MODES)}")

    return config
