"""TOML configuration loader for the shopping trip engine."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class ClaudeClassifierConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class ClassifierConfig:
    backend: str = "heuristic"
    min_confidence: float = 0.5
    cache_ttl_seconds: float = 24 * 60 * 60
    cache_max_size: int = 1000
    claude: ClaudeClassifierConfig = field(default_factory=ClaudeClassifierConfig)


@dataclass
class BackendConfig:
    base_url: str = "http://127.0.0.1:5000"
    api_key: str = ""
    timeout: float = 30.0


@dataclass
class SessionConfig:
    db_path: str = "~/.config/shoptrip/sessions.db"
    max_age_hours: float = 24.0


@dataclass
class RouteConfig:
    default_retailer: str = "Store"


@dataclass
class TripConfig:
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    route: RouteConfig = field(default_factory=RouteConfig)


def load_config(path: str | Path | None = None) -> TripConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cls = raw.get("classifier", {})
    bkd = raw.get("backend", {})
    ses = raw.get("session", {})
    rte = raw.get("route", {})

    claude_cfg = cls.get("claude", {})

    # Resolve API keys: config file → environment variable
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )
    backend_api_key = bkd.get("api_key", "") or os.environ.get(
        "SHOPTRIP_API_KEY", ""
    )

    return TripConfig(
        classifier=ClassifierConfig(
            backend=cls.get("backend", "heuristic"),
            min_confidence=cls.get("min_confidence", 0.5),
            cache_ttl_seconds=cls.get("cache_ttl_seconds", 24 * 60 * 60),
            cache_max_size=cls.get("cache_max_size", 1000),
            claude=ClaudeClassifierConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
        ),
        backend=BackendConfig(
            base_url=bkd.get("base_url", "http://127.0.0.1:5000"),
            api_key=backend_api_key,
            timeout=bkd.get("timeout", 30.0),
        ),
        session=SessionConfig(
            db_path=ses.get("db_path", "~/.config/shoptrip/sessions.db"),
            max_age_hours=ses.get("max_age_hours", 24.0),
        ),
        route=RouteConfig(
            default_retailer=rte.get("default_retailer", "Store"),
        ),
    )
