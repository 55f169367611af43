"""
Configuration loader for the Claim Notifier service.
Reads settings from YAML file with environment variable substitution.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass
class DispatcherConfig:
    requests_per_second: float = 1.0    # email provider quota
    max_retries: int = 3
    retry_delay_seconds: float = 5.0


@dataclass
class EmailConfig:
    provider: str = "resend"
    api_key: str = ""                   # empty → dry-run, nothing leaves the process
    base_url: str = "https://api.resend.com"
    from_email: str = "noreply@example.com"
    from_name: str = "Gibraltar Reimbursement"
    timeout_seconds: float = 30.0


@dataclass
class StoreConfig:
    backend: str = "memory"             # "memory" | "supabase"
    supabase_url: str = ""
    supabase_key: str = ""
    table: str = "email_notifications"


@dataclass
class EndpointConfig:
    url: str = "http://localhost:8000/api/send-notification"
    timeout_seconds: float = 30.0


@dataclass
class Settings:
    app_name: str = "ClaimNotifier"
    debug: bool = False
    dispatcher: DispatcherConfig = field(default_factory=DispatcherConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    endpoint: EndpointConfig = field(default_factory=EndpointConfig)


_settings: Optional[Settings] = None


def _substitute_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""
    pattern = re.compile(r'\$\{(\w+)\}')
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))
    return pattern.sub(replacer, value)


def _process_values(obj: Any) -> Any:
    """Recursively substitute env vars in all string values."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_values(v) for v in obj]
    return obj


def load_settings(config_path: str = None) -> Settings:
    """Load settings from YAML file."""
    global _settings

    if config_path is None:
        config_path = os.environ.get(
            "CLAIM_NOTIFIER_CONFIG",
            str(Path(__file__).parent / "settings.yaml"),
        )

    settings = Settings()

    if Path(config_path).exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        raw = _process_values(raw)

        settings.app_name = raw.get("app_name", settings.app_name)
        settings.debug = raw.get("debug", settings.debug)

        if "dispatcher" in raw:
            d = raw["dispatcher"]
            settings.dispatcher = DispatcherConfig(
                requests_per_second=float(d.get("requests_per_second", 1.0)),
                max_retries=int(d.get("max_retries", 3)),
                retry_delay_seconds=float(d.get("retry_delay_seconds", 5.0)),
            )

        if "email" in raw:
            em = raw["email"]
            settings.email = EmailConfig(
                provider=em.get("provider", "resend"),
                api_key=em.get("api_key", ""),
                base_url=em.get("base_url", settings.email.base_url),
                from_email=em.get("from_email", settings.email.from_email),
                from_name=em.get("from_name", settings.email.from_name),
                timeout_seconds=float(em.get("timeout_seconds", 30.0)),
            )

        if "store" in raw:
            st = raw["store"]
            settings.store = StoreConfig(
                backend=st.get("backend", "memory"),
                supabase_url=st.get("supabase_url", ""),
                supabase_key=st.get("supabase_key", ""),
                table=st.get("table", "email_notifications"),
            )

        if "endpoint" in raw:
            ep = raw["endpoint"]
            settings.endpoint = EndpointConfig(
                url=ep.get("url", settings.endpoint.url),
                timeout_seconds=float(ep.get("timeout_seconds", 30.0)),
            )

    _settings = settings
    return settings


def get_settings() -> Settings:
    """Return cached settings or load from default path."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def is_configured(value: str) -> bool:
    """True when a setting holds a real value, not an unresolved ${VAR} placeholder."""
    return bool(value) and not _substitute_env_vars(value).startswith("${")
