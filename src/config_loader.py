import copy
import os
from dataclasses import dataclass
from typing import Optional

import yaml
from dotenv import load_dotenv

from abo_models import ImporterError


DEFAULTS = {
    "application": {"name": "AboImporter", "version": "0.1.0"},
    "ledger": {"default_bank_code": "", "timeout": 60},
    "mapping": {"description_fallback": "Bank transaction from ABO import"},
    "lock": {"dir": ".", "timeout": 3600},
    "default_input": "vystup.abo",
}

REQUIRED_VARS = ("POHODA_URL", "POHODA_USERNAME", "POHODA_PASSWORD", "POHODA_ICO")


class ConfigError(ImporterError):
    pass


@dataclass
class ImporterSettings:
    pohoda_url: str
    username: str
    password: str
    ico: str
    app_name: str
    app_version: str
    job_id: str = "n/a"
    bank_ids: Optional[str] = None
    default_bank_code: str = ""
    description_fallback: str = "Bank transaction from ABO import"
    timeout: float = 60
    result_file: str = ""
    debug: bool = False
    parser: Optional[str] = None
    lock_dir: str = "."
    lock_timeout: int = 3600
    default_input: str = "vystup.abo"


def load_importer_config(path: Optional[str] = None) -> dict:
    path = path or os.path.join(os.path.dirname(os.path.dirname(__file__)), "config", "importer.yml")
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return copy.deepcopy(DEFAULTS)

    # shallow merge defaults
    merged = copy.deepcopy(DEFAULTS)
    for k, v in (cfg or {}).items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            mv = dict(merged[k])
            mv.update(v)
            merged[k] = mv
        else:
            merged[k] = v
    return merged


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def _number(name: str, default, cast):
    raw = os.getenv(name)
    if raw in (None, ""):
        return cast(default)
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def load_settings(env_file: Optional[str] = ".env", config_path: Optional[str] = None) -> ImporterSettings:
    """Load the environment file into os.environ and build the settings.

    Variables already set in the process environment win over the file.
    """
    if env_file and os.path.exists(env_file):
        load_dotenv(env_file)
    elif env_file and env_file != ".env":
        raise ConfigError(f"Environment file not found: {env_file}")

    missing = [name for name in REQUIRED_VARS if not os.getenv(name)]
    if missing:
        raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

    cfg = load_importer_config(config_path)
    app, ledger, lock = cfg["application"], cfg["ledger"], cfg["lock"]

    return ImporterSettings(
        pohoda_url=os.getenv("POHODA_URL"),
        username=os.getenv("POHODA_USERNAME"),
        password=os.getenv("POHODA_PASSWORD"),
        ico=os.getenv("POHODA_ICO"),
        app_name=os.getenv("APP_NAME") or str(app["name"]),
        app_version=str(app["version"]),
        job_id=os.getenv("MULTIFLEXI_JOB_ID") or "n/a",
        bank_ids=os.getenv("POHODA_BANK_IDS") or None,
        default_bank_code=os.getenv("POHODA_DEFAULT_BANK_CODE") or str(ledger.get("default_bank_code") or ""),
        description_fallback=str(cfg["mapping"]["description_fallback"]),
        timeout=_number("POHODA_TIMEOUT", ledger.get("timeout", 60), float),
        result_file=os.getenv("RESULT_FILE", ""),
        debug=_flag(os.getenv("DEBUG")),
        parser=os.getenv("ABO_PARSER") or None,
        lock_dir=os.getenv("IMPORT_LOCK_DIR") or str(lock.get("dir", ".")),
        lock_timeout=_number("IMPORT_LOCK_TIMEOUT", lock.get("timeout", 3600), int),
        default_input=str(cfg.get("default_input") or "vystup.abo"),
    )
