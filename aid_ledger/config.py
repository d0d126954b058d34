import logging
import os
from dataclasses import dataclass

log = logging.getLogger(__name__)

DEFAULT_URGENCY_WEIGHT = 2.5


@dataclass(frozen=True)
class Settings:
    data_path: str = "aid_ledger_data.json"
    # urgency_score = urgency_level * urgency_weight; must stay positive so
    # HIGH > MEDIUM > LOW.
    urgency_weight: float = DEFAULT_URGENCY_WEIGHT
    # Refuse donations from donors an admin has not verified yet.
    require_verified_donors: bool = False
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    log_level: str = "INFO"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def _env_weight(name: str) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return DEFAULT_URGENCY_WEIGHT
    try:
        weight = float(raw)
    except ValueError:
        log.warning("Ignoring %s=%r: not a number", name, raw)
        return DEFAULT_URGENCY_WEIGHT
    if weight <= 0:
        log.warning("Ignoring %s=%r: must be positive", name, raw)
        return DEFAULT_URGENCY_WEIGHT
    return weight


def load_settings() -> Settings:
    return Settings(
        data_path=os.getenv("AID_LEDGER_DATA_PATH", "").strip() or "aid_ledger_data.json",
        urgency_weight=_env_weight("AID_LEDGER_URGENCY_WEIGHT"),
        require_verified_donors=_env_flag("AID_LEDGER_REQUIRE_VERIFIED_DONORS"),
        gemini_api_key=os.getenv("GEMINI_API_KEY", "").strip(),
        gemini_model=os.getenv("GEMINI_MODEL", "").strip() or "gemini-2.0-flash",
        log_level=os.getenv("AID_LEDGER_LOG_LEVEL", "").strip() or "INFO",
    )
