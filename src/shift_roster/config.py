"""
Application settings loaded from the environment.

Values come from process environment variables, optionally seeded from a
``.env`` file.
"""

import os
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when required settings are missing or malformed"""
    pass


@dataclass
class Settings:
    """Runtime settings for the roster application"""
    supabase_url: str = ""
    supabase_key: str = ""
    log_dir: Path = Path("logs")
    log_level: str = "INFO"
    start_month: Optional[Tuple[int, int]] = None  # (year, month)

    @property
    def has_credentials(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def require_credentials(self):
        """Raise ConfigurationError unless the store can be reached"""
        missing = []
        if not self.supabase_url:
            missing.append("SUPABASE_URL")
        if not self.supabase_key:
            missing.append("SUPABASE_KEY")
        if missing:
            raise ConfigurationError(
                f"Missing required settings: {', '.join(missing)}"
            )

    def initial_month(self) -> date:
        """First day of the month the grid opens on"""
        if self.start_month:
            year, month = self.start_month
            return date(year, month, 1)
        today = date.today()
        return date(today.year, today.month, 1)


def _parse_month(value: str) -> Tuple[int, int]:
    try:
        year_str, month_str = value.strip().split("-")
        year, month = int(year_str), int(month_str)
    except ValueError:
        raise ConfigurationError(f"Invalid month '{value}', expected YYYY-MM")
    if not 1 <= month <= 12:
        raise ConfigurationError(f"Invalid month '{value}', expected YYYY-MM")
    return year, month


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build Settings from the environment (and a .env file when present)"""
    if env_file:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(override=False)

    env = os.environ
    url = env.get("SUPABASE_URL") or env.get("NEXT_PUBLIC_SUPABASE_URL", "")
    key = env.get("SUPABASE_KEY") or env.get("NEXT_PUBLIC_SUPABASE_ANON_KEY", "")

    start_month = None
    raw_month = env.get("SHIFT_ROSTER_START_MONTH")
    if raw_month:
        start_month = _parse_month(raw_month)

    settings = Settings(
        supabase_url=url.strip(),
        supabase_key=key.strip(),
        log_dir=Path(env.get("SHIFT_ROSTER_LOG_DIR", "logs")),
        log_level=env.get("SHIFT_ROSTER_LOG_LEVEL", "INFO").upper(),
        start_month=start_month,
    )
    logger.debug(f"Settings loaded (credentials present: {settings.has_credentials})")
    return settings
