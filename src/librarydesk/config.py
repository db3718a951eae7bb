"""Configuration management for librarydesk.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

DEFAULT_LOAN_DAYS = 14
DEFAULT_FINE_PER_DAY = 50
DEFAULT_DUE_SOON_DAYS = 3
DEFAULT_HOLD_GRACE_HOURS = 24
DEFAULT_EVENT_REMINDER_DAYS = 3


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Lending rules
    loan_days: int
    renewal_days: int
    fine_per_day: int
    due_soon_days: int

    # Reservations
    hold_grace_hours: int  # advisory only, shown in hand-off messages

    # Events
    event_reminder_days: int  # events starting within this many days count as upcoming

    # Notifications
    notification_capacity: int  # newest notifications kept per member

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "LIBRARYDESK_DB_PATH",
            str(Path.home() / ".librarydesk" / "library.db"),
        )
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            loan_days=int(os.environ.get("LIBRARYDESK_LOAN_DAYS", str(DEFAULT_LOAN_DAYS))),
            renewal_days=int(
                os.environ.get("LIBRARYDESK_RENEWAL_DAYS", str(DEFAULT_LOAN_DAYS))
            ),
            fine_per_day=int(
                os.environ.get("LIBRARYDESK_FINE_PER_DAY", str(DEFAULT_FINE_PER_DAY))
            ),
            due_soon_days=int(
                os.environ.get("LIBRARYDESK_DUE_SOON_DAYS", str(DEFAULT_DUE_SOON_DAYS))
            ),
            hold_grace_hours=int(
                os.environ.get("LIBRARYDESK_HOLD_GRACE_HOURS", str(DEFAULT_HOLD_GRACE_HOURS))
            ),
            event_reminder_days=int(
                os.environ.get(
                    "LIBRARYDESK_EVENT_REMINDER_DAYS", str(DEFAULT_EVENT_REMINDER_DAYS)
                )
            ),
            notification_capacity=int(
                os.environ.get("LIBRARYDESK_NOTIFICATION_CAPACITY", "50")
            ),
            log_level=os.environ.get("LIBRARYDESK_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        # Check database directory is writable
        if str(self.db_path) != ":memory:" and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        for name in ("loan_days", "renewal_days", "notification_capacity"):
            if getattr(self, name) <= 0:
                errors.append(f"{name} must be positive")
        if self.fine_per_day < 0:
            errors.append("fine_per_day must not be negative")
        if self.event_reminder_days < 0:
            errors.append("event_reminder_days must not be negative")
        if self.due_soon_days < 0:
            errors.append("due_soon_days must not be negative")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
