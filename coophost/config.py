"""
Configuration management for coophost.

Handles:
- Presence attribute keys
- Discovery timing (host TTL, scan interval)
- Session group settings
- Transport settings for the send-data operation
"""

import json
import logging
from dataclasses import dataclass, field, fields
from enum import IntEnum
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Default paths
DEFAULT_DATA_DIR = Path.home() / ".coophost"


class GroupVisibility(IntEnum):
    """Session group visibility (ELobbyType values)."""
    PRIVATE = 0
    FRIENDS_ONLY = 1
    PUBLIC = 2
    INVISIBLE = 3


def _known(cls, data: dict) -> dict:
    # Filter to only known fields to handle config evolution
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class PresenceKeys:
    """Presence attribute keys read and written by coophost."""
    status_key: str = "coop_status"  # session-status marker read by scanners
    version_key: str = "coop_version"
    connect_key: str = "connect"
    text_key: str = "status"  # human readable status line
    display_key: str = "steam_display"
    hosting_marker: str = "hosting"

    def to_dict(self) -> dict:
        return {
            "status_key": self.status_key,
            "text_key": self.text_key,
            "version_key": self.version_key,
            "connect_key": self.connect_key,
            "display_key": self.display_key,
            "hosting_marker": self.hosting_marker
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PresenceKeys":
        return cls(**_known(cls, data))


@dataclass
class DiscoveryConfig:
    """Timing for host discovery."""
    host_ttl: float = 30.0  # seconds before an unrefreshed host expires
    scan_interval: float = 3.0  # minimum seconds between friend scans

    def to_dict(self) -> dict:
        return {
            "host_ttl": self.host_ttl,
            "scan_interval": self.scan_interval
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DiscoveryConfig":
        return cls(**_known(cls, data))


@dataclass
class GroupConfig:
    """Session group settings."""
    visibility: GroupVisibility = GroupVisibility.FRIENDS_ONLY
    max_members: int = 50
    retry_interval: float = 5.0  # seconds between group creation retries while ungrouped

    def to_dict(self) -> dict:
        return {
            "visibility": int(self.visibility),
            "max_members": self.max_members,
            "retry_interval": self.retry_interval
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GroupConfig":
        filtered = _known(cls, data)
        if "visibility" in filtered:
            filtered["visibility"] = GroupVisibility(filtered["visibility"])
        return cls(**filtered)


@dataclass
class TransportConfig:
    """Defaults for the send-data operation."""
    channel: int = 0
    send_type: int = 2  # reliable

    def to_dict(self) -> dict:
        return {"channel": self.channel, "send_type": self.send_type}

    @classmethod
    def from_dict(cls, data: dict) -> "TransportConfig":
        return cls(**_known(cls, data))


@dataclass
class Config:
    """
    Main coophost configuration.

    Stored at ~/.coophost/config.json
    """
    game_title: str = "Co-op"
    target_app_id: int = 0  # app id friends must be playing to be scanned
    mod_version: str = "1.0.0"

    # Paths
    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)

    # Components
    presence: PresenceKeys = field(default_factory=PresenceKeys)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    group: GroupConfig = field(default_factory=GroupConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.json"

    def session_name_for(self, display_name: str) -> str:
        """Session name shown for a friend's hosted game."""
        return f"{display_name}'s {self.game_title}"

    def ensure_data_dir(self) -> None:
        """Create data directory if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict:
        return {
            "game_title": self.game_title,
            "target_app_id": self.target_app_id,
            "mod_version": self.mod_version,
            "presence": self.presence.to_dict(),
            "discovery": self.discovery.to_dict(),
            "group": self.group.to_dict(),
            "transport": self.transport.to_dict()
        }

    def save(self) -> None:
        """Save configuration to disk."""
        self.ensure_data_dir()

        with open(self.config_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.debug(f"Configuration saved to {self.config_path}")

    @classmethod
    def from_dict(cls, data: dict, data_dir: Optional[Path] = None) -> "Config":
        config = cls(
            data_dir=data_dir or DEFAULT_DATA_DIR,
            game_title=data.get("game_title", "Co-op"),
            target_app_id=data.get("target_app_id", 0),
            mod_version=data.get("mod_version", "1.0.0")
        )

        if "presence" in data:
            config.presence = PresenceKeys.from_dict(data["presence"])
        if "discovery" in data:
            config.discovery = DiscoveryConfig.from_dict(data["discovery"])
        if "group" in data:
            config.group = GroupConfig.from_dict(data["group"])
        if "transport" in data:
            config.transport = TransportConfig.from_dict(data["transport"])

        return config

    @classmethod
    def load(cls, data_dir: Optional[Path] = None) -> "Config":
        """Load configuration from disk."""
        data_dir = data_dir or DEFAULT_DATA_DIR
        config_path = data_dir / "config.json"

        if not config_path.exists():
            return cls(data_dir=data_dir)

        with open(config_path, 'r') as f:
            data = json.load(f)

        return cls.from_dict(data, data_dir=data_dir)

    @classmethod
    def exists(cls, data_dir: Optional[Path] = None) -> bool:
        """Check if configuration exists."""
        data_dir = data_dir or DEFAULT_DATA_DIR
        return (data_dir / "config.json").exists()


# Global config instance
_config: Optional[Config] = None


def get_config(data_dir: Optional[Path] = None) -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load(data_dir)
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
