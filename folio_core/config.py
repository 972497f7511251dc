"""
Configuration for Folio.

Settings are read from a YAML file. Anything missing falls back to the
defaults below, so an absent config file is a valid configuration.
"""

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


DEFAULT_CONFIG_PATH = "folio.yaml"


def _parse_mode(value: Union[int, str]) -> int:
    """Accept a YAML octal int (0755) or an octal string ("0755", "0o755")."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid permission mode: {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(str(value), 8)
    except ValueError:
        raise ValueError(f"Invalid permission mode: {value!r}")


@dataclass
class Settings:
    """Runtime settings shared by file and directory operations."""
    encoding: str = "utf-8"
    hash_algorithm: str = "md5"
    create_mode: int = 0o755
    copy_mode: int = 0o777
    audit_enabled: bool = False
    audit_log_path: str = "data/audit_log.jsonl"

    def __post_init__(self):
        if self.hash_algorithm not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported hash algorithm: {self.hash_algorithm}")
        # shake_* digests have no fixed length.
        if hashlib.new(self.hash_algorithm).digest_size == 0:
            raise ValueError(f"Hash algorithm has no fixed digest size: {self.hash_algorithm}")

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "Settings":
        """Build settings from a parsed config mapping."""
        files = config.get("files", {}) or {}
        directories = config.get("directories", {}) or {}
        audit = config.get("audit", {}) or {}

        defaults = cls()
        return cls(
            encoding=files.get("encoding", defaults.encoding),
            hash_algorithm=files.get("hash_algorithm", defaults.hash_algorithm),
            create_mode=_parse_mode(directories.get("create_mode", defaults.create_mode)),
            copy_mode=_parse_mode(directories.get("copy_mode", defaults.copy_mode)),
            audit_enabled=bool(audit.get("enabled", defaults.audit_enabled)),
            audit_log_path=str(audit.get("log_path", defaults.audit_log_path)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": {
                "encoding": self.encoding,
                "hash_algorithm": self.hash_algorithm,
            },
            "directories": {
                "create_mode": oct(self.create_mode),
                "copy_mode": oct(self.copy_mode),
            },
            "audit": {
                "enabled": self.audit_enabled,
                "log_path": self.audit_log_path,
            },
        }

    def save(self, config_path: str = DEFAULT_CONFIG_PATH) -> None:
        """
        Save settings to a YAML file.

        Other top-level keys already present in the file are kept.
        """
        path = Path(config_path)
        config: Dict[str, Any] = {"folio": self.to_dict()}

        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                existing = yaml.safe_load(f) or {}
            if isinstance(existing, dict):
                existing["folio"] = config["folio"]
                config = existing

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(config, f, default_flow_style=False)


def load_settings(config_path: Optional[str] = None) -> Settings:
    """
    Load settings from a YAML file.

    Args:
        config_path: Path to the YAML file (default: folio.yaml)

    Returns:
        Settings built from the file, or defaults if the file is missing
        or cannot be parsed

    Raises:
        ValueError: If the file holds an invalid mode or hash algorithm
    """
    path = Path(config_path or DEFAULT_CONFIG_PATH)
    if not path.exists():
        return Settings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return Settings()

    if not isinstance(config, dict):
        return Settings()
    return Settings.from_dict(config.get("folio", config) or {})
