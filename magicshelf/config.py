"""
Configuration management for magicshelf.

Handles loading and saving user configuration from:
- XDG config directory: ~/.config/magicshelf/config.json
- Fallback: ~/.magicshelf/config.json
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Filter engine settings."""
    max_facet_items: int = 100
    default_filter_mode: str = "and"


@dataclass
class CLIConfig:
    """CLI default options."""
    verbose: bool = False
    color: bool = True
    page_size: int = 50


@dataclass
class MagicShelfConfig:
    """Main magicshelf configuration."""
    engine: EngineConfig = field(default_factory=EngineConfig)
    cli: CLIConfig = field(default_factory=CLIConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "engine": asdict(self.engine),
            "cli": asdict(self.cli),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MagicShelfConfig':
        """Create from dictionary."""
        return cls(
            engine=EngineConfig(**data.get("engine", {})),
            cli=CLIConfig(**data.get("cli", {})),
        )


def get_config_path() -> Path:
    """
    Get configuration file path.

    Follows XDG Base Directory specification:
    1. ~/.config/magicshelf/config.json
    2. Fallback: ~/.magicshelf/config.json

    Returns:
        Path to config file
    """
    xdg_config_home = Path.home() / ".config"
    if xdg_config_home.exists():
        config_dir = xdg_config_home / "magicshelf"
    else:
        config_dir = Path.home() / ".magicshelf"

    return config_dir / "config.json"


def load_config(config_path: Optional[Path] = None) -> MagicShelfConfig:
    """
    Load configuration from file.

    Returns:
        MagicShelfConfig with loaded values, or defaults when the file is
        missing or unreadable
    """
    config_path = config_path or get_config_path()

    if not config_path.exists():
        return MagicShelfConfig()

    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
        return MagicShelfConfig.from_dict(data)
    except (json.JSONDecodeError, OSError, TypeError) as e:
        logger.warning(f"Failed to load config from {config_path}: {e}. Using default configuration")
        return MagicShelfConfig()


def save_config(config: MagicShelfConfig, config_path: Optional[Path] = None) -> Path:
    """
    Save configuration to file.

    Returns:
        Path the configuration was written to
    """
    config_path = config_path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def update_config(
    max_facet_items: Optional[int] = None,
    default_filter_mode: Optional[str] = None,
    cli_verbose: Optional[bool] = None,
    cli_color: Optional[bool] = None,
    cli_page_size: Optional[int] = None,
    config_path: Optional[Path] = None,
) -> MagicShelfConfig:
    """
    Update configuration.

    Only updates provided values, leaving others unchanged.
    """
    config = load_config(config_path)

    if max_facet_items is not None:
        if max_facet_items < 1:
            raise ValueError("max_facet_items must be at least 1")
        config.engine.max_facet_items = max_facet_items
    if default_filter_mode is not None:
        if default_filter_mode not in ("and", "or", "single"):
            raise ValueError(f"Unknown filter mode '{default_filter_mode}'")
        config.engine.default_filter_mode = default_filter_mode

    if cli_verbose is not None:
        config.cli.verbose = cli_verbose
    if cli_color is not None:
        config.cli.color = cli_color
    if cli_page_size is not None:
        config.cli.page_size = cli_page_size

    save_config(config, config_path)
    return config
