"""
Configuration management using Pydantic Settings.

Architecture Decision: Why pydantic-settings?
- Type-safe configuration with validation
- Supports multiple sources (YAML, env vars, defaults)
- Easy to test with different configurations
"""

from pathlib import Path
from typing import Optional
import yaml

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with multiple sources:
    1. Default values (hardcoded)
    2. YAML config file
    3. Environment variables (highest priority)
    """
    model_config = SettingsConfigDict(
        env_prefix='BAC_',
        env_file='.env',
        env_file_encoding='utf-8',
        env_ignore_empty=True,
        extra='ignore'
    )

    # Application paths
    app_name: str = "BallAndChain"
    config_dir: Optional[Path] = None
    # Storage root, BAC_ROOT_FOLDER
    root_folder: Optional[Path] = None

    # Logging
    log_level: str = "INFO"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Includes values coming from the environment, which win over YAML
        explicit = set(self.model_fields_set)
        self._init_config_dir()
        self._load_yaml_config(explicit)
        self._init_root()

    def _init_config_dir(self):
        """Initialize the default config path based on the user's home directory"""
        if self.config_dir is None:
            self.config_dir = Path.home() / '.config' / self.app_name.lower()

    def _init_root(self):
        """Default storage root: ~/.ballandchain"""
        if self.root_folder is None:
            self.root_folder = Path.home() / f'.{self.app_name.lower()}'
        self.root_folder = Path(self.root_folder).expanduser()

    def _load_yaml_config(self, explicit: set):
        """Load root_folder and log_level from settings.yaml, below env vars"""
        # First check in workspace config folder
        config_file = Path("config/settings.yaml")
        if not config_file.exists():
            # Then check in user's config directory
            config_file = self.config_dir / "settings.yaml"

        if config_file.exists():
            with open(config_file, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f)
            if config_data:
                if 'root_folder' in config_data and 'root_folder' not in explicit:
                    self.root_folder = Path(config_data['root_folder'])
                if 'log_level' in config_data and 'log_level' not in explicit:
                    self.log_level = str(config_data['log_level'])

    def save_config(self):
        """Save the current storage settings to the YAML file"""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        config_file = self.config_dir / "settings.yaml"
        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                {'root_folder': str(self.root_folder), 'log_level': self.log_level},
                f,
                default_flow_style=False
            )

    def get_root(self) -> Path:
        """Get the storage root directory"""
        return self.root_folder


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings():
    """Reload settings from file"""
    global _settings
    _settings = Settings()
    return _settings
