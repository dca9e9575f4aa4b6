"""Configuration for Content Indexer runs."""

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import find_dotenv, load_dotenv

from content_indexer.core.aggregator import DEFAULT_CATEGORY_COLLECTION, DEFAULT_COLLECTIONS
from content_indexer.core.discovery import DEFAULT_PATTERN
from content_indexer.core.models import ConfigError
from content_indexer.images.scanner import DEFAULT_IMAGE_FIELDS
from content_indexer.images.uploader import DEFAULT_UPLOAD_TIMEOUT

_PATH_FIELDS = ('input_path', 'output_dir')
_LIST_FIELDS = ('collections', 'image_fields')
_BOOL_FIELDS = ('recursive', 'process_images', 'generate_json', 'overwrite')


@dataclass
class IndexerConfig:
    """Settings for one indexing run.

    Cloudflare credentials come from the environment (or a `.env` file);
    everything else from a YAML config file and command-line flags.
    """
    input_path: Optional[Path] = None
    collections: List[str] = field(default_factory=lambda: list(DEFAULT_COLLECTIONS))
    category_collection: Optional[str] = DEFAULT_CATEGORY_COLLECTION
    recursive: bool = False
    pattern: str = DEFAULT_PATTERN
    process_images: bool = True
    generate_json: bool = True
    output_dir: Optional[Path] = None
    overwrite: bool = True
    image_fields: List[str] = field(default_factory=lambda: list(DEFAULT_IMAGE_FIELDS))
    upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT
    cloudflare_account_id: Optional[str] = None
    cloudflare_api_token: Optional[str] = None

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "IndexerConfig":
        """Create config from environment variables.

        Args:
            dotenv: Load a `.env` file found from the working directory
                    first, without overriding variables already set
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))

        config = cls(
            cloudflare_account_id=os.getenv("CLOUDFLARE_ACCOUNT_ID") or None,
            cloudflare_api_token=os.getenv("CLOUDFLARE_API_TOKEN") or None,
        )

        timeout = os.getenv("CONTENT_INDEXER_UPLOAD_TIMEOUT")
        if timeout:
            try:
                config.upload_timeout = float(timeout)
            except ValueError:
                raise ConfigError(f"CONTENT_INDEXER_UPLOAD_TIMEOUT is not a number: {timeout!r}")

        return config

    def update_from_file(self, path: Path) -> "IndexerConfig":
        """Overlay settings from a YAML config file.

        Args:
            path: YAML file whose top-level keys are IndexerConfig fields

        Returns:
            self, for chaining

        Raises:
            ConfigError: If the file is unreadable, malformed or has
                         unknown keys
        """
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        return self.update(data)

    def update(self, values: Dict[str, Any]) -> "IndexerConfig":
        """Overlay settings from a dict, ignoring None values.

        Raises:
            ConfigError: On unknown keys or values of the wrong type
        """
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        for key, value in values.items():
            if value is None:
                continue
            setattr(self, key, _coerce(key, value))

        return self

    def validate(self) -> None:
        """Check the config before any file is touched.

        Raises:
            ConfigError: If required settings are missing
        """
        if self.input_path is None:
            raise ConfigError("No input path given")

        input_path = Path(self.input_path)
        if self.generate_json:
            if not input_path.is_dir():
                raise ConfigError(f"Input directory not found: {input_path}")
        elif not input_path.exists():
            raise ConfigError(f"Input path not found: {input_path}")

        if not self.collections:
            raise ConfigError("At least one collection is required")

        if not self.pattern:
            raise ConfigError("pattern must not be empty")

        if self.process_images:
            if not self.cloudflare_account_id or not self.cloudflare_api_token:
                raise ConfigError(
                    "CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN must be set "
                    "for image processing (or use --skip-images)"
                )
            if not self.image_fields:
                raise ConfigError("At least one image field name is required")
            if self.upload_timeout <= 0:
                raise ConfigError("upload_timeout must be positive")


def _coerce(key: str, value: Any) -> Any:
    """Check a config value against the type of its field."""
    if key in _PATH_FIELDS:
        if not isinstance(value, (str, os.PathLike)):
            raise ConfigError(f"{key} must be a path, got {value!r}")
        return Path(value)

    if key in _LIST_FIELDS:
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"{key} must be a list of strings, got {value!r}")
        return list(value)

    if key in _BOOL_FIELDS:
        if not isinstance(value, bool):
            raise ConfigError(f"{key} must be true or false, got {value!r}")
        return value

    if key == 'upload_timeout':
        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"upload_timeout must be a number, got {value!r}")
        return float(value)

    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a string, got {value!r}")
    return value
