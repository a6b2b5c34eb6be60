"""
Configuration management for the Now Playing collage renderer.

Settings start from the environment defaults in ``constants``, may be
overridden by a YAML file, and finally by command line flags.
"""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from ruamel.yaml import YAML

from .constants import (
    logger,
    BASE_URL,
    FONTS_DIR,
    HTTP_TIMEOUT,
    IMAGES_DIR,
    MAX_WORKERS,
    OUTPUT_DIR,
    POSTER_CACHE_SUBDIR,
    STRICT_FONTS,
    USE_PALETTE,
)


@dataclass(frozen=True)
class Settings:
    """Startup configuration for a single run."""

    base_url: str = BASE_URL
    images_dir: Path = Path(IMAGES_DIR)
    fonts_dir: Path = Path(FONTS_DIR)
    output_dir: Path = Path(OUTPUT_DIR)
    use_palette: bool = USE_PALETTE
    max_workers: int = MAX_WORKERS
    http_timeout: float = HTTP_TIMEOUT
    strict_fonts: bool = STRICT_FONTS
    # Month casing for the output file name and the on-image sub-header
    lowercase_filename_months: bool = True
    lowercase_subheader_months: bool = True

    @property
    def poster_cache_dir(self) -> Path:
        return self.images_dir / POSTER_CACHE_SUBDIR

    def ensure_dirs(self) -> None:
        self.poster_cache_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)


_PATH_FIELDS = {'images_dir', 'fonts_dir', 'output_dir'}
_BOOL_FIELDS = {'use_palette', 'strict_fonts', 'lowercase_filename_months', 'lowercase_subheader_months'}


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read a YAML file and return its contents."""
    yaml_parser = YAML(typ='safe')
    with path.open('r') as f:
        return dict(yaml_parser.load(f) or {})


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def _coerce(name: str, value: Any) -> Any:
    if name in _PATH_FIELDS:
        return Path(str(value))
    if name in _BOOL_FIELDS:
        return _coerce_bool(value)
    if name == 'max_workers':
        workers = int(value)
        if workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {workers}")
        return workers
    if name == 'http_timeout':
        return float(value)
    return str(value)


def apply_overrides(settings: Settings, overrides: Dict[str, Any]) -> Settings:
    """
    Return a copy of ``settings`` with the given values applied.

    ``None`` values are skipped so unset CLI flags keep the current value.
    Unknown keys are logged and ignored.
    """
    known = {f.name for f in fields(Settings)}
    changes: Dict[str, Any] = {}

    for key, value in overrides.items():
        if value is None:
            continue
        if key not in known:
            logger.warning(f"CONFIG_UNKNOWN_KEY key={key}")
            continue
        changes[key] = _coerce(key, value)

    return replace(settings, **changes)


def load_settings(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> Settings:
    """
    Build the run settings.

    Args:
        config_path: Optional YAML file whose top-level keys match Settings fields
        overrides: Values from the command line (``None`` means "not given")

    Raises:
        FileNotFoundError: if ``config_path`` is given but does not exist
    """
    settings = Settings()

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        settings = apply_overrides(settings, _read_yaml(config_path))
        logger.info(f"Loaded config: {config_path}")

    if overrides:
        settings = apply_overrides(settings, overrides)

    return settings
