"""Country configuration for the sample frame pipeline.

A configuration is a plain dataclass loaded from TOML. Packaged presets live in
``sampleframe/configs``; a user file is layered on top of a preset and CLI
overrides are layered on top of both.
"""

import logging
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import tomli

from sampleframe.errors import ConfigError

logger = logging.getLogger("sampleframe.model.config")

PRESET_DIR = Path(__file__).parent.parent / "configs"

REQUIRED_BAND_ROLES = ("cropland", "building_distance")

BandRef = Union[str, int]
ColumnRef = Union[str, int]


@dataclass
class CountryConfig:
    """Parameters of one sampling deployment.

    Band references are band descriptions or 1-based band indexes. Admin
    column references are column names or 0-based positions in the
    administrative layer's attribute table.
    """

    name: str

    # Acquisition
    raster_url: Optional[str] = None
    admin_url: Optional[str] = None
    raster_file: Optional[str] = None
    admin_file: Optional[str] = None
    download_retries: int = 3
    download_backoff: float = 1.0
    download_timeout: float = 120.0

    # ROI mask
    band_roles: Dict[str, BandRef] = field(
        default_factory=lambda: {"cropland": 1, "building_distance": 2}
    )
    cropland_value: float = 1
    building_distance: float = 0.5

    # Sample size and design
    scale_factor: float = 1.0
    area_divisor: float = 16.0
    seed: int = 6405

    # Metadata and export
    grid_resolution: float = 10000.0
    admin_columns: Dict[str, ColumnRef] = field(default_factory=dict)
    gid_column: str = "gid"
    lon_column: str = "lon"
    lat_column: str = "lat"
    map_zoom: int = 8

    @property
    def output_columns(self) -> List[str]:
        """CSV header in output order."""
        return [
            *self.admin_columns.keys(),
            self.gid_column,
            self.lon_column,
            self.lat_column,
        ]

    def validate(self) -> List[str]:
        """Validate the configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.name:
            errors.append("Configuration name must not be empty")

        unknown = sorted(set(self.band_roles) - set(REQUIRED_BAND_ROLES))
        if unknown:
            errors.append(f"Unknown band roles: {', '.join(unknown)}")
        missing = [r for r in REQUIRED_BAND_ROLES if r not in self.band_roles]
        if missing:
            errors.append(f"Missing band roles: {', '.join(missing)}")
        for role, ref in self.band_roles.items():
            if isinstance(ref, bool) or not isinstance(ref, (str, int)):
                errors.append(f"Band role '{role}' must be a band name or index")
            elif isinstance(ref, int) and ref < 1:
                errors.append(f"Band index for '{role}' must be 1 or greater")

        if self.scale_factor <= 0:
            errors.append("Scale factor must be greater than 0")
        if self.area_divisor <= 0:
            errors.append("Area divisor must be greater than 0")
        if self.grid_resolution <= 0:
            errors.append("Grid resolution must be greater than 0")
        if self.building_distance < 0:
            errors.append("Building distance threshold must not be negative")

        if not self.admin_columns:
            errors.append("At least one administrative column is required")
        for out_name, ref in self.admin_columns.items():
            if isinstance(ref, bool) or not isinstance(ref, (str, int)):
                errors.append(f"Admin column '{out_name}' must be a name or index")

        header = self.output_columns
        if len(set(header)) != len(header):
            errors.append(f"Output columns are not unique: {header}")

        if not 0 <= self.map_zoom <= 20:
            errors.append("Map zoom must be between 0 and 20")
        if self.download_retries < 0:
            errors.append("Download retries must not be negative")

        return errors

    def check(self) -> "CountryConfig":
        """Raise ConfigError if the configuration is invalid."""
        errors = self.validate()
        if errors:
            raise ConfigError(errors, source=self.name)
        return self

    def with_overrides(self, **overrides: Any) -> "CountryConfig":
        """Return a copy with the non-None overrides applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base: Optional["CountryConfig"] = None):
        """Build a configuration from a mapping, optionally on top of ``base``."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(
                [f"Unknown configuration keys: {', '.join(unknown)}"],
                source=data.get("name") or (base.name if base else None),
            )

        if base is None:
            if "name" not in data:
                raise ConfigError(["Configuration name is required"])
            return cls(**data)

        merged = base.to_dict()
        merged.update(data)
        return cls(**merged)


def available_presets() -> List[str]:
    """Names of the packaged country presets."""
    return sorted(p.stem for p in PRESET_DIR.glob("*.toml"))


def _read_toml(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise ConfigError([f"Configuration file not found: {path}"])
    with path.open("rb") as f:
        try:
            return tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigError([f"Invalid TOML: {e}"], source=str(path)) from e


def load_preset(country: str) -> CountryConfig:
    """Load a packaged country preset by name (e.g. "rwanda")."""
    path = PRESET_DIR / f"{country.lower()}.toml"
    if not path.is_file():
        raise ConfigError(
            [
                f"Unknown country preset '{country}'. "
                f"Available: {', '.join(available_presets())}"
            ]
        )
    return CountryConfig.from_dict(_read_toml(path))


def load_config(
    country: Optional[str] = None,
    path: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> CountryConfig:
    """Resolve a configuration from a preset, a TOML file and overrides.

    Args:
        country: Name of a packaged preset
        path: Optional TOML file layered on top of the preset
        **overrides: Field values applied last (None values are ignored)

    Returns:
        Validated CountryConfig

    Raises:
        ConfigError: If nothing can be loaded or the result is invalid
    """
    if country is None and path is None:
        raise ConfigError(["Either a country preset or a config file is required"])

    config = load_preset(country) if country else None
    if path is not None:
        data = _read_toml(Path(path))
        config = CountryConfig.from_dict(data, base=config)
        logger.info(f"Loaded configuration file {path}")

    config = config.with_overrides(**overrides)
    logger.debug(f"Resolved configuration: {config.to_dict()}")
    return config.check()
