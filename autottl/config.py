"""
Configuration module for auto-ttl

Contains the AutoTTLConfig dataclass that holds the administrator-tunable
parameters of the dynamic TTL engine, and the TTLBounds clamp that every
computed or static TTL passes through.

Implements the ConfigSnapshot pattern so the engine works from one
immutable view of the bounds for its whole lifetime.
"""

from dataclasses import dataclass, field, fields
from typing import Optional, Dict, Any, FrozenSet

from .temporal import is_known_timezone


# Immutable keys that cannot be changed at runtime
IMMUTABLE_CONFIG_KEYS: FrozenSet[str] = frozenset({
    'db_path',
})

# Type mapping for config fields (for validation and coercion)
CONFIG_FIELD_TYPES: Dict[str, type] = {
    'db_path': str,
    'default_ttl': int,
    'max_ttl': int,
    'stats_count': int,
    'lookback_days': int,
    'timezone': str,
}

# Range constraints for numeric fields
CONFIG_FIELD_RANGES: Dict[str, tuple] = {
    'default_ttl': (0, 30 * 86400),        # Up to 30 days
    'max_ttl': (0, 365 * 86400),           # Up to 1 year
    'stats_count': (1, 10000),
    'lookback_days': (1, 365),
}


@dataclass(frozen=True)
class TTLBounds:
    """
    Administrator bounds applied to every TTL candidate.

    The same clamp normalizes dynamic TTLs and feed-level static TTLs, so
    there is a single bounds policy everywhere.
    """
    default_ttl: int
    max_ttl: int

    @property
    def is_consistent(self) -> bool:
        return self.default_ttl <= self.max_ttl

    def clamp(self, value: int) -> int:
        """
        Clamp a candidate TTL into [default_ttl, max_ttl].

        0 means "no signal" and maps to max_ttl. An inconsistent
        configuration (default_ttl > max_ttl) always yields default_ttl.
        """
        if self.default_ttl > self.max_ttl:
            return self.default_ttl

        if value == 0 or value > self.max_ttl:
            return self.max_ttl
        if value < self.default_ttl:
            return self.default_ttl
        return int(value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "default_ttl": self.default_ttl,
            "max_ttl": self.max_ttl,
            "consistent": self.is_consistent,
        }


@dataclass
class AutoTTLConfig:
    """
    Configuration container for the auto-ttl engine.

    All values can be set from host options at startup.
    """

    # Database path
    db_path: str = '~/.autottl/feeds.db'

    # Administrator bounds
    default_ttl: int = 3600                    # Floor: 1 hour
    max_ttl: int = 86400                       # Ceiling: 1 day

    # Administrator listing
    stats_count: int = 100                     # Max rows in feed listing

    # History window handed to the data source
    lookback_days: int = 30

    # Display timezone (IANA name); None or invalid falls back to UTC
    timezone: Optional[str] = None

    # Internal version tracking
    _version: int = field(default=0, repr=False, compare=False)

    @classmethod
    def from_dict(cls, options: Dict[str, Any]) -> 'AutoTTLConfig':
        """
        Build a config from a plain mapping of options.

        Unknown keys are ignored; known keys are coerced to their
        declared type. Empty values keep the field default.
        """
        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            expected = CONFIG_FIELD_TYPES.get(key)
            if expected is None or value is None or value == '':
                continue
            kwargs[key] = expected(value)
        return cls(**kwargs)

    def update(self, key: str, value: Any) -> Optional[str]:
        """
        Change one field at runtime.

        Returns:
            Error message if rejected, None on success
        """
        if key in IMMUTABLE_CONFIG_KEYS:
            return f"Config {key} cannot be changed at runtime"
        expected = CONFIG_FIELD_TYPES.get(key)
        if expected is None:
            return f"Unknown config key: {key}"
        try:
            coerced = expected(value)
        except (TypeError, ValueError):
            return f"Config {key}={value!r} is not a valid {expected.__name__}"

        old_value = getattr(self, key)
        setattr(self, key, coerced)
        error = self.validate()
        if error:
            setattr(self, key, old_value)
            return error
        self._version += 1
        return None

    def snapshot(self) -> 'AutoTTLConfigSnapshot':
        """
        Create an immutable snapshot for the engine.

        The engine captures a snapshot at construction and uses only that
        snapshot, so bounds never change under a running computation.
        """
        return AutoTTLConfigSnapshot.from_config(self)

    def validate(self) -> Optional[str]:
        """
        Validate configuration values.

        default_ttl > max_ttl is accepted; the clamp resolves it
        by always returning default_ttl.

        Returns:
            Error message if invalid, None if valid
        """
        for key, (min_val, max_val) in CONFIG_FIELD_RANGES.items():
            value = getattr(self, key, None)
            if value is not None and not (min_val <= value <= max_val):
                return f"Config {key}={value} out of range [{min_val}, {max_val}]"

        if not is_known_timezone(self.timezone):
            return f"Config timezone={self.timezone!r} is not a known timezone"

        return None


@dataclass(frozen=True)
class AutoTTLConfigSnapshot:
    """
    Immutable configuration snapshot.

    This frozen dataclass prevents accidental mutation and ensures
    consistency between the bounds used for prediction and for clamping.
    """

    db_path: str
    default_ttl: int
    max_ttl: int
    stats_count: int
    lookback_days: int
    timezone: Optional[str]
    version: int

    @classmethod
    def from_config(cls, config: AutoTTLConfig) -> 'AutoTTLConfigSnapshot':
        """Create a frozen snapshot from mutable config."""
        values = {
            f.name: getattr(config, f.name)
            for f in fields(config)
            if not f.name.startswith('_')
        }
        return cls(version=config._version, **values)

    @property
    def bounds(self) -> TTLBounds:
        return TTLBounds(default_ttl=self.default_ttl, max_ttl=self.max_ttl)

    @property
    def lookback_seconds(self) -> int:
        return self.lookback_days * 86400
