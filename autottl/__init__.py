"""
Package for auto-ttl

This package contains the adaptive refresh-interval engine for polled feeds:
- config: Configuration dataclass, snapshot pattern and TTL bounds
- temporal: Hour/weekday/date bucketing of timestamps
- pattern: Update pattern analysis from historical entry timestamps
- predictor: Raw TTL prediction from an update pattern
- cache: Pattern cache and computed-TTL cache
- engine: Dynamic TTL engine (smoothing, clamping, invalidation)
- database: SQLite feed/entry history source
- report: Administrator feed listing and duration formatting
"""

__version__ = "0.1.0-dev"
