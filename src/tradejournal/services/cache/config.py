"""Configuration for the trade cache."""

from pathlib import Path

from pydantic import BaseModel, Field


class CacheConfig(BaseModel):
    """Trade cache sizing and expiry."""

    enabled: bool = Field(default=True, description="Disabled caches miss on every get and ignore set")
    ttl_seconds: float = Field(default=300.0, gt=0, description="Entry lifetime in seconds")
    max_size: int = Field(default=10_000, ge=1, description="Capacity per namespace")
    eviction_fraction: float = Field(
        default=0.2, gt=0, le=1, description="Share of capacity evicted (oldest first) on overflow"
    )

    @classmethod
    def from_yaml(cls, path: Path) -> "CacheConfig":
        """Load configuration from the `cache` section of a YAML file."""
        import yaml

        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data.get("cache", {}))
