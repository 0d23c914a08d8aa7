"""Configuration for the bulk import pipeline."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class ImportConfig(BaseModel):
    """Import pipeline tuning."""

    validation_batch_size: int = Field(default=1000, ge=1, description="Records validated between event-loop yields")
    chunk_size: Optional[int] = Field(
        default=None, ge=1, description="Explicit persist chunk size; None sizes chunks from the memory budget"
    )
    min_chunk_size: int = Field(default=100, ge=1, description="Lower bound for computed chunk sizes")
    max_chunk_size: int = Field(default=5000, ge=1, description="Upper bound for computed chunk sizes")
    max_memory_mb: int = Field(default=100, ge=1, description="Memory budget used to size chunks")
    deduplicate: bool = Field(default=True, description="Skip records whose dedup hash was already seen or persisted")
    max_concurrent_chunks: int = Field(default=1, ge=1, description="Chunk inserts in flight at once")
    job_retention_minutes: int = Field(default=30, ge=0, description="How long finished jobs stay pollable")
    history_limit: int = Field(default=100, ge=1, description="History size that triggers trimming")
    history_trim_to: int = Field(default=50, ge=0, description="History size after trimming")

    @model_validator(mode="after")
    def check_bounds(self) -> "ImportConfig":
        if self.min_chunk_size > self.max_chunk_size:
            raise ValueError(f"min_chunk_size {self.min_chunk_size} exceeds max_chunk_size {self.max_chunk_size}")
        if self.history_trim_to > self.history_limit:
            raise ValueError(f"history_trim_to {self.history_trim_to} exceeds history_limit {self.history_limit}")
        return self

    @classmethod
    def from_yaml(cls, path: Path) -> "ImportConfig":
        """Load configuration from the `importing` section of a YAML file."""
        import yaml

        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data.get("importing", {}))
