"""Object storage data models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ObjectInfo:
    """Metadata for a stored object.

    A fresh instance is built on every ``head`` call; it is never cached.

    Attributes:
        size: Size of the object content in bytes.
    """

    size: int

    def __post_init__(self) -> None:
        if self.size < 0:
            raise ValueError(f"Object size must be non-negative, got {self.size}")

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for JSON serialization."""
        return {"size": self.size}
