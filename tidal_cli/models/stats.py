"""
Result and statistics records reported by the content cache.
"""

from dataclasses import dataclass, field


@dataclass
class EvictionReport:
    """Outcome of a single cache insert and the eviction pass that followed it."""

    key: str
    total_size: int = 0
    evicted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        """True when every eviction candidate that was attempted was removed."""
        return not self.failed


@dataclass(frozen=True)
class CacheStats:
    """A snapshot of the cache directory."""

    entries: int
    total_size: int
    capacity: int

    @property
    def usage_ratio(self) -> float:
        return self.total_size / self.capacity if self.capacity else 0.0
