"""Per-item results for bulk operations."""

from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID


@dataclass(frozen=True)
class BulkItemResult:
    """Result of applying a bulk operation to a single entity."""

    entity_id: UUID
    success: bool
    status: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def ok(cls, entity_id: UUID, status: str) -> "BulkItemResult":
        return cls(entity_id=entity_id, success=True, status=status)

    @classmethod
    def failed(cls, entity_id: UUID, error: Exception) -> "BulkItemResult":
        return cls(
            entity_id=entity_id,
            success=False,
            error=str(error),
            error_type=getattr(error, "kind", type(error).__name__)
        )


@dataclass
class BulkOperationResult:
    """Collection of per-item results; a failure never aborts the batch."""

    items: List[BulkItemResult] = field(default_factory=list)

    def add(self, item: BulkItemResult) -> None:
        self.items.append(item)

    @property
    def succeeded(self) -> int:
        return sum(1 for item in self.items if item.success)

    @property
    def failed(self) -> int:
        return sum(1 for item in self.items if not item.success)

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0

    def failures(self) -> List[BulkItemResult]:
        return [item for item in self.items if not item.success]
