from typing import Any, Dict, Iterable, List, Optional


class FieldTracker:
    """
    Records which top-level fields have completed and their values.

    An empty field list tracks every key. The first completion of a field
    wins; later occurrences of the same key are ignored.
    """

    def __init__(self, fields: Optional[Iterable[str]] = None):
        self.tracked_fields = set(fields or [])
        self._completed: Dict[str, Any] = {}

    def is_tracking(self, field: str) -> bool:
        if not self.tracked_fields:
            return True
        return field in self.tracked_fields

    def complete_field(self, field: str, value: Any) -> bool:
        """Store `value`; returns False when the field had already completed."""
        if field in self._completed:
            return False
        self._completed[field] = value
        return True

    def is_complete(self, field: str) -> bool:
        return field in self._completed

    def get_field(self, field: str, default: Any = None) -> Any:
        return self._completed.get(field, default)

    def get_all_completed(self) -> Dict[str, Any]:
        return dict(self._completed)

    def get_completed_field_names(self) -> List[str]:
        """Field names in completion order."""
        return list(self._completed)

    def reset(self) -> None:
        self._completed.clear()

    def __len__(self) -> int:
        return len(self._completed)
