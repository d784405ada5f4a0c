from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Iterable, List, Optional, TypeVar

from inspection.models import Issue, Severity, Status

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

ALL = "all"


def _active(value: Optional[str]) -> bool:
    return bool(value) and value != ALL


@dataclass
class IssueFilter:
    project_id: Optional[str] = None
    status: Optional[str] = None
    severity: Optional[str] = None
    keyword: Optional[str] = None

    def __post_init__(self) -> None:
        # raises ValueError for labels outside the closed enumerations
        self._status = Status.parse(self.status) if _active(self.status) else None
        self._severity = Severity.parse(self.severity) if _active(self.severity) else None

    def matches(self, issue: Issue) -> bool:
        if _active(self.project_id) and issue.project_id != self.project_id:
            return False
        if self._status is not None and issue.effective_status != self._status:
            return False
        if self._severity is not None and issue.severity != self._severity:
            return False
        keyword = (self.keyword or "").strip()
        if not keyword:
            return True
        candidates = (issue.title, issue.desc, issue.category, issue.responsible, issue.position)
        return any(keyword in (value or "") for value in candidates)


def filter_issues(issues: Iterable[Issue], criteria: Optional[IssueFilter] = None) -> List[Issue]:
    if criteria is None:
        return list(issues)
    return [issue for issue in issues if criteria.matches(issue)]


def group_by(items: Iterable[T], key_fn: Callable[[T], K]) -> Dict[K, List[T]]:
    groups: Dict[K, List[T]] = {}
    for item in items:
        groups.setdefault(key_fn(item), []).append(item)
    return groups
