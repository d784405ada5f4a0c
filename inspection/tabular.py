from __future__ import annotations

import csv
import io
from datetime import date, datetime
from typing import Iterable, List, Optional

from inspection.models import Issue, Project, now_ms

CSV_HEADER = [
    "Project",
    "Category",
    "Title",
    "Severity",
    "Responsible",
    "Due",
    "Status",
    "Position",
    "StandardRef",
    "CreatedAt",
    "ImageCount",
]


def format_created_at(created_at: Optional[int]) -> str:
    millis = created_at if created_at is not None else now_ms()
    return datetime.fromtimestamp(millis / 1000).strftime("%Y-%m-%d %H:%M:%S")


def issue_row(issue: Issue, project: Optional[Project]) -> List[str]:
    return [
        project.name if project else "",
        issue.category,
        issue.title,
        issue.severity.value,
        issue.responsible or "",
        issue.due or "",
        issue.effective_status.value,
        issue.position or "",
        issue.standard_ref or "",
        format_created_at(issue.created_at),
        str(len(issue.images or [])),
    ]


def to_delimited_text(projects: Iterable[Project], issues: Iterable[Issue]) -> str:
    by_id = {project.id: project for project in projects}
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, doublequote=True, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for issue in issues:
        writer.writerow(issue_row(issue, by_id.get(issue.project_id)))
    return buffer.getvalue()


def csv_filename(today: Optional[date] = None) -> str:
    return f"remediation-list-{(today or date.today()).isoformat()}.csv"
