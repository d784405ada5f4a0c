from __future__ import annotations

import copy
import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from inspection import backup, pdf_reports, tabular
from inspection.errors import NotFoundError, ValidationError
from inspection.filters import IssueFilter, filter_issues, group_by
from inspection.models import Issue, Project, Severity, Status, Store, Template, new_id, now_ms
from inspection.pdf_reports import RenderedDocument
from inspection.store import load_store, save_store

logger = logging.getLogger("inspection")

RECENT_ISSUES = 6

_UNSAFE_FILENAME = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def safe_filename(name: str) -> str:
    cleaned = _UNSAFE_FILENAME.sub("_", name).strip(" .")
    return cleaned or "export"


@dataclass
class TextExport:
    filename: str
    content: str
    media_type: str


class InspectionService:
    """Owns the in-memory store and persists it after every accepted change."""

    def __init__(self, store_path: Path, store: Optional[Store] = None):
        self.store_path = store_path
        self.store = store if store is not None else load_store(store_path)

    @contextmanager
    def _commit(self) -> Iterator[Store]:
        # a change stays in memory only once it is on disk
        previous = copy.deepcopy(self.store)
        try:
            yield self.store
            save_store(self.store, self.store_path)
        except Exception:
            self.store = previous
            raise

    # ---------- projects ----------

    def create_project(self, name: str, building: str = "", unit: str = "", remark: str = "") -> Project:
        name = (name or "").strip()
        if not name:
            raise ValidationError("project name is required")
        project = Project(id=new_id(), name=name, building=building or "", unit=unit or "", remark=remark or "")
        with self._commit() as store:
            store.projects.append(project)
        logger.info("PROJECT_CREATED id=%s name=%s", project.id, project.name)
        return project

    def delete_project(self, project_id: str) -> None:
        with self._commit() as store:
            store.projects.remove(self.get_project(project_id))
        logger.info("PROJECT_DELETED id=%s", project_id)

    def get_project(self, project_id: str) -> Project:
        project = self.store.find_project(project_id)
        if project is None:
            raise NotFoundError(f"project not found: {project_id}")
        return project

    def project_or_stub(self, project_id: str) -> Project:
        return self.store.find_project(project_id) or Project(id=project_id, name=project_id)

    # ---------- issues ----------

    def add_issue(
        self,
        project_id: str,
        category: str,
        title: str,
        desc: str = "",
        severity: Any = Severity.NORMAL,
        responsible: str = "",
        due: str = "",
        images: Optional[Iterable[str]] = None,
        position: str = "",
        standard_ref: str = "",
    ) -> Issue:
        if not project_id:
            raise ValidationError("select a project first")
        if self.store.find_project(project_id) is None:
            raise ValidationError(f"unknown project: {project_id}")
        title = (title or "").strip()
        if not title:
            raise ValidationError("issue title is required")
        try:
            severity = Severity.parse(severity or Severity.NORMAL)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        template = self.store.find_template(category)
        issue = Issue(
            id=new_id(),
            project_id=project_id,
            category=template.name if template else (category or ""),
            title=title,
            desc=(desc or "").strip(),
            severity=severity,
            responsible=responsible or "",
            due=due or "",
            images=list(images or []),
            position=position or "",
            standard_ref=standard_ref or "",
            status=Status.PENDING,
            created_at=now_ms(),
        )
        with self._commit() as store:
            store.issues.append(issue)
        logger.info("ISSUE_CREATED id=%s project_id=%s images=%d", issue.id, project_id, len(issue.images))
        return issue

    def get_issue(self, issue_id: str) -> Issue:
        issue = self.store.find_issue(issue_id)
        if issue is None:
            raise NotFoundError(f"issue not found: {issue_id}")
        return issue

    def set_issue_status(self, issue_id: str, status: Any) -> Issue:
        try:
            parsed = Status.parse(status)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        with self._commit():
            issue = self.get_issue(issue_id)
            issue.status = parsed
        logger.info("ISSUE_STATUS id=%s status=%s", issue_id, issue.status.value)
        return issue

    def delete_issue(self, issue_id: str) -> None:
        with self._commit() as store:
            store.issues.remove(self.get_issue(issue_id))
        logger.info("ISSUE_DELETED id=%s", issue_id)

    def list_issues(self, criteria: Optional[IssueFilter] = None) -> List[Issue]:
        return filter_issues(self.store.issues, criteria)

    # ---------- templates ----------

    def save_templates(self, templates: Iterable[Dict[str, Any]]) -> List[Template]:
        parsed = [Template.from_dict(t) for t in templates]
        for template in parsed:
            if not template.name.strip():
                raise ValidationError("template name is required")
        with self._commit() as store:
            store.templates = parsed
        logger.info("TEMPLATES_SAVED count=%d", len(parsed))
        return parsed

    # ---------- dashboard ----------

    def dashboard(self) -> Dict[str, Any]:
        issues = self.store.issues
        counts = {status: 0 for status in Status}
        for issue in issues:
            counts[issue.effective_status] += 1
        return {
            "project_count": len(self.store.projects),
            "total": len(issues),
            "pending": counts[Status.PENDING],
            "to_reverify": counts[Status.TO_REVERIFY],
            "done": counts[Status.DONE],
            "recent": list(reversed(issues[-RECENT_ISSUES:])),
        }

    # ---------- exports ----------

    def export_csv(self, criteria: Optional[IssueFilter] = None, today: Optional[date] = None) -> TextExport:
        issues = self.list_issues(criteria)
        content = tabular.to_delimited_text(self.store.projects, issues)
        logger.info("CSV_EXPORT rows=%d", len(issues))
        return TextExport(filename=tabular.csv_filename(today), content=content, media_type="text/csv")

    def export_project_report(self, project_id: str, criteria: Optional[IssueFilter] = None) -> RenderedDocument:
        issues = [i for i in self.list_issues(criteria) if i.project_id == project_id]
        if not issues:
            # issues of a deleted project still export against a stub
            self.get_project(project_id)
        return pdf_reports.render_project_report(self.project_or_stub(project_id), issues)

    def export_project_reports(self, criteria: Optional[IssueFilter] = None) -> List[RenderedDocument]:
        groups = group_by(self.list_issues(criteria), lambda issue: issue.project_id)
        if not groups:
            raise ValidationError("nothing to export")
        if len(groups) > 1:
            logger.info("PDF_EXPORT spans %d projects; filter by project to keep reports apart", len(groups))
        return [
            pdf_reports.render_project_report(self.project_or_stub(project_id), issues)
            for project_id, issues in groups.items()
        ]

    def export_issue_report(self, issue_id: str) -> RenderedDocument:
        issue = self.get_issue(issue_id)
        return pdf_reports.render_issue_report(self.project_or_stub(issue.project_id), issue)

    def write_export(self, document: RenderedDocument, directory: Path) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / safe_filename(document.filename)
        target.write_bytes(document.content)
        logger.info("EXPORT_WRITTEN path=%s bytes=%d", target, len(document.content))
        return target

    # ---------- backup ----------

    def export_backup(self, today: Optional[date] = None) -> TextExport:
        return TextExport(
            filename=backup.backup_filename(today),
            content=backup.serialize(self.store),
            media_type="application/json",
        )

    def import_backup(self, text: str) -> Store:
        store = backup.deserialize(text)
        with self._commit():
            self.store = store
        logger.info(
            "BACKUP_IMPORTED projects=%d issues=%d templates=%d",
            len(store.projects),
            len(store.issues),
            len(store.templates),
        )
        return store
