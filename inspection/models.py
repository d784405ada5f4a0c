from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(8))


def now_ms() -> int:
    return int(time.time() * 1000)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class _LabeledEnum(str, Enum):
    """Enum persisted by its Chinese label, also parseable by its English name."""

    @classmethod
    def parse(cls, value: Any):
        if isinstance(value, cls):
            return value
        text = str(value or "").strip()
        for member in cls:
            if text == member.value or text.lower() == member.english:
                return member
        raise ValueError(f"unknown {cls.__name__.lower()}: {value!r}")

    @property
    def english(self) -> str:
        return self.name.lower().replace("_", "-")


class Severity(_LabeledEnum):
    NORMAL = "一般"
    MAJOR = "重要"
    CRITICAL = "严重"


class Status(_LabeledEnum):
    PENDING = "待整改"
    TO_REVERIFY = "待复验"
    DONE = "已完成"


@dataclass
class Project:
    id: str
    name: str
    building: str = ""
    unit: str = ""
    remark: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            id=str(data.get("id") or new_id()),
            name=_text(data.get("name")),
            building=_text(data.get("building")),
            unit=_text(data.get("unit")),
            remark=_text(data.get("remark")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "building": self.building,
            "unit": self.unit,
            "remark": self.remark,
        }


@dataclass
class Template:
    id: str
    name: str
    items: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Template":
        return cls(
            id=str(data.get("id") or new_id()),
            name=str(data.get("name") or ""),
            items=[str(item) for item in data.get("items") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "items": list(self.items)}


@dataclass
class Issue:
    id: str
    project_id: str
    category: str
    title: str
    desc: str = ""
    severity: Severity = Severity.NORMAL
    responsible: str = ""
    due: str = ""
    images: List[str] = field(default_factory=list)
    position: str = ""
    standard_ref: str = ""
    # None means the issue was stored without a status; it reads as pending.
    status: Optional[Status] = None
    created_at: Optional[int] = None

    @property
    def effective_status(self) -> Status:
        return self.status or Status.PENDING

    @property
    def primary_image(self) -> Optional[str]:
        return self.images[0] if self.images else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Issue":
        status = data.get("status")
        severity = data.get("severity")
        created_at = data.get("createdAt")
        return cls(
            id=str(data.get("id") or new_id()),
            project_id=str(data.get("projectId") or ""),
            category=_text(data.get("category")),
            title=_text(data.get("title")),
            desc=_text(data.get("desc")),
            severity=Severity.parse(severity) if severity else Severity.NORMAL,
            responsible=_text(data.get("responsible")),
            due=_text(data.get("due")),
            images=[str(img) for img in data.get("images") or []],
            position=_text(data.get("position")),
            standard_ref=_text(data.get("standardRef")),
            status=Status.parse(status) if status else None,
            created_at=int(created_at) if created_at is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "projectId": self.project_id,
            "category": self.category,
            "title": self.title,
            "desc": self.desc,
            "severity": self.severity.value,
            "responsible": self.responsible,
            "due": self.due,
            "images": list(self.images),
            "position": self.position,
            "standardRef": self.standard_ref,
            "createdAt": self.created_at,
        }
        if self.status is not None:
            data["status"] = self.status.value
        return data


@dataclass
class Store:
    projects: List[Project] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
    templates: List[Template] = field(default_factory=list)

    def find_project(self, project_id: str) -> Optional[Project]:
        for project in self.projects:
            if project.id == project_id:
                return project
        return None

    def find_issue(self, issue_id: str) -> Optional[Issue]:
        for issue in self.issues:
            if issue.id == issue_id:
                return issue
        return None

    def find_template(self, template_id: str) -> Optional[Template]:
        for template in self.templates:
            if template.id == template_id:
                return template
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projects": [p.to_dict() for p in self.projects],
            "issues": [i.to_dict() for i in self.issues],
            "templates": [t.to_dict() for t in self.templates],
        }
