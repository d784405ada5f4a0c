from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field

from inspection.errors import FormatError, NotFoundError, ValidationError
from inspection.filters import IssueFilter
from inspection.images import encode_image
from inspection.models import Issue, Project, Template
from inspection.service import InspectionService
from shared import app_paths

logger = logging.getLogger("inspection")

app = FastAPI(title="Inspection Assistant")

TEMPLATES_DIR = app_paths.get_resource_dir() / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

_SERVICE: Optional[InspectionService] = None


def configure_logging() -> None:
    level = os.environ.get("INSPECTION_LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
        handlers=[
            logging.FileHandler(app_paths.get_log_path(), encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )


def get_service() -> InspectionService:
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = InspectionService(app_paths.get_store_path())
    return _SERVICE


@app.on_event("startup")
def startup() -> None:
    configure_logging()
    service = get_service()
    logger.info("INSPECTION_STORE_PATH=%s", service.store_path)


class ProjectIn(BaseModel):
    name: str
    building: str = ""
    unit: str = ""
    remark: str = ""


class IssueIn(BaseModel):
    project_id: str = ""
    category: str = ""
    title: str = ""
    desc: str = ""
    severity: str = "一般"
    responsible: str = ""
    due: str = ""
    images: List[str] = Field(default_factory=list)
    position: str = ""
    standard_ref: str = ""


class StatusIn(BaseModel):
    status: str


class TemplateIn(BaseModel):
    id: Optional[str] = None
    name: str
    items: List[str] = Field(default_factory=list)


def project_json(project: Project) -> Dict[str, Any]:
    return project.to_dict()


def issue_json(issue: Issue, service: InspectionService) -> Dict[str, Any]:
    data = issue.to_dict()
    data["status"] = issue.effective_status.value
    project = service.store.find_project(issue.project_id)
    data["projectName"] = project.name if project else "-"
    return data


def template_json(template: Template) -> Dict[str, Any]:
    return template.to_dict()


def attachment(content: Any, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


def issue_filter(
    project_id: Optional[str] = None,
    status: Optional[str] = None,
    severity: Optional[str] = None,
    q: Optional[str] = None,
) -> IssueFilter:
    try:
        return IssueFilter(project_id=project_id, status=status, severity=severity, keyword=q)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info("VALIDATION_ERROR path=%s error=%s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"ok": False, "error": str(exc)})


@app.exception_handler(FormatError)
async def format_error_handler(request: Request, exc: FormatError):
    logger.warning("BACKUP_REJECTED error=%s", exc)
    return JSONResponse(
        status_code=400,
        content={"ok": False, "error": str(exc), "missing": exc.missing_fields},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"ok": False, "error": str(exc)})


@app.get("/", response_class=HTMLResponse)
def dashboard_page(request: Request, service: InspectionService = Depends(get_service)):
    stats = service.dashboard()
    stats["recent"] = [issue_json(issue, service) for issue in stats["recent"]]
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"stats": stats, "projects": service.store.projects},
    )


@app.get("/api/dashboard")
def dashboard_data(service: InspectionService = Depends(get_service)):
    stats = service.dashboard()
    stats["recent"] = [issue_json(issue, service) for issue in stats["recent"]]
    return {"ok": True, "dashboard": stats}


@app.get("/api/projects")
def list_projects(service: InspectionService = Depends(get_service)):
    return {"ok": True, "projects": [project_json(p) for p in service.store.projects]}


@app.post("/api/projects")
def create_project(payload: ProjectIn, service: InspectionService = Depends(get_service)):
    project = service.create_project(payload.name, payload.building, payload.unit, payload.remark)
    return {"ok": True, "project": project_json(project)}


@app.delete("/api/projects/{project_id}")
def delete_project(project_id: str, service: InspectionService = Depends(get_service)):
    service.delete_project(project_id)
    return {"ok": True}


@app.get("/api/issues")
def list_issues(
    criteria: IssueFilter = Depends(issue_filter),
    service: InspectionService = Depends(get_service),
):
    issues = service.list_issues(criteria)
    return {"ok": True, "issues": [issue_json(i, service) for i in issues]}


@app.post("/api/issues")
def create_issue(payload: IssueIn, service: InspectionService = Depends(get_service)):
    issue = service.add_issue(
        project_id=payload.project_id,
        category=payload.category,
        title=payload.title,
        desc=payload.desc,
        severity=payload.severity,
        responsible=payload.responsible,
        due=payload.due,
        images=payload.images,
        position=payload.position,
        standard_ref=payload.standard_ref,
    )
    return {"ok": True, "issue": issue_json(issue, service)}


@app.post("/api/images")
async def upload_image(request: Request):
    raw = await request.body()
    try:
        payload = encode_image(raw)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return {"ok": True, "image": payload}


@app.put("/api/issues/{issue_id}/status")
def update_issue_status(issue_id: str, payload: StatusIn, service: InspectionService = Depends(get_service)):
    issue = service.set_issue_status(issue_id, payload.status)
    return {"ok": True, "issue": issue_json(issue, service)}


@app.delete("/api/issues/{issue_id}")
def delete_issue(issue_id: str, service: InspectionService = Depends(get_service)):
    service.delete_issue(issue_id)
    return {"ok": True}


@app.get("/api/templates")
def list_templates(service: InspectionService = Depends(get_service)):
    return {"ok": True, "templates": [template_json(t) for t in service.store.templates]}


@app.put("/api/templates")
def save_templates(payload: List[TemplateIn], service: InspectionService = Depends(get_service)):
    saved = service.save_templates(item.model_dump() for item in payload)
    return {"ok": True, "templates": [template_json(t) for t in saved]}


@app.get("/api/export/issues.csv")
def export_csv(
    criteria: IssueFilter = Depends(issue_filter),
    service: InspectionService = Depends(get_service),
):
    export = service.export_csv(criteria)
    return attachment(export.content.encode("utf-8"), export.filename, "text/csv; charset=utf-8")


@app.get("/api/export/projects/{project_id}/report.pdf")
def export_project_report(
    project_id: str,
    criteria: IssueFilter = Depends(issue_filter),
    service: InspectionService = Depends(get_service),
):
    document = service.export_project_report(project_id, criteria)
    return attachment(document.content, document.filename, document.media_type)


@app.post("/api/export/reports")
def export_reports(
    criteria: IssueFilter = Depends(issue_filter),
    service: InspectionService = Depends(get_service),
):
    exports_dir = app_paths.get_exports_dir()
    written = [service.write_export(doc, exports_dir) for doc in service.export_project_reports(criteria)]
    return {"ok": True, "files": [str(path) for path in written]}


@app.get("/api/export/issues/{issue_id}/report.pdf")
def export_issue_report(issue_id: str, service: InspectionService = Depends(get_service)):
    document = service.export_issue_report(issue_id)
    return attachment(document.content, document.filename, document.media_type)


@app.get("/api/backup")
def export_backup(service: InspectionService = Depends(get_service)):
    export = service.export_backup()
    return attachment(export.content.encode("utf-8"), export.filename, "application/json")


@app.post("/api/backup")
async def import_backup(request: Request, service: InspectionService = Depends(get_service)):
    raw = await request.body()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FormatError("backup file is not UTF-8 text") from exc
    store = service.import_backup(text)
    return {
        "ok": True,
        "projects": len(store.projects),
        "issues": len(store.issues),
        "templates": len(store.templates),
    }
