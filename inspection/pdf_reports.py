from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.pdfgen import canvas as pdf_canvas
from reportlab.platypus import Paragraph, Table, TableStyle

from inspection.errors import RenderSkip
from inspection.images import decode_image
from inspection.layout import (
    CONTENT_WIDTH,
    LEFT_MARGIN,
    PAGE_BOTTOM,
    PAGE_HEIGHT,
    TOP_MARGIN,
    PageCursor,
)
from inspection.models import Issue, Project

logger = logging.getLogger("inspection")

FONT_NAME = "STSong-Light"
pdfmetrics.registerFont(UnicodeCIDFont(FONT_NAME))

SECTION_GAP = 20.0
SECTION_HEADER_HEIGHT = 24.0
CAPTION_HEIGHT = 18.0

# header lines flow downwards from TITLE_TOP; the table starts HEADER_GAP below them
TITLE_TOP = 34.0
TITLE_GAP = 15.0
LINE_GAP = 5.0
HEADER_GAP = 16.0

GALLERY_BOX_WIDTH = 520.0
GALLERY_BOX_HEIGHT = 180.0
GALLERY_MARGIN = 20.0

ISSUE_PHOTO_WIDTH = 240.0
ISSUE_PHOTO_HEIGHT = 160.0
ISSUE_PHOTO_MARGIN = 20.0
ISSUE_PHOTO_LIMIT = 3

SUMMARY_HEADER = ["No.", "Category", "Title", "Severity", "Responsible", "Due", "Status"]
SUMMARY_COL_WIDTHS = [30, 70, 150, 50, 80, 70, 70]
DETAIL_COL_WIDTHS = [120, 380]

styles = getSampleStyleSheet()
styles.add(ParagraphStyle(name="Cell", fontName=FONT_NAME, fontSize=9, leading=12, alignment=TA_LEFT, wordWrap="CJK"))
styles.add(ParagraphStyle(name="DetailCell", fontName=FONT_NAME, fontSize=10, leading=13, alignment=TA_LEFT, wordWrap="CJK"))
styles.add(ParagraphStyle(name="ReportTitle", fontName=FONT_NAME, fontSize=16, leading=20, alignment=TA_LEFT, wordWrap="CJK"))
styles.add(ParagraphStyle(name="Section", fontName=FONT_NAME, fontSize=13, leading=17, alignment=TA_LEFT, wordWrap="CJK"))
styles.add(ParagraphStyle(name="Line", fontName=FONT_NAME, fontSize=11, leading=15, alignment=TA_LEFT, wordWrap="CJK"))


@dataclass(frozen=True)
class ImagePlacement:
    issue_id: str
    page: int
    top: float
    bottom: float


@dataclass
class RenderedDocument:
    filename: str
    content: bytes
    page_count: int
    image_placements: List[ImagePlacement] = field(default_factory=list)
    media_type: str = "application/pdf"


def _or_dash(value: Optional[str]) -> str:
    return value if value else "-"


def _cell(value: object, style: str = "Cell") -> Paragraph:
    return Paragraph(escape(str(value)), styles[style])


def text_height(text: str, style: str = "Line") -> float:
    _, height = Paragraph(escape(text), styles[style]).wrap(CONTENT_WIDTH, PAGE_HEIGHT)
    return height


def _draw_text(c: pdf_canvas.Canvas, text: str, top: float, style: str = "Line") -> float:
    """Draw wrapped text with its first line at ``top`` and return the bottom edge."""
    para = Paragraph(escape(text), styles[style])
    _, height = para.wrapOn(c, CONTENT_WIDTH, PAGE_HEIGHT)
    para.drawOn(c, LEFT_MARGIN, PAGE_HEIGHT - top - height)
    return top + height


def _new_page(c: pdf_canvas.Canvas, cursor: PageCursor) -> None:
    c.showPage()
    cursor.break_page()


def _draw_table(c: pdf_canvas.Canvas, table: Table, cursor: PageCursor) -> None:
    pending = [table]
    while pending:
        part = pending.pop(0)
        _, height = part.wrapOn(c, CONTENT_WIDTH, PAGE_HEIGHT)
        if height <= cursor.remaining:
            part.drawOn(c, LEFT_MARGIN, PAGE_HEIGHT - cursor.y - height)
            cursor.advance(height)
            continue
        pieces = part.split(CONTENT_WIDTH, cursor.remaining)
        if len(pieces) > 1:
            pending = list(pieces) + pending
            continue
        if cursor.at_top:
            # a single row taller than the page
            part.drawOn(c, LEFT_MARGIN, PAGE_HEIGHT - cursor.y - height)
            cursor.advance(height)
            continue
        _new_page(c, cursor)
        pending.insert(0, part)


def _section_header(c: pdf_canvas.Canvas, cursor: PageCursor, text: str) -> None:
    cursor.advance(SECTION_GAP)
    placement = cursor.place(max(SECTION_HEADER_HEIGHT, text_height(text, "Section")))
    if placement.page_break:
        c.showPage()
    _draw_text(c, text, placement.y, "Section")


def _place_image(
    c: pdf_canvas.Canvas,
    cursor: PageCursor,
    issue: Issue,
    payload: str,
    width: float,
    height: float,
    margin: float,
    caption: Optional[str] = None,
) -> Optional[ImagePlacement]:
    try:
        reader = decode_image(payload)
    except RenderSkip as exc:
        logger.warning("PDF image skipped issue_id=%s reason=%s", issue.id, exc)
        return None

    caption_height = max(CAPTION_HEIGHT, text_height(caption)) if caption else 0.0
    placement = cursor.place(caption_height + height, margin)
    if placement.page_break:
        c.showPage()
    if caption:
        _draw_text(c, caption, placement.y)
    image_top = placement.y + caption_height
    c.drawImage(
        reader,
        LEFT_MARGIN,
        PAGE_HEIGHT - image_top - height,
        width=width,
        height=height,
        preserveAspectRatio=True,
        anchor="nw",
    )
    return ImagePlacement(issue_id=issue.id, page=placement.page, top=image_top, bottom=image_top + height)


def _building_unit(project: Project) -> str:
    return f"Building / Unit: {_or_dash(project.building)} / {_or_dash(project.unit)}"


def _grid_style(header: bool) -> TableStyle:
    commands = [
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ("LEFTPADDING", (0, 0), (-1, -1), 6),
        ("RIGHTPADDING", (0, 0), (-1, -1), 6),
    ]
    if header:
        commands.append(("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f0f0f0")))
    return TableStyle(commands)


def summary_rows(issues: Sequence[Issue]) -> List[List[str]]:
    return [
        [
            str(idx),
            issue.category,
            issue.title,
            issue.severity.value,
            _or_dash(issue.responsible),
            _or_dash(issue.due),
            issue.effective_status.value,
        ]
        for idx, issue in enumerate(issues, start=1)
    ]


def detail_rows(issue: Issue) -> List[List[str]]:
    return [
        ["Category", issue.category],
        ["Title", issue.title],
        ["Description", _or_dash(issue.desc)],
        ["Position", _or_dash(issue.position)],
        ["StandardRef", _or_dash(issue.standard_ref)],
        ["Severity", issue.severity.value],
        ["Responsible", _or_dash(issue.responsible)],
        ["Due", _or_dash(issue.due)],
        ["Status", issue.effective_status.value],
    ]


def project_report_filename(project: Project, today: Optional[date] = None) -> str:
    return f"{project.name}-inspection-report-{(today or date.today()).isoformat()}.pdf"


def issue_report_filename(project: Project, issue: Issue) -> str:
    return f"{project.name}-remediation-{issue.id}.pdf"


def render_project_report(project: Project, issues: Sequence[Issue], today: Optional[date] = None) -> RenderedDocument:
    today = today or date.today()
    buffer = io.BytesIO()
    c = pdf_canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(f"Project Inspection Report / {project.name}")

    bottom = _draw_text(c, f"Project Inspection Report / {project.name}", TITLE_TOP, "ReportTitle")
    bottom = _draw_text(c, _building_unit(project), bottom + TITLE_GAP)
    bottom = _draw_text(c, f"Generated: {today.isoformat()}", bottom + LINE_GAP)

    cursor = PageCursor(top=TOP_MARGIN, bottom=PAGE_BOTTOM, y=bottom + HEADER_GAP)
    rows = [[_cell(h) for h in SUMMARY_HEADER]]
    rows.extend([_cell(v) for v in row] for row in summary_rows(issues))
    table = Table(rows, colWidths=SUMMARY_COL_WIDTHS, repeatRows=1, hAlign="LEFT")
    table.setStyle(_grid_style(header=True))
    _draw_table(c, table, cursor)

    _section_header(c, cursor, "Issue Photos (primary image preview)")
    placements: List[ImagePlacement] = []
    for issue in issues:
        if not issue.images:
            continue
        placed = _place_image(
            c,
            cursor,
            issue,
            issue.images[0],
            GALLERY_BOX_WIDTH,
            GALLERY_BOX_HEIGHT,
            GALLERY_MARGIN,
            caption=f"[{issue.category}] {issue.title}",
        )
        if placed:
            placements.append(placed)

    c.showPage()
    c.save()
    logger.info(
        "PDF project report project=%s issues=%d images=%d pages=%d",
        project.name,
        len(issues),
        len(placements),
        cursor.page,
    )
    return RenderedDocument(
        filename=project_report_filename(project, today),
        content=buffer.getvalue(),
        page_count=cursor.page,
        image_placements=placements,
    )


def render_issue_report(project: Project, issue: Issue) -> RenderedDocument:
    buffer = io.BytesIO()
    c = pdf_canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(f"Issue Remediation Order / {issue.id}")

    bottom = _draw_text(c, "Issue Remediation Order", TITLE_TOP, "ReportTitle")
    bottom = _draw_text(c, f"Project: {project.name}", bottom + TITLE_GAP)
    bottom = _draw_text(c, _building_unit(project), bottom + LINE_GAP)
    bottom = _draw_text(c, f"Issue ID: {issue.id}", bottom + LINE_GAP)

    cursor = PageCursor(top=TOP_MARGIN, bottom=PAGE_BOTTOM, y=bottom + HEADER_GAP)
    rows = [[_cell(label, "DetailCell"), _cell(value, "DetailCell")] for label, value in detail_rows(issue)]
    table = Table(rows, colWidths=DETAIL_COL_WIDTHS, hAlign="LEFT")
    table.setStyle(_grid_style(header=False))
    _draw_table(c, table, cursor)

    _section_header(c, cursor, "Site Photos")
    placements: List[ImagePlacement] = []
    for payload in issue.images[:ISSUE_PHOTO_LIMIT]:
        placed = _place_image(c, cursor, issue, payload, ISSUE_PHOTO_WIDTH, ISSUE_PHOTO_HEIGHT, ISSUE_PHOTO_MARGIN)
        if placed:
            placements.append(placed)

    c.showPage()
    c.save()
    logger.info("PDF issue report issue_id=%s images=%d pages=%d", issue.id, len(placements), cursor.page)
    return RenderedDocument(
        filename=issue_report_filename(project, issue),
        content=buffer.getvalue(),
        page_count=cursor.page,
        image_placements=placements,
    )
