import io
import re

import pytest
from PIL import Image

from inspection.images import encode_image
from inspection.models import Issue, Project, Severity
from inspection.service import InspectionService

_PAGES_COUNT = re.compile(rb"/Count\s+(\d+)\s*/Kids")
_PAGE_OBJECT = re.compile(rb"/Type\s*/Page\b")


def count_pages(content):
    # prefer the page tree /Count field
    m = _PAGES_COUNT.search(content)
    if m:
        return int(m.group(1))
    return len(_PAGE_OBJECT.findall(content))


def make_png(color="red", size=(64, 48)):
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_issue(**overrides):
    base = {
        "id": "issue001",
        "project_id": "p1",
        "category": "防水工程",
        "title": "leak",
        "severity": Severity.NORMAL,
    }
    base.update(overrides)
    return Issue(**base)


@pytest.fixture
def png_payload():
    return encode_image(make_png())


@pytest.fixture
def project():
    return Project(id="p1", name="P1", building="A栋", unit="2单元")


@pytest.fixture
def service(tmp_path):
    return InspectionService(tmp_path / "store.json")
