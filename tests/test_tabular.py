import csv
import io
from datetime import date

from conftest import make_issue

from inspection.models import Project, Status
from inspection.tabular import CSV_HEADER, csv_filename, format_created_at, to_delimited_text


def parse(text):
    return list(csv.reader(io.StringIO(text)))


def test_header_and_row_count():
    projects = [Project(id="p1", name="P1")]
    issues = [make_issue(id="a"), make_issue(id="b"), make_issue(id="c")]
    rows = parse(to_delimited_text(projects, issues))
    assert rows[0] == CSV_HEADER
    assert len(rows) == 4


def test_every_field_is_quoted():
    text = to_delimited_text([Project(id="p1", name="P1")], [make_issue()])
    for line in text.splitlines():
        assert line.startswith('"') and line.endswith('"')


def test_embedded_quotes_and_delimiters_round_trip():
    issues = [
        make_issue(id="a", title='He said "leak"'),
        make_issue(id="b", title="crack, wide", position='line1\nline2 "x"'),
    ]
    rows = parse(to_delimited_text([Project(id="p1", name='Tower "A", east')], issues))
    assert rows[1][0] == 'Tower "A", east'
    assert rows[1][2] == 'He said "leak"'
    assert rows[2][2] == "crack, wide"
    assert rows[2][7] == 'line1\nline2 "x"'
    assert '"He said ""leak"""' in to_delimited_text([], issues)


def test_defaults_for_missing_values():
    issue = make_issue(project_id="gone", created_at=1700000000000)
    row = parse(to_delimited_text([], [issue]))[1]
    assert row[0] == ""
    assert row[4] == ""
    assert row[5] == ""
    assert row[6] == Status.PENDING.value
    assert row[7] == ""
    assert row[8] == ""
    assert row[9] == format_created_at(1700000000000)
    assert row[10] == "0"


def test_image_count_and_values():
    issue = make_issue(
        images=["data:image/png;base64,AA==", "data:image/png;base64,AQ=="],
        responsible="总包",
        due="2024-05-01",
        status=Status.DONE,
        standard_ref="GB 50207",
    )
    row = parse(to_delimited_text([Project(id="p1", name="P1")], [issue]))[1]
    assert row[:9] == ["P1", "防水工程", "leak", "一般", "总包", "2024-05-01", "已完成", "", "GB 50207"]
    assert row[10] == "2"


def test_rows_follow_input_order():
    issues = [make_issue(id=str(n), title=f"t{n}") for n in (3, 1, 2)]
    rows = parse(to_delimited_text([], issues))
    assert [r[2] for r in rows[1:]] == ["t3", "t1", "t2"]


def test_filename():
    assert csv_filename(date(2024, 3, 9)) == "remediation-list-2024-03-09.csv"
