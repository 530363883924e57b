"""Load plan activities from spreadsheets and documents."""
import csv
import json
import logging
from pathlib import Path

from cabinet_planner.errors import ParseError, ValidationError
from cabinet_planner.plans import bulk_import_rows, replace_activities

logger = logging.getLogger(__name__)

TABULAR_SUFFIXES = (".xlsx", ".xlsm", ".csv", ".json", ".yaml", ".yml")


def read_rows(file_path: str) -> list[list]:
    """Return the raw rows of a tabular file (first sheet for workbooks)."""
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix in (".xlsx", ".xlsm"):
        from openpyxl import load_workbook
        wb = load_workbook(file_path, read_only=True, data_only=True)
        try:
            ws = wb.worksheets[0]
            return [list(row) for row in ws.iter_rows(values_only=True)]
        finally:
            wb.close()
    elif suffix == ".csv":
        with path.open(newline="", encoding="utf-8-sig") as f:
            return [row for row in csv.reader(f)]
    elif suffix == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
    elif suffix in (".yaml", ".yml"):
        import yaml
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    else:
        raise ParseError(f"Unsupported spreadsheet format: {suffix or path.name}")

    if not isinstance(data, list) or not all(isinstance(r, list) for r in data):
        raise ParseError(f"{path.name} must contain a list of rows")
    return data


def read_lines(file_path: str) -> list[str]:
    """Return the text lines of a document, one activity per line."""
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix == ".docx":
        from docx import Document
        doc = Document(file_path)
        return [p.text for p in doc.paragraphs]
    elif suffix == ".pdf":
        from PyPDF2 import PdfReader
        reader = PdfReader(file_path)
        text = "\n".join(page.extract_text() or "" for page in reader.pages)
    elif suffix in (".html", ".htm"):
        from bs4 import BeautifulSoup
        text = BeautifulSoup(path.read_text(encoding="utf-8"), "html.parser").get_text("\n")
    else:
        # .txt, .md and anything else: plain text
        text = path.read_text(encoding="utf-8")
    return text.splitlines()


def import_plan_file(db_path: str, plan_type, file_path: str, column: int = 1) -> dict:
    """Replace a plan with the activities read from a file."""
    path = Path(file_path)
    if not path.exists():
        raise ParseError(f"File not found: {file_path}")
    tabular = path.suffix.lower() in TABULAR_SUFFIXES
    try:
        source = read_rows(file_path) if tabular else read_lines(file_path)
    except ParseError:
        raise
    except Exception as e:
        logger.warning("Could not read %s: %s", path.name, e)
        raise ParseError(f"Could not read {path.name}: {e}") from e

    if tabular:
        activities = bulk_import_rows(db_path, plan_type, source, column=column)
    else:
        if not any(line.strip() for line in source):
            raise ValidationError("No activities found")
        activities = replace_activities(db_path, plan_type, source)
    return {"filename": path.name, "plan_type": int(plan_type), "count": len(activities)}
