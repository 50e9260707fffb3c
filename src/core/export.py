"""CSV export and import utilities."""
import csv
import io
import unicodedata

from django.http import HttpResponse
from django.utils import timezone
from rest_framework.exceptions import ValidationError

MAX_IMPORT_BYTES = 5 * 1024 * 1024


def export_filename(entity, day=None):
    """Return ``<entity>_export_<yyyy-MM-dd>.csv``."""
    day = day or timezone.localdate()
    return f"{entity}_export_{day:%Y-%m-%d}.csv"


def _cell(obj, field):
    if callable(field):
        val = field(obj)
    elif isinstance(obj, dict):
        val = obj.get(field, "")
    else:
        val = getattr(obj, field, "")
    return "" if val is None else str(val)


def write_rows(stream, rows, columns):
    """Write a header row and one quoted row per object to ``stream``.

    Args:
        rows: iterable of model instances or dicts
        columns: list of (field_name_or_callable, header_label) tuples.
            If field_name_or_callable is a string, the attribute (or dict key)
            is used. If it's callable, it's called with the object.
    """
    writer = csv.writer(stream, quoting=csv.QUOTE_ALL, lineterminator="\r\n")
    writer.writerow([col[1] for col in columns])
    for obj in rows:
        writer.writerow([_cell(obj, field) for field, _ in columns])


def rows_to_csv(rows, columns):
    buffer = io.StringIO()
    write_rows(buffer, rows, columns)
    return buffer.getvalue()


def parse_csv(text):
    """Parse exported CSV text back into a header list and row lists."""
    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.reader(io.StringIO(text))
    rows = list(reader)
    if not rows:
        return [], []
    return rows[0], rows[1:]


def queryset_to_csv_response(queryset, columns, entity):
    """Convert a queryset to a CSV HttpResponse named after ``entity``."""
    response = HttpResponse(content_type="text/csv; charset=utf-8")
    response["Content-Disposition"] = f'attachment; filename="{export_filename(entity)}"'
    # UTF-8 BOM for Excel compatibility
    response.write("\ufeff")
    rows = queryset.iterator() if hasattr(queryset, "iterator") else queryset
    write_rows(response, rows, columns)
    return response


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def decode_csv_upload(uploaded_file) -> str:
    """Decode an uploaded CSV as UTF-8 (BOM allowed), falling back to latin-1."""
    if not uploaded_file:
        raise ValidationError({"file": "No CSV file provided."})
    if getattr(uploaded_file, "size", 0) and uploaded_file.size > MAX_IMPORT_BYTES:
        raise ValidationError({"file": "The file is larger than 5 MB."})

    raw = uploaded_file.read()
    if not raw:
        raise ValidationError({"file": "The CSV file is empty."})
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def csv_dict_reader(content: str) -> csv.DictReader:
    """DictReader with the delimiter sniffed among ``, ; | tab``."""
    try:
        dialect = csv.Sniffer().sniff(content[:4096], delimiters=",;|\t")
    except csv.Error:
        dialect = csv.excel
    return csv.DictReader(io.StringIO(content), dialect=dialect)


def normalize_header(value) -> str:
    """``"Customer Name"``, ``customer_name`` and ``customerName`` all become ``customername``."""
    cleaned = unicodedata.normalize("NFKD", str(value or "").strip().lower())
    cleaned = "".join(ch for ch in cleaned if not unicodedata.combining(ch))
    for ch in (" ", "-", "_", "/", "\\", ".", "(", ")", ":"):
        cleaned = cleaned.replace(ch, "")
    return cleaned


def is_blank_row(row: dict) -> bool:
    return not any(str(value).strip() for value in row.values() if value is not None)
