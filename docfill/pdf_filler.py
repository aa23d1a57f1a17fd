"""
AcroForm filling with pypdf.

Each JSON key is matched to a form field (exact name, then case-insensitive, then
partial), and the value is written according to what the field can hold. The
field kind comes from probing the field dictionaries (/FT, /Ff, /Opt and the
widget appearance states), never from a library class name. Every matched field
yields a FieldFillResult; a field that cannot take its value is skipped with a
reason and the remaining fields are still filled.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from io import BytesIO

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from pypdf.generic import ArrayObject, NameObject, NumberObject, TextStringObject

from docfill.errors import TemplateError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"

# Field flag bits (PDF 32000-1, 12.7.4)
FF_RADIO = 1 << 15
FF_PUSHBUTTON = 1 << 16
FF_EDIT = 1 << 18
FF_RICH_TEXT = 1 << 25

CHECKED_VALUES = (True, "true", "1", 1)

FILLED = "filled"
CLEARED = "cleared"
SKIPPED = "skipped"


class FieldKind(Enum):
    TEXT = "text"
    BOOLEAN = "boolean"
    CHOICE = "choice"
    UNSUPPORTED = "unsupported"


def _resolve(obj):
    return obj.get_object() if hasattr(obj, "get_object") else obj


def _inherited(annot, key: str):
    """Look up key on the widget, then up its /Parent chain (inheritable field attributes)."""
    node = annot
    while node is not None:
        node = _resolve(node)
        if key in node:
            return _resolve(node[key])
        node = node.get("/Parent")
    return None


def _qualified_name(annot) -> str:
    """Fully qualified field name, parent names first, joined with dots."""
    parts = []
    node = annot
    while node is not None:
        node = _resolve(node)
        t = node.get("/T")
        if t:
            parts.insert(0, str(t))
        node = node.get("/Parent")
    return ".".join(parts)


def _field_dict(annot):
    """The dictionary that carries /V: the widget itself when it is also the field, else its parent."""
    if "/T" in annot or "/Parent" not in annot:
        return annot
    return _resolve(annot["/Parent"])


def _on_states(annot) -> list[str]:
    ap = annot.get("/AP")
    if not ap:
        return []
    normal = _resolve(ap).get("/N")
    if normal is None:
        return []
    normal = _resolve(normal)
    if not hasattr(normal, "keys"):
        return []
    return [str(k) for k in normal.keys() if str(k) != "/Off"]


def _options(annot) -> list[str]:
    opt = _inherited(annot, "/Opt")
    if not opt:
        return []
    out = []
    for item in opt:
        item = _resolve(item)
        # [export, display] pairs or plain strings
        if isinstance(item, (list, ArrayObject)) and item:
            item = _resolve(item[0])
        out.append(str(item))
    return out


def _field_flags(annot) -> int:
    try:
        return int(_inherited(annot, "/Ff") or 0)
    except (TypeError, ValueError):
        return 0


def probe_kind(annot) -> FieldKind:
    ft = _inherited(annot, "/FT")
    flags = _field_flags(annot)
    if ft == "/Tx":
        return FieldKind.TEXT
    if ft == "/Btn":
        if flags & FF_PUSHBUTTON:
            return FieldKind.UNSUPPORTED
        if flags & FF_RADIO:
            return FieldKind.CHOICE
        return FieldKind.BOOLEAN
    if ft == "/Ch":
        return FieldKind.CHOICE
    return FieldKind.UNSUPPORTED


@dataclass
class FormWidget:
    """One logical form field and the widget annotations that display it."""

    name: str
    kind: FieldKind
    field_dict: object
    widgets: list = field(default_factory=list)
    options: list[str] = field(default_factory=list)
    editable: bool = False

    @property
    def short_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    def on_state(self) -> str:
        for w in self.widgets:
            states = _on_states(w)
            if states:
                return states[0]
        return "/Yes"


@dataclass
class FieldFillResult:
    key: str
    field_name: str
    kind: FieldKind
    status: str
    reason: str = ""

    def to_dict(self) -> dict:
        out = {"key": self.key, "field": self.field_name, "type": self.kind.value, "status": self.status}
        if self.reason:
            out["reason"] = self.reason
        return out


@dataclass
class FillReport:
    results: list[FieldFillResult] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)
    available_fields: list[dict] = field(default_factory=list)

    @property
    def total_fields(self) -> int:
        return len(self.available_fields)

    @property
    def filled_count(self) -> int:
        return sum(1 for r in self.results if r.status == FILLED)

    @property
    def skipped(self) -> list[FieldFillResult]:
        return [r for r in self.results if r.status == SKIPPED]

    def to_dict(self) -> dict:
        return {
            "filledFields": self.filled_count,
            "skippedFields": len(self.skipped),
            "totalFields": self.total_fields,
            "fields": [r.to_dict() for r in self.results],
            "unmatchedKeys": list(self.unmatched),
            "availableFields": list(self.available_fields),
        }


def describe_fields(widgets: list[FormWidget]) -> list[dict]:
    """Name and kind of every form field, in page order."""
    return [{"name": w.name, "type": w.kind.value} for w in widgets]


def collect_widgets(pages) -> list[FormWidget]:
    """Group page widget annotations into form fields, in page order."""
    by_name: dict[str, FormWidget] = {}
    for page in pages:
        annots = page.get("/Annots")
        if not annots:
            continue
        for ref in _resolve(annots):
            annot = _resolve(ref)
            if annot.get("/Subtype") != "/Widget" and "/FT" not in annot:
                continue
            name = _qualified_name(annot)
            if not name:
                continue
            widget = by_name.get(name)
            if widget is None:
                kind = probe_kind(annot)
                options = _options(annot)
                flags = _field_flags(annot)
                widget = FormWidget(
                    name=name,
                    kind=kind,
                    field_dict=_field_dict(annot),
                    options=options,
                    editable=bool(flags & FF_EDIT),
                )
                by_name[name] = widget
            widget.widgets.append(annot)
    for widget in by_name.values():
        if widget.kind == FieldKind.CHOICE and not widget.options:
            # Radio groups: the options are the kids' on-states
            widget.options = [s.lstrip("/") for w in widget.widgets for s in _on_states(w)]
    return list(by_name.values())


def match_field(key: str, widgets: list[FormWidget]) -> FormWidget | None:
    """Exact name (full or short), then case-insensitive, then suffix / substring."""
    if not key:
        return None
    lowered = key.lower()
    for w in widgets:
        if w.name == key or w.short_name == key:
            return w
    for w in widgets:
        if w.name.lower() == lowered or w.short_name.lower() == lowered:
            return w
    for w in widgets:
        if w.name.endswith(key) or lowered in w.name.lower():
            return w
    return None


def plan_assignments(data: dict, widgets: list[FormWidget]) -> tuple[list[tuple], list[str]]:
    """Returns ([(key, widget, value), ...], unmatched keys) in data order."""
    plan, unmatched = [], []
    for key, value in data.items():
        widget = match_field(str(key), widgets)
        if widget is None:
            unmatched.append(key)
        else:
            plan.append((key, widget, value))
    return plan, unmatched


def _text_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return "" if value is None else str(value)


def _clear_rich_text(widget: FormWidget) -> None:
    for d in [widget.field_dict, *widget.widgets]:
        if "/Ff" in d:
            d[NameObject("/Ff")] = NumberObject(int(d["/Ff"]) & ~FF_RICH_TEXT)


def apply_value(key: str, widget: FormWidget, value) -> FieldFillResult:
    """Write one value into one field according to its kind."""
    def result(status, reason=""):
        return FieldFillResult(key=key, field_name=widget.name, kind=widget.kind, status=status, reason=reason)

    if widget.kind == FieldKind.TEXT:
        _clear_rich_text(widget)
        widget.field_dict[NameObject("/V")] = TextStringObject(_text_value(value))
        for w in widget.widgets:
            if "/AP" in w:
                del w["/AP"]
        return result(FILLED)

    if widget.kind == FieldKind.BOOLEAN:
        checked = value in CHECKED_VALUES
        state = widget.on_state() if checked else "/Off"
        widget.field_dict[NameObject("/V")] = NameObject(state)
        for w in widget.widgets:
            w_state = (_on_states(w) or [state])[0] if checked else "/Off"
            w[NameObject("/AS")] = NameObject(w_state)
        return result(FILLED if checked else CLEARED)

    if widget.kind == FieldKind.CHOICE:
        choice = _text_value(value)
        if widget.options and choice not in widget.options and not widget.editable:
            return result(SKIPPED, f"'{choice}' is not one of the field options")
        ft = _inherited(widget.widgets[0], "/FT") if widget.widgets else None
        if ft == "/Btn":
            state = "/" + choice
            widget.field_dict[NameObject("/V")] = NameObject(state)
            for w in widget.widgets:
                w[NameObject("/AS")] = NameObject(state if state in _on_states(w) else "/Off")
        else:
            widget.field_dict[NameObject("/V")] = TextStringObject(choice)
            for w in widget.widgets:
                if "/AP" in w:
                    del w["/AP"]
        return result(FILLED)

    return result(SKIPPED, "unsupported field type")


def fill_field(key: str, widget: FormWidget, value) -> FieldFillResult:
    """apply_value, with a malformed field recorded as skipped instead of failing the document."""
    try:
        res = apply_value(key, widget, value)
    except (PyPdfError, KeyError, TypeError, ValueError) as e:
        logger.warning("Error filling field '%s' (key '%s'): %s", widget.name, key, e)
        res = FieldFillResult(
            key=key, field_name=widget.name, kind=widget.kind, status=SKIPPED,
            reason=f"could not write value: {e}",
        )
    else:
        if res.status == SKIPPED:
            logger.info("Skipped field '%s' (key '%s'): %s", widget.name, key, res.reason)
    return res


class PdfFormFiller:
    """Fills the AcroForm of a PDF template and reports what happened to every matched field."""

    def load(self, pdf_bytes: bytes) -> PdfReader:
        if len(pdf_bytes) < 4 or not pdf_bytes.startswith(PDF_MAGIC):
            raise TemplateError("Invalid PDF file: File does not appear to be a valid PDF")
        try:
            reader = PdfReader(BytesIO(pdf_bytes))
            if reader.is_encrypted:
                logger.info("PDF is encrypted, trying an empty password")
                if not reader.decrypt(""):
                    raise TemplateError("Failed to load PDF: the PDF is password protected")
        except PyPdfError as e:
            raise TemplateError(f"Failed to load PDF: {e}") from e
        return reader

    def fill(self, pdf_bytes: bytes, data: dict) -> tuple[bytes, FillReport]:
        reader = self.load(pdf_bytes)
        writer = PdfWriter()
        writer.clone_document_from_reader(reader)

        widgets = collect_widgets(writer.pages)
        if not widgets:
            raise TemplateError("Failed to access PDF form: the PDF does not contain form fields")

        plan, unmatched = plan_assignments(data, widgets)
        report = FillReport(unmatched=unmatched, available_fields=describe_fields(widgets))
        for key, widget, value in plan:
            report.results.append(fill_field(key, widget, value))
        if unmatched:
            logger.debug("No field matched for %d keys", len(unmatched))

        writer.set_need_appearances_writer(True)

        out = BytesIO()
        writer.write(out)
        logger.info("Filled %d of %d PDF fields", report.filled_count, report.total_fields)
        return out.getvalue(), report

    def field_names(self, pdf_bytes: bytes) -> list[dict]:
        return describe_fields(collect_widgets(self.load(pdf_bytes).pages))


def fill_pdf(pdf_bytes: bytes, data: dict) -> tuple[bytes, FillReport]:
    """Backward-compatible: delegates to PdfFormFiller().fill."""
    return PdfFormFiller().fill(pdf_bytes, data)
