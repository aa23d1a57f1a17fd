"""
DOCX package handling: read the zip, run quote repair and [NAME] substitution over
the body/header/footer parts, and write a new package with only those parts replaced.
"""
import logging
import zipfile
from dataclasses import dataclass, field
from io import BytesIO

from lxml import etree

from docfill.errors import TemplateError
from docfill.fields import normalize_field_keys
from docfill.substitution import TemplateSubstitutionEngine
from docfill.xml_repair import XmlRepairPipeline

logger = logging.getLogger(__name__)


@dataclass
class DocxFillResult:
    docx: bytes
    variables: list[str] = field(default_factory=list)
    replaced: int = 0
    unresolved: list[str] = field(default_factory=list)


def read_package(docx_bytes: bytes) -> tuple[list[zipfile.ZipInfo], dict[str, bytes]]:
    try:
        with zipfile.ZipFile(BytesIO(docx_bytes)) as zf:
            infos = zf.infolist()
            return infos, {info.filename: zf.read(info) for info in infos}
    except zipfile.BadZipFile as e:
        raise TemplateError(f"Template is not a valid DOCX package: {e}") from e


def write_package(infos: list[zipfile.ZipInfo], contents: dict[str, bytes]) -> bytes:
    """Write entries back in their original order, DEFLATE-compressed."""
    out = BytesIO()
    with zipfile.ZipFile(out, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for info in infos:
            zf.writestr(info.filename, contents[info.filename], compress_type=zipfile.ZIP_DEFLATED)
    return out.getvalue()


class DocxFiller:
    """Fill a DOCX template from a field dict ("[NAME]" or "NAME" keys)."""

    def __init__(self, repair: XmlRepairPipeline | None = None, engine: TemplateSubstitutionEngine | None = None):
        self.repair = repair or XmlRepairPipeline()
        self.engine = engine or TemplateSubstitutionEngine()

    def scan(self, docx_bytes: bytes) -> list[str]:
        """Quoted variable names across the text parts, sorted and unique."""
        _, contents = read_package(docx_bytes)
        try:
            return self.repair.scan_parts(contents)
        except etree.XMLSyntaxError as e:
            raise TemplateError(f"Template XML could not be parsed: {e}") from e

    def fill(self, docx_bytes: bytes, data: dict) -> DocxFillResult:
        infos, contents = read_package(docx_bytes)
        fields = normalize_field_keys(data)

        replaced = 0
        unresolved = set()
        try:
            repaired, variables = self.repair.repair_parts(contents)
            contents.update(repaired)
            for name in self.repair.part_names:
                if name not in contents:
                    continue
                result = self.engine.render(contents[name], fields)
                replaced += result.replaced
                unresolved.update(result.unresolved)
                if result.replaced:
                    contents[name] = result.xml
        except etree.XMLSyntaxError as e:
            raise TemplateError(f"Template XML could not be parsed: {e}") from e

        logger.info("Filled DOCX: %d tokens replaced, %d unresolved", replaced, len(unresolved))
        return DocxFillResult(
            docx=write_package(infos, contents),
            variables=variables,
            replaced=replaced,
            unresolved=sorted(unresolved),
        )


def fill_docx(docx_bytes: bytes, data: dict) -> DocxFillResult:
    """Backward-compatible: delegates to DocxFiller().fill."""
    return DocxFiller().fill(docx_bytes, data)
