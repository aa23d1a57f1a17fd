"""
Prompt for the field EXTRACTION call only: read the uploaded case documents and
return the raw "[NAME]" fields the derived-field rules and templates consume.

A deployment can replace the default text with its own prompt file
(DOCFILL_EXTRACTION_PROMPT); the builders below append the same date context and
file metadata either way.
"""
from pathlib import Path

# Raw fields the derived-field rules read. Everything else the model returns is passed through.
EXTRACTION_FIELDS = (
    "PLAINTIFF_NAME", "CREDITOR1_NAME", "CREDITOR_ADDRESS", "CREDITOR_CITY", "CREDITOR_STATE", "CREDITOR_ZIP",
    "DEFENDANT_NAME", "DEBTOR1_ADDRESS", "DEBTOR1_CITY", "DEBTOR1_STATE", "DEBTOR1_ZIP",
    "DEBTOR1_DL_LAST4", "DEBTOR1_SS_LAST4", "DEBTOR2_DL_LAST4", "DEBTOR2_SS_LAST4",
    "ATTY_NAME", "ATTY_SBN", "ATTY_EMAIL", "ATTY_NAME2", "ATTY_SBN2", "ATTY_EMAIL2",
    "FIRM_NAME", "FIRM_ADDRESS", "FIRM_CITY", "FIRM_STATE", "FIRM_ZIP", "FIRM_PHONE",
    "CASE_NUMBER", "COURT_COUNTY", "DEMAND_AMOUNT", "JUDGMENT_TOTAL_AMOUNT",
    "NUMBER_OF_CAUSES", "RAW_IS_BREACH_OF_CONTRACT", "STAY_DATE", "DATE_SIGNED",
)

EXTRACTION_PROMPT = """You are a paralegal extracting case data from the attached collection documents
(account statements, contracts, prior pleadings, judgments).

Return a single JSON object. Keys are field names in square brackets, values are strings.
Use exactly these keys:
{field_list}

RULES:
1. Copy names, addresses and numbers exactly as they appear in the documents. Do not invent values.
2. If a value is not present, use an empty string "".
3. Amounts: digits with an optional decimal point and no currency symbol (e.g. "12500.00").
4. [DEBTOR1_DL_LAST4] / [DEBTOR1_SS_LAST4]: only the last four digits, never a full number.
5. [RAW_IS_BREACH_OF_CONTRACT]: "true" when the claim is for breach of a written or oral contract, else "false".
6. [NUMBER_OF_CAUSES]: the number of causes of action as digits (e.g. "2").
7. [DEFENDANT_NAME]: the debtor's full name; keep any entity description such as ", a corporation".
8. Output ONLY the JSON object, no explanation or commentary."""


def build_default_prompt() -> str:
    field_list = "\n".join(f"  [{name}]" for name in EXTRACTION_FIELDS)
    return EXTRACTION_PROMPT.format(field_list=field_list)


def load_extraction_prompt(path: str | Path | None = None) -> str:
    """Prompt text from the given file, or the built-in prompt when no file is configured."""
    if not path:
        return build_default_prompt()
    return Path(path).read_text(encoding="utf-8")


def build_model_prompt(template: str, today: str) -> str:
    """Prompt sent with inline file data: the template plus the signing date context."""
    return f"{template}\n\nCURRENT_DATE_CONTEXT: {today}\n\nRespond with a single JSON object."


def build_files_metadata(files: list[dict]) -> str:
    """files: [{"filename", "size", "base64"}]. Text block listing each upload."""
    lines = []
    for f in files:
        lines.append(f"\n---\nFilename: {f['filename']}\nSize: {f['size']} bytes\nBase64Len: {len(f['base64'])}\n")
    return "".join(lines)


def build_preview_prompt(template: str, files: list[dict]) -> str:
    """What would be sent to the model, with file metadata instead of file contents."""
    return (
        f"{template}\n\nAttached files metadata:{build_files_metadata(files)}\n\n"
        "Respond with a single JSON object as requested in the prompt."
    )


def build_text_prompt(prompt: str, documents: list[tuple[str, str]]) -> str:
    """Prompt for text-only backends: the document text is inlined after the model prompt."""
    parts = [prompt]
    for filename, text in documents:
        parts.append(f"\n---\nDocument: {filename}\n---\n{text}")
    return "\n".join(parts)
