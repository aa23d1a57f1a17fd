"""
Generative field extraction from uploaded case documents.

Backends:
  - Gemini REST (GOOGLE_API_KEY): files are sent inline as base64 parts.
  - OpenAI / Azure OpenAI (OPENAI_API_KEY or AZURE_OPENAI_*): text is pulled out of
    the PDFs / DOCX files first and sent in the prompt.

The call is wrapped in bounded retry (429/503, timeouts, connection errors). The
model's JSON then gets two fixed overrides: [DATE_SIGNED] is today's date in Los
Angeles, and a trailing comma is removed from [PLAINTIFF_NAME] (and its page-2 mirror).
Without any backend configured, extract() returns the file metadata and a prompt preview.
"""
import base64
import json
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import Callable
from zoneinfo import ZoneInfo

import requests

from docfill.config import Config
from docfill.errors import DocFillError, UpstreamError
from docfill.prompts import build_model_prompt, build_preview_prompt, build_text_prompt, load_extraction_prompt
from docfill.retry import call_with_retry
from docfill.utils import JsonParser

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
SIGNING_TIMEZONE = "America/Los_Angeles"
PROMPT_PREVIEW_CHARS = 4000
MAX_OUTPUT_TOKENS = 8192


@dataclass
class UploadedFile:
    filename: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_dict(self) -> dict:
        return {"filename": self.filename, "mimeType": self.mime_type, "size": self.size, "base64": self.base64}


def today_in_los_angeles(now: datetime | None = None) -> str:
    """'March 5, 2025' for the current date in Los Angeles."""
    now = now or datetime.now(tz=ZoneInfo(SIGNING_TIMEZONE))
    local = now.astimezone(ZoneInfo(SIGNING_TIMEZONE))
    return f"{local:%B} {local.day}, {local.year}"


def apply_overrides(parsed: dict, today: str) -> dict:
    parsed["[DATE_SIGNED]"] = today
    if "DATE_SIGNED" in parsed:
        parsed["DATE_SIGNED"] = today

    name = parsed.get("[PLAINTIFF_NAME]") or parsed.get("PLAINTIFF_NAME") or ""
    if name and isinstance(name, str):
        name = re.sub(r",\s*$", "", name.strip())
        for key in ("[PLAINTIFF_NAME]", "PLAINTIFF_NAME", "[PLAINTIFF_NAME_P2]", "PLAINTIFF_NAME_P2"):
            if key in parsed:
                parsed[key] = name
    return parsed


def postprocess_generated(generated: str, today: str) -> tuple[str, dict | None]:
    """Apply the overrides to the model output. Returns (JSON text, parsed dict or None)."""
    try:
        parsed = JsonParser.extract_json_from_llm(generated)
    except ValueError as e:
        logger.warning("Failed to parse generated JSON for overrides: %s", e)
        fixed = re.sub(r'"\[?DATE_SIGNED\]?"\s*:\s*"[^"]*"', f'"[DATE_SIGNED]": "{today}"', generated)
        return fixed, None
    if not isinstance(parsed, dict):
        return generated, None
    apply_overrides(parsed, today)
    logger.info('DATE_SIGNED set to "%s"', parsed["[DATE_SIGNED]"])
    return json.dumps(parsed, indent=2), parsed


def file_to_text(f: UploadedFile) -> str:
    name = (f.filename or "").lower()
    if name.endswith(".docx"):
        from docx import Document
        doc = Document(BytesIO(f.data))
        return "\n".join(p.text for p in doc.paragraphs)
    if name.endswith(".pdf") or f.data.startswith(b"%PDF"):
        from pypdf import PdfReader
        reader = PdfReader(BytesIO(f.data))
        return "\n".join(page.extract_text() or "" for page in reader.pages)
    return f.data.decode("utf-8", errors="ignore")


class GeminiBackend:
    """generateContent over REST with inline file parts."""

    name = "gemini"

    def __init__(self, api_key: str, model: str, timeout: float, session=None):
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._http = session or requests

    def _raise_for_status(self, response) -> None:
        try:
            details = response.json()
        except ValueError:
            details = response.text
        status = response.status_code
        if status == 503:
            raise UpstreamError(
                "The AI service is temporarily unavailable. This can happen with complex documents "
                "or during high traffic. Please try again in a few moments.",
                status_code=503, retryable=True, details=details,
            )
        if status == 429:
            raise UpstreamError(
                "Rate limit exceeded. Please wait a moment and try again.",
                status_code=429, retryable=True, details=details,
            )
        raise UpstreamError(f"API error: {response.reason or status}", status_code=status, details=details)

    def generate(self, prompt: str, files: list[UploadedFile]) -> tuple[str | None, dict]:
        parts = [{"text": prompt}]
        for f in files:
            parts.append({"inline_data": {"mime_type": f.mime_type, "data": f.base64}})
        body = {
            "contents": [{"parts": parts}],
            "generationConfig": {"temperature": 0.0, "response_mime_type": "application/json"},
        }
        try:
            response = self._http.post(
                GEMINI_URL.format(model=self._model),
                params={"key": self._api_key},
                json=body,
                timeout=self._timeout,
            )
        except requests.exceptions.Timeout as e:
            raise UpstreamError(
                "Request timed out. The document may be too complex or large. "
                "Try breaking it into smaller parts or try again later.",
                status_code=504, retryable=True,
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise UpstreamError(
                "Network error connecting to AI service. Please check your connection and try again.",
                status_code=503, retryable=True, details=str(e),
            ) from e
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"Request to AI service failed: {e}", status_code=502) from e

        if not response.ok:
            self._raise_for_status(response)

        try:
            raw = response.json()
        except ValueError as e:
            raise UpstreamError(
                "AI service returned a response that is not JSON.",
                status_code=502, details=response.text[:500],
            ) from e
        if not isinstance(raw, dict):
            raise UpstreamError("AI service returned an unexpected response.", status_code=502, details=raw)
        candidates = raw.get("candidates") or []
        content = (candidates[0] or {}).get("content") if candidates else None
        if content and content.get("parts"):
            return "".join(p.get("text", "") for p in content["parts"]), raw
        return None, raw


class OpenAIBackend:
    """Chat completion in JSON mode over text pulled from the uploads."""

    name = "openai"

    def __init__(self, llm_client):
        self._llm = llm_client

    def generate(self, prompt: str, files: list[UploadedFile]) -> tuple[str | None, dict | None]:
        documents = [(f.filename, file_to_text(f)) for f in files]
        text = build_text_prompt(prompt, documents)
        return self._llm.generate(text, max_tokens=MAX_OUTPUT_TOKENS, json_mode=True, temperature=0.0), None


def build_backend(config: Config):
    if config.GOOGLE_API_KEY:
        return GeminiBackend(config.GOOGLE_API_KEY, config.GEMINI_MODEL, config.EXTRACTION_TIMEOUT)
    if config.USE_OPENAI:
        from docfill.llm_client import LLMClient
        return OpenAIBackend(LLMClient(config))
    return None


class ExtractionService:
    """
    Runs one extraction request end to end.
    By default the backend is picked from config; pass backend=None to force the preview response,
    or a fake backend and sleep to run without the network.
    """

    _AUTO = object()

    def __init__(self, config: Config | None = None, backend=_AUTO, sleep: Callable[[float], None] = time.sleep):
        self._config = config or Config()
        self._backend = build_backend(self._config) if backend is self._AUTO else backend
        self._sleep = sleep

    @property
    def backend(self):
        return self._backend

    def load_prompt(self) -> str:
        try:
            return load_extraction_prompt(self._config.EXTRACTION_PROMPT_FILE)
        except OSError as e:
            logger.error("Failed to read prompt file: %s", e)
            raise DocFillError("Failed to read prompt file") from e

    def extract(self, files: list[UploadedFile]) -> dict:
        template = self.load_prompt()

        if self._backend is None:
            metadata = [f.to_dict() for f in files]
            return {
                "success": False,
                "note": "No extraction backend configured; returning file metadata and prompt. "
                        "Set GOOGLE_API_KEY (or OPENAI_API_KEY / AZURE_OPENAI_*) to call a model.",
                "promptPreview": build_preview_prompt(template, metadata)[:PROMPT_PREVIEW_CHARS],
                "files": metadata,
            }

        today = today_in_los_angeles()
        prompt = build_model_prompt(template, today)
        cfg = self._config
        logger.info("Extracting fields from %d files with %s", len(files), self._backend.name)
        generated, raw = call_with_retry(
            lambda: self._backend.generate(prompt, files),
            max_attempts=cfg.EXTRACTION_MAX_RETRIES,
            base_delay=cfg.EXTRACTION_RETRY_BASE_DELAY,
            max_delay=cfg.EXTRACTION_RETRY_MAX_DELAY,
            sleep=self._sleep,
        )

        if generated is None:
            # No candidates (e.g. blocked prompt): pass the raw response through
            return {"success": True, "generated": json.dumps(raw), "raw": raw}

        text, fields = postprocess_generated(generated, today)
        out = {"success": True, "generated": text, "raw": raw}
        if fields is not None:
            out["fields"] = fields
        return out


def extract_fields(files: list[UploadedFile]) -> dict:
    """Backward-compatible: delegates to ExtractionService().extract."""
    return ExtractionService().extract(files)
