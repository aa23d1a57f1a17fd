"""
Field payload handling: load the JSON body, sanitize values, and reconcile the two
accepted key spellings ("[NAME]" and "NAME").
"""
import json
import re

from docfill.errors import InvalidPayloadError

# Look-alike and typographic characters mapped to what a WinAnsi PDF font can encode
_CHAR_REPLACEMENTS = {
    "“": '"', "”": '"',
    "‘": "'", "’": "'",
    "–": "-", "—": "-",
    # Cyrillic letters that look like Latin ones (upper, lower)
    "А": "A", "а": "a",
    "В": "B", "в": "b",
    "Е": "E", "е": "e",
    "К": "K", "к": "k",
    "М": "M", "м": "m",
    "Н": "H", "н": "h",
    "О": "O", "о": "o",
    "Р": "P", "р": "p",
    "С": "C", "с": "c",
    "Т": "T", "т": "t",
    "Х": "X", "х": "x",
    "У": "Y", "у": "y",
}
_CHAR_TABLE = str.maketrans(_CHAR_REPLACEMENTS)
_OUTSIDE_WINANSI = re.compile(r"[^\x20-\x7E\xA0-\xFF]")


def load_field_payload(json_data) -> dict:
    """
    Accept the jsonData body as a dict or a JSON string. Anything else is rejected
    before the engine sees it, so no field is ever half-processed.
    """
    data = json_data
    if isinstance(json_data, (str, bytes)):
        try:
            data = json.loads(json_data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidPayloadError("Invalid JSON format") from e
    if not isinstance(data, dict):
        raise InvalidPayloadError("JSON data must be an object of field names to values")
    return dict(data)


def sanitize_value(value):
    """Replace curly quotes, dashes and Cyrillic look-alikes; drop characters outside WinAnsi. Non-strings pass through."""
    if not isinstance(value, str):
        return value
    return _OUTSIDE_WINANSI.sub("", value.translate(_CHAR_TABLE))


def sanitize_all_values(data: dict) -> dict:
    return {k: sanitize_value(v) for k, v in data.items()}


def strip_brackets(key: str) -> str:
    """'[NAME]' -> 'NAME'. Exactly one bracket pair, only when both ends are present."""
    if len(key) >= 2 and key.startswith("[") and key.endswith("]"):
        return key[1:-1]
    return key


def bracket(name: str) -> str:
    return f"[{name}]"


def normalize_field_keys(data: dict) -> dict:
    """
    Map "[VAR_NAME]" and "VAR_NAME" keys onto one unbracketed key space.
    When both spellings are present the one that comes later wins.
    """
    normalized = {}
    for key, value in data.items():
        normalized[strip_brackets(key)] = value
    return normalized


class FieldSet:
    """
    View over a raw field dict that reads either spelling of a name and writes back
    to the spelling already present (bracketed for new keys). Mutates the dict in place.
    """

    def __init__(self, data: dict):
        self._data = data

    @property
    def data(self) -> dict:
        return self._data

    def key_for(self, name: str) -> str:
        bracketed = bracket(name)
        if bracketed in self._data:
            return bracketed
        if name in self._data:
            return name
        return bracketed

    def has(self, name: str) -> bool:
        return bracket(name) in self._data or name in self._data

    def get(self, name: str, default=None):
        return self._data.get(self.key_for(name), default)

    def text(self, name: str) -> str:
        """Value as a string; missing, None and False read as ''."""
        value = self.get(name)
        if value is None or value is False:
            return ""
        return value if isinstance(value, str) else str(value)

    def set(self, name: str, value) -> None:
        self._data[self.key_for(name)] = value
