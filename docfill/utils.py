"""
Lenient JSON parsing for generative model output.
"""
import json
import re

_STRING_LITERAL = re.compile(r'"(?:[^"\\]|\\.)*"', re.DOTALL)
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}
_FENCED = (re.compile(r"```json\s*([\s\S]*?)\s*```"), re.compile(r"```\s*([\s\S]*?)\s*```"))


class JsonParser:
    """
    Models wrap JSON in markdown fences, leave raw newlines inside string values,
    add trailing commas and stop mid-object when they hit the token limit.
    Each repair is tried in turn until json.loads accepts one.
    """

    @staticmethod
    def escape_control_chars(s: str) -> str:
        def _escape(m: re.Match) -> str:
            literal = m.group(0)
            for raw, escaped in _CONTROL_ESCAPES.items():
                literal = literal.replace(raw, escaped)
            return literal

        return _STRING_LITERAL.sub(_escape, s)

    @staticmethod
    def drop_trailing_commas(s: str) -> str:
        return re.sub(r",\s*([}\]])", r"\1", s)

    @staticmethod
    def close_truncated(s: str) -> str:
        s = s.rstrip()
        missing_brackets = s.count("[") - s.count("]")
        missing_braces = s.count("{") - s.count("}")
        return s + "]" * max(missing_brackets, 0) + "}" * max(missing_braces, 0)

    @staticmethod
    def strip_code_fence(text: str) -> str:
        """Contents of the first ```json ... ``` (or bare ```) block, else the text unchanged."""
        for pattern in _FENCED:
            m = pattern.search(text)
            if m:
                return m.group(1)
        return text

    @classmethod
    def _variants(cls, s: str):
        escaped = cls.escape_control_chars(s)
        yield s
        yield cls.drop_trailing_commas(s)
        yield escaped
        yield cls.drop_trailing_commas(escaped)
        yield cls.close_truncated(s)
        yield cls.close_truncated(cls.drop_trailing_commas(escaped))

    @classmethod
    def extract_json_from_llm(cls, response: str):
        """Parse the first JSON object or array in a model response; ValueError if none parses."""
        if not response or not response.strip():
            raise ValueError("LLM returned empty response.")
        text = cls.strip_code_fence(response.strip()).strip()
        starts = [i for i in (text.find("{"), text.find("[")) if i >= 0]
        if starts:
            text = text[min(starts):]
        for candidate in cls._variants(text):
            try:
                return json.loads(candidate)
            except json.JSONDecodeError:
                continue
        raise ValueError("LLM did not return valid JSON.")
