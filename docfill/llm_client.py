"""
LLM client for OpenAI/Azure. Uses Config and encapsulates client/model in the class (OOP).
Transport failures are mapped onto UpstreamError so the retry loop can tell
rate limits and timeouts apart from hard failures.
"""
from docfill.config import Config
from docfill.errors import UpstreamError
from docfill.retry import is_retryable_status

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


class LLMClient:
    """
    Encapsulates OpenAI or Azure OpenAI client and model.
    Client and model are set in __init__ from Config; timeout is passed to the SDK per client.
    """

    def __init__(self, config: Config | None = None):
        cfg = config or Config()
        if cfg.USE_AZURE_OPENAI:
            from openai import AzureOpenAI
            self._client = AzureOpenAI(
                azure_endpoint=cfg.AZURE_OPENAI_ENDPOINT,
                api_key=cfg.AZURE_OPENAI_API_KEY,
                api_version=cfg.AZURE_OPENAI_API_VERSION,
                timeout=cfg.EXTRACTION_TIMEOUT,
                max_retries=0,
            )
            self._model = cfg.AZURE_OPENAI_DEPLOYMENT
        else:
            from openai import OpenAI
            self._client = OpenAI(api_key=cfg.OPENAI_API_KEY, timeout=cfg.EXTRACTION_TIMEOUT, max_retries=0)
            self._model = DEFAULT_OPENAI_MODEL

    @property
    def model(self) -> str:
        return self._model

    def generate(
        self,
        prompt: str,
        max_tokens: int = 4096,
        json_mode: bool = False,
        temperature: float | None = None,
    ) -> str:
        kwargs = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if temperature is not None:
            kwargs["temperature"] = temperature

        from openai import APIConnectionError, APIStatusError, APITimeoutError
        try:
            response = self._client.chat.completions.create(**kwargs)
            return response.choices[0].message.content or ""
        except APITimeoutError as e:
            raise UpstreamError(
                "Request timed out. The document may be too complex or large; try again later.",
                status_code=504,
                retryable=True,
            ) from e
        except APIConnectionError as e:
            msg = str(e).strip() or type(e).__name__
            raise UpstreamError(
                f"Cannot reach OpenAI/Azure: {msg} Check AZURE_OPENAI_ENDPOINT (or OPENAI_API_KEY) and network/VPN/DNS.",
                status_code=503,
                retryable=True,
            ) from e
        except APIStatusError as e:
            raise UpstreamError(
                f"API error: {str(e).strip() or type(e).__name__}",
                status_code=e.status_code,
                retryable=is_retryable_status(e.status_code),
            ) from e
