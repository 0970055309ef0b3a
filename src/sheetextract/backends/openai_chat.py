"""OpenAI-compatible chat backend used for page vision calls and field extraction."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

import httpx
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI

from sheetextract import logger
from sheetextract.exceptions import BackendError, ModelUnavailableError
from sheetextract.settings import build_httpx_client_kwargs
from sheetextract.typing.models import TokenUsage

if TYPE_CHECKING:
    from sheetextract.settings import Settings


class OpenAIChatBackend:
    """Chat completions backend against OpenAI-compatible endpoints.

    The backend owns one `httpx.AsyncClient` for its whole lifetime. Build it once
    at process start and close it with `aclose()` on shutdown.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize backend.

        Args:
            settings (Settings): Runtime settings.
        """
        self._settings = settings
        self._http_client: httpx.AsyncClient | None = None
        self._client: AsyncOpenAI | None = None

    @property
    def available(self) -> bool:
        """Return whether credentials are configured."""
        return bool(self._settings.openai_api_key)

    def _openai_client(self) -> AsyncOpenAI:
        """Return the SDK client, creating it on first use.

        Raises:
            ModelUnavailableError: If no API key is configured.

        Returns:
            AsyncOpenAI: SDK client bound to the backend HTTP client.
        """
        if not self._settings.openai_api_key:
            raise ModelUnavailableError(message="OPENAI_API_KEY is not set")
        if self._client is None:
            self._http_client = httpx.AsyncClient(
                **build_httpx_client_kwargs(self._settings),
                limits=httpx.Limits(max_connections=self._settings.max_connections),
            )
            self._client = AsyncOpenAI(
                api_key=self._settings.openai_api_key,
                base_url=self._settings.openai_base_url,
                http_client=self._http_client,
            )
        return self._client

    async def _create_completion(self, messages: list[dict[str, Any]]) -> tuple[str, TokenUsage]:
        """Send one chat completion request.

        Args:
            messages (list[dict[str, Any]]): Chat messages.

        Raises:
            BackendError: If the request fails.

        Returns:
            tuple[str, TokenUsage]: First choice content (empty when absent) and usage.
        """
        client = self._openai_client()
        try:
            completion = await client.chat.completions.create(
                model=self._settings.openai_model,
                messages=cast("Any", messages),
                temperature=self._settings.openai_temperature,
            )
        except APIStatusError as exc:
            raise BackendError(
                message=f"Chat completion request failed with status {exc.status_code}",
            ) from exc
        except APITimeoutError as exc:
            raise BackendError(message="Chat completion request timed out") from exc
        except APIConnectionError as exc:
            raise BackendError(message=f"Chat completion request failed: {exc}") from exc
        except Exception as exc:
            raise BackendError(message=f"Chat completion request failed: {exc}") from exc

        usage = TokenUsage.from_api(completion.usage)
        content = ""
        if completion.choices:
            content = completion.choices[0].message.content or ""
        logger.info(
            "Chat completion received",
            extra={"model": self._settings.openai_model, "chars": len(content), **usage.model_dump()},
        )
        return content, usage

    async def adescribe_image(self, prompt: str, image_url: str) -> tuple[str, TokenUsage]:
        """Send an instruction together with one image.

        Args:
            prompt (str): Instruction text.
            image_url (str): `data:` URI of the image.

        Returns:
            tuple[str, TokenUsage]: Model text and usage.
        """
        content: list[dict[str, Any]] = [
            {"type": "text", "text": prompt},
            {"type": "image_url", "image_url": {"url": image_url}},
        ]
        return await self._create_completion([{"role": "user", "content": content}])

    async def acomplete(self, prompt: str) -> tuple[str, TokenUsage]:
        """Send one text-only prompt.

        Args:
            prompt (str): Prompt text.

        Returns:
            tuple[str, TokenUsage]: Model text and usage.
        """
        return await self._create_completion([{"role": "user", "content": prompt}])

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
        self._http_client = None
        self._client = None
