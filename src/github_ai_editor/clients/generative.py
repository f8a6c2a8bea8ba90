import os
from typing import Any, Protocol, override

import httpx
from fastmcp.utilities.logging import get_logger
from google.genai import Client as GoogleGenaiClient
from google.genai.errors import APIError as GoogleGenaiAPIError
from google.genai.types import GenerateContentConfig, GenerateContentResponse, ThinkingConfig
from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, Field

from github_ai_editor.clients.errors.generative import AiError, ConfigError

logger = get_logger(__name__)

GOOGLE_API_KEY_ENV_VARS = ["GOOGLE_API_KEY", "GEMINI_API_KEY"]
OPENAI_API_KEY_ENV_VARS = ["OPENAI_API_KEY"]

DEFAULT_GOOGLE_MODEL = "gemini-2.5-flash"
DEFAULT_OPENAI_MODEL = "gpt-4o"


def get_api_key(env_vars: list[str]) -> str | None:
    for env_var in env_vars:
        if api_key := os.environ.get(env_var):
            return api_key
    return None


class GenerateOptions(BaseModel):
    """Options for a single generation request."""

    model: str | None = Field(default=None, description="The model to use. If not provided, the client's default model is used.")
    temperature: float | None = Field(default=None, description="The sampling temperature.")
    max_output_tokens: int | None = Field(default=None, description="The maximum number of tokens to generate.")
    thinking_budget: int | None = Field(
        default=None, description="The number of tokens the model may spend thinking. 0 disables thinking where supported."
    )


class GenerativeClient(Protocol):
    default_model: str

    async def generate(self, prompt: str, options: GenerateOptions | None = None) -> str:
        """Generate text for a prompt. Returns an empty string if the model produced no text.

        Raises:
            ConfigError: If the client has no credential.
            AiError: If the request fails.
        """
        ...


class GoogleGenaiGenerativeClient(GenerativeClient):
    """Generates text with Google GenAI. The API key is only looked up on first use."""

    def __init__(self, default_model: str, api_key: str | None = None, client: GoogleGenaiClient | None = None):
        self.default_model: str = default_model
        self._api_key: str | None = api_key
        self._client: GoogleGenaiClient | None = client

    def _get_client(self) -> GoogleGenaiClient:
        if self._client is None:
            if not (api_key := self._api_key or get_api_key(GOOGLE_API_KEY_ENV_VARS)):
                raise ConfigError(provider="Google GenAI", env_vars=GOOGLE_API_KEY_ENV_VARS)

            self._client = GoogleGenaiClient(api_key=api_key)

        return self._client

    @override
    async def generate(self, prompt: str, options: GenerateOptions | None = None) -> str:
        options = options or GenerateOptions()
        model: str = options.model or self.default_model

        client: GoogleGenaiClient = self._get_client()

        thinking_config: ThinkingConfig | None = (
            ThinkingConfig(thinking_budget=options.thinking_budget) if options.thinking_budget is not None else None
        )

        try:
            response: GenerateContentResponse = await client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=GenerateContentConfig(
                    temperature=options.temperature,
                    max_output_tokens=options.max_output_tokens,
                    thinking_config=thinking_config,
                ),
            )
        except (GoogleGenaiAPIError, httpx.HTTPError) as e:
            logger.exception(f"Google GenAI request to {model} failed")
            raise AiError(action="Generate content", message=str(e), model=model) from e

        return response.text or ""


class OpenAIGenerativeClient(GenerativeClient):
    """Generates text with the OpenAI chat completions API. The API key is only looked up on first use."""

    def __init__(self, default_model: str, api_key: str | None = None, client: AsyncOpenAI | None = None):
        self.default_model: str = default_model
        self._api_key: str | None = api_key
        self._client: AsyncOpenAI | None = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not (api_key := self._api_key or get_api_key(OPENAI_API_KEY_ENV_VARS)):
                raise ConfigError(provider="OpenAI", env_vars=OPENAI_API_KEY_ENV_VARS)

            self._client = AsyncOpenAI(api_key=api_key)

        return self._client

    @override
    async def generate(self, prompt: str, options: GenerateOptions | None = None) -> str:
        options = options or GenerateOptions()
        model: str = options.model or self.default_model

        client: AsyncOpenAI = self._get_client()

        optional_args: dict[str, Any] = {}
        if options.temperature is not None:
            optional_args["temperature"] = options.temperature
        if options.max_output_tokens is not None:
            optional_args["max_completion_tokens"] = options.max_output_tokens

        try:
            completion = await client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                **optional_args,
            )
        except OpenAIError as e:
            logger.exception(f"OpenAI request to {model} failed")
            raise AiError(action="Generate content", message=str(e), model=model) from e

        if not completion.choices:
            return ""

        return completion.choices[0].message.content or ""

