import os

from fastmcp.utilities.logging import get_logger

from github_ai_editor.clients.generative import (
    DEFAULT_GOOGLE_MODEL,
    DEFAULT_OPENAI_MODEL,
    GOOGLE_API_KEY_ENV_VARS,
    OPENAI_API_KEY_ENV_VARS,
    GoogleGenaiGenerativeClient,
    OpenAIGenerativeClient,
    get_api_key,
)

logger = get_logger(__name__)


def get_generative_client() -> GoogleGenaiGenerativeClient | OpenAIGenerativeClient:
    """Pick the generative backend from the environment.

    With no key configured at all the Google client is returned anyway, it raises a ConfigError on first use."""

    if get_api_key(GOOGLE_API_KEY_ENV_VARS):
        return GoogleGenaiGenerativeClient(default_model=os.getenv("GOOGLE_MODEL") or DEFAULT_GOOGLE_MODEL)

    if get_api_key(OPENAI_API_KEY_ENV_VARS):
        return OpenAIGenerativeClient(default_model=os.getenv("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL)

    logger.warning(
        msg=(
            "No generative AI credential found, explain and modify requests will fail. "
            "Set GOOGLE_API_KEY (or GEMINI_API_KEY) or OPENAI_API_KEY to enable them."
        )
    )

    return GoogleGenaiGenerativeClient(default_model=os.getenv("GOOGLE_MODEL") or DEFAULT_GOOGLE_MODEL)
