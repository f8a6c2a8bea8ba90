ExtraInfoType = dict[str, str | None]


class GenerativeError(Exception):
    """An error from the generative AI collaborator."""

    def __init__(self, message: str, extra_info: ExtraInfoType | None = None):
        msg = message
        if extra_info:
            msg += " (" + ", ".join([f"{key}: {value}" for key, value in extra_info.items() if value is not None]) + ")"
        super().__init__(msg)


class AiError(GenerativeError):
    """A transport, credential or service failure while generating text."""

    def __init__(self, action: str, message: str | None = None, model: str | None = None):
        super().__init__(message="Failed to generate AI response.", extra_info={"action": action, "model": model, "message": message})


class ConfigError(GenerativeError):
    """The generative AI collaborator is missing its credential. Not recoverable at runtime."""

    def __init__(self, provider: str, env_vars: list[str]):
        super().__init__(
            message=f"API key for {provider} is missing. Set {' or '.join(env_vars)} before using AI features.",
        )
