from logging import Logger

from fastmcp.utilities.logging import get_logger
from pydantic import BaseModel, Field

from github_ai_editor.assistant.handler import get_generative_client
from github_ai_editor.assistant.prompts import EXPLAIN_TASK, MODIFY_TASK, WHO_YOU_ARE, PromptBuilder, PromptSection
from github_ai_editor.clients.generative import GenerateOptions, GenerativeClient

EXPLAIN_CHARACTER_LIMIT = 5000

NO_MODIFICATION_GENERATED = "// No response generated."
NO_EXPLANATION_GENERATED = "No explanation generated."

# Interactive edits favour latency over reasoning depth
MODIFY_OPTIONS = GenerateOptions(thinking_budget=0)
EXPLAIN_OPTIONS = GenerateOptions()


class FileContext(BaseModel):
    path: str = Field(description="The path of the file in the repository.")
    characters: int = Field(description="The number of characters in the file.")


def build_modify_prompt(code: str, instruction: str, path: str | None = None) -> str:
    prompt_builder = PromptBuilder().add_prompt_section(WHO_YOU_ARE)

    if path:
        prompt_builder.add_yaml_section(
            title="File", preamble="The file being edited:", obj=FileContext(path=path, characters=len(code))
        )

    prompt_builder.add_code_section(title="Current Code File", code=code)
    prompt_builder.add_prompt_section(PromptSection(title="User Instruction", section=instruction))
    prompt_builder.add_prompt_section(MODIFY_TASK)

    return prompt_builder.render_text()


def build_explain_prompt(code: str, path: str | None = None) -> str:
    """Only the first EXPLAIN_CHARACTER_LIMIT characters of the code are included."""

    truncated: bool = len(code) > EXPLAIN_CHARACTER_LIMIT

    prompt_builder = PromptBuilder().add_prompt_section(EXPLAIN_TASK)

    if path:
        prompt_builder.add_yaml_section(
            title="File", preamble="The file being explained:", obj=FileContext(path=path, characters=len(code))
        )

    prompt_builder.add_code_section(
        title="Code",
        code=code[:EXPLAIN_CHARACTER_LIMIT],
        note=f"(Code truncated to the first {EXPLAIN_CHARACTER_LIMIT} characters)" if truncated else None,
    )

    return prompt_builder.render_text()


class CodeAssistant:
    """Request/response contract with the generative collaborator. One round trip per call, no streaming, no retries.

    The text returned by `modify` is used verbatim as the new file content: the prompt asks the model not to fence it,
    and nothing here strips fences the model adds anyway."""

    generative_client: GenerativeClient
    logger: Logger

    def __init__(self, generative_client: GenerativeClient | None = None, logger: Logger | None = None):
        self.generative_client = generative_client or get_generative_client()
        self.logger = logger or get_logger(name=__name__)

    async def modify(self, code: str, instruction: str, path: str | None = None) -> str:
        """Rewrite the code following a natural language instruction.

        Raises:
            ConfigError: If the generative client has no credential.
            AiError: If the request fails.
        """

        prompt: str = build_modify_prompt(code=code, instruction=instruction, path=path)

        self.logger.info(f"Requesting modification of {path or 'file'} ({len(code)} characters)")

        new_code: str = await self.generative_client.generate(prompt=prompt, options=MODIFY_OPTIONS)

        return new_code or NO_MODIFICATION_GENERATED

    async def explain(self, code: str, path: str | None = None) -> str:
        """Explain the code. Files longer than EXPLAIN_CHARACTER_LIMIT are explained from their beginning only.

        Raises:
            ConfigError: If the generative client has no credential.
            AiError: If the request fails.
        """

        prompt: str = build_explain_prompt(code=code, path=path)

        self.logger.info(f"Requesting explanation of {path or 'file'} ({min(len(code), EXPLAIN_CHARACTER_LIMIT)} characters)")

        explanation: str = await self.generative_client.generate(prompt=prompt, options=EXPLAIN_OPTIONS)

        return explanation or NO_EXPLANATION_GENERATED
