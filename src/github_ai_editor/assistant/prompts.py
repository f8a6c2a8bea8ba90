from typing import Self

import yaml
from pydantic import BaseModel, Field


class PromptSection(BaseModel):
    title: str = Field(description="The title of the section.")
    level: int = Field(default=1, description="The level of the section.")
    section: str = Field(description="The section of the prompt.")

    def render_text(self) -> str:
        return f"{'#' * self.level} {self.title}\n{self.section}"


WHO_YOU_ARE = PromptSection(
    title="Who you are",
    level=1,
    section="""
You are an expert Senior Software Engineer.
""",
)

MODIFY_TASK = PromptSection(
    title="Task",
    level=1,
    section="""
Provide the modified code based on the user instruction.
1. If the instruction is a question, answer it in comments or return a revised version of the code with comments.
2. If the instruction is a refactor, output the FULL refactored code.
3. Do NOT use markdown code blocks (e.g., ```javascript) in your response, just return the raw code content so it can be
   directly placed in the editor.
4. Maintain existing coding style and indentation.
""",
)

EXPLAIN_TASK = PromptSection(
    title="Task",
    level=1,
    section="""
Explain the following code concisely for a developer audience.
Focus on logic, flow, and any potential issues.
""",
)


class PromptBuilder(BaseModel):
    sections: list[PromptSection] = Field(default_factory=list, description="The sections of the prompt.")

    def add_code_section(self, title: str, code: str, language: str = "", level: int = 1, note: str | None = None) -> Self:
        # Placed verbatim so the indentation of the code is kept
        code_block = f"```{language}\n{code}\n```"

        if note:
            code_block += f"\n{note}"

        self.sections.append(PromptSection(title=title, level=level, section=code_block))

        return self

    def add_yaml_section(self, title: str, obj: BaseModel, preamble: str | None = None, level: int = 1) -> Self:
        yaml_text: str = yaml.safe_dump(obj.model_dump(), sort_keys=False)

        yaml_block: str = preamble or ""

        yaml_block += f"""
```yaml
{yaml_text}
```"""

        self.sections.append(PromptSection(title=title, level=level, section=yaml_block))

        return self

    def add_prompt_section(self, section: PromptSection) -> Self:
        self.sections.append(section)
        return self

    def render_text(self) -> str:
        return "\n\n".join(section.render_text() for section in self.sections)

