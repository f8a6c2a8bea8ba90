from inline_snapshot import snapshot
from pydantic import BaseModel

from github_ai_editor.assistant.prompts import PromptBuilder, PromptSection


class Sample(BaseModel):
    path: str
    characters: int


def test_code_section_keeps_indentation():
    code = "    def indented():\n        return 1\n"

    prompt_builder = PromptBuilder().add_code_section(title="Code", code=code, language="python", level=2, note="(a note)")

    assert prompt_builder.render_text() == snapshot(
        """\
## Code
```python
    def indented():
        return 1

```
(a note)\
"""
    )


def test_yaml_section():
    prompt_builder = PromptBuilder()
    _ = prompt_builder.add_prompt_section(PromptSection(title="Task", section="Read the file."))
    _ = prompt_builder.add_yaml_section(title="File", preamble="The file:", obj=Sample(path="README", characters=13))

    assert prompt_builder.render_text() == snapshot(
        """\
# Task
Read the file.

# File
The file:
```yaml
path: README
characters: 13

```\
"""
    )
