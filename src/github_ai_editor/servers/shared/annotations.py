from typing import Annotated

from pydantic import Field

REPOSITORY_DESCRIPTION = "The repository to load, written as `owner/repo`. For example: `octocat/Hello-World`."
REPOSITORY = Annotated[str, Field(description=REPOSITORY_DESCRIPTION)]

CREDENTIAL_DESCRIPTION = "A GitHub personal access token. Leave empty to access public repositories anonymously."
CREDENTIAL = Annotated[str | None, Field(description=CREDENTIAL_DESCRIPTION)]

PATH_DESCRIPTION = "The path of the entry in the repository, relative to its root. For example: `src/index.ts`."
PATH = Annotated[str, Field(description=PATH_DESCRIPTION)]

CONTENT = Annotated[str, Field(description="The new content of the open file.")]

INSTRUCTION = Annotated[str, Field(description="What the assistant should change in the open file, in plain language.")]
