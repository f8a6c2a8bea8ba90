from fastmcp.exceptions import ToolError

from github_ai_editor.clients.errors.generative import GenerativeError
from github_ai_editor.session.errors import SessionError


def to_tool_error(error: SessionError | GenerativeError) -> ToolError:
    """Errors the user can act on are shown with their message as is."""

    return ToolError(str(error))
