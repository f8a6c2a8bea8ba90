from logging import Logger
from pathlib import Path
from typing import Any

from fastmcp.exceptions import ToolError
from fastmcp.server import FastMCP
from fastmcp.tools import Tool
from fastmcp.utilities.logging import get_logger

from github_ai_editor.clients.errors.generative import GenerativeError
from github_ai_editor.servers.shared.annotations import CONTENT, CREDENTIAL, INSTRUCTION, PATH, REPOSITORY
from github_ai_editor.servers.shared.errors import to_tool_error
from github_ai_editor.session.errors import SessionError
from github_ai_editor.session.state import OpenFile, Session, SessionSnapshot

DEFAULT_DOWNLOAD_DIR = Path("downloads")


class EditorServer:
    """Exposes one editing session as MCP tools."""

    session: Session
    download_dir: Path
    logger: Logger

    def __init__(self, session: Session | None = None, download_dir: Path | None = None, logger: Logger | None = None):
        self.logger = logger or get_logger(name=__name__)
        self.session = session or Session(logger=self.logger)
        self.download_dir = download_dir or DEFAULT_DOWNLOAD_DIR

    def register_tools(self, fastmcp: FastMCP[Any]) -> FastMCP[Any]:
        for tool in [
            self.load_repository,
            self.set_credential,
            self.view_tree,
            self.toggle_folder,
            self.open_file,
            self.edit_file,
            self.explain_file,
            self.modify_file,
            self.toggle_ai_panel,
            self.download_file,
            self.get_session,
        ]:
            _ = fastmcp.add_tool(tool=Tool.from_function(fn=tool))

        return fastmcp

    async def load_repository(self, repository: REPOSITORY) -> SessionSnapshot:
        """Load the file tree of a GitHub repository from its default branch. A failed load is reported in `error`."""

        try:
            await self.session.load_repository(name=repository)
        except SessionError as e:
            raise to_tool_error(e) from e

        return self.session.snapshot()

    async def set_credential(self, token: CREDENTIAL = None) -> str:
        """Set the GitHub token used for the following requests."""

        self.session.set_credential(credential=token)

        return "Using the provided token." if self.session.credential else "Using anonymous access."

    async def view_tree(self) -> str:
        """Show the visible rows of the repository tree. `[+]` marks a collapsed folder, `[-]` an expanded one and `*` the open file."""

        if self.session.repository_name is None:
            raise ToolError("No repository is loaded.")

        return self.session.tree_view.render_text()

    async def toggle_folder(self, path: PATH) -> str:
        """Expand or collapse a folder of the repository tree and show the tree."""

        try:
            _ = self.session.toggle(path=path)
        except SessionError as e:
            raise to_tool_error(e) from e

        return self.session.tree_view.render_text()

    async def open_file(self, path: PATH) -> SessionSnapshot:
        """Open a file of the loaded repository in the editor. A failed load is reported in `error`."""

        try:
            await self.session.open_path(path=path)
        except SessionError as e:
            raise to_tool_error(e) from e

        return self.session.snapshot()

    async def edit_file(self, content: CONTENT) -> OpenFile:
        """Replace the content of the open file."""

        try:
            self.session.edit(text=content)
        except SessionError as e:
            raise to_tool_error(e) from e

        if self.session.open_file is None:
            raise ToolError("No file is open.")

        return self.session.open_file

    async def explain_file(self) -> str:
        """Ask the AI assistant to explain the open file."""

        try:
            return await self.session.explain()
        except (SessionError, GenerativeError) as e:
            raise to_tool_error(e) from e

    async def modify_file(self, instruction: INSTRUCTION) -> str:
        """Ask the AI assistant to rewrite the open file following an instruction. The result replaces the file content."""

        try:
            return await self.session.modify(instruction=instruction)
        except (SessionError, GenerativeError) as e:
            raise to_tool_error(e) from e

    async def toggle_ai_panel(self) -> bool:
        """Show or hide the AI assistant panel. Returns whether the panel is now visible."""

        return self.session.toggle_ai_panel()

    async def download_file(self) -> str:
        """Save the content of the open file to the local download directory."""

        try:
            target: Path = self.session.download(directory=self.download_dir)
        except SessionError as e:
            raise to_tool_error(e) from e

        return str(target)

    async def get_session(self) -> SessionSnapshot:
        """Get the state of the editing session."""

        return self.session.snapshot()
