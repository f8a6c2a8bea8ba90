import os
from logging import Logger
from pathlib import Path
from typing import Literal

import click
from fastmcp import FastMCP
from fastmcp.server.middleware.logging import LoggingMiddleware
from fastmcp.utilities.logging import configure_logging, get_logger

from github_ai_editor.assistant.protocol import CodeAssistant
from github_ai_editor.clients.github import RepositoryHostClient
from github_ai_editor.servers.editor import DEFAULT_DOWNLOAD_DIR, EditorServer
from github_ai_editor.session.state import Session

configure_logging()

logger: Logger = get_logger(name=__name__)

download_dir: Path = Path(os.getenv("DOWNLOAD_DIR") or DEFAULT_DOWNLOAD_DIR)

mcp: FastMCP[None] = FastMCP[None](name="GitHub AI Editor")

mcp.add_middleware(middleware=LoggingMiddleware(include_payloads=True, logger=logger))

session: Session = Session(host_client=RepositoryHostClient(logger=logger), assistant=CodeAssistant(logger=logger), logger=logger)

editor_server: EditorServer = EditorServer(session=session, download_dir=download_dir, logger=logger)
_ = editor_server.register_tools(fastmcp=mcp)


@click.command()
@click.option(
    "--mcp-transport",
    type=click.Choice(["stdio", "streamable-http"]),
    default="stdio",
    help="The transport to run the MCP server on",
)
def run_mcp(mcp_transport: Literal["stdio", "streamable-http"]):
    mcp.run(transport=mcp_transport)


if __name__ == "__main__":
    run_mcp()
