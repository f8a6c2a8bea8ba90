from collections.abc import Callable
from enum import StrEnum
from logging import Logger
from pathlib import Path
from typing import Any

from fastmcp.utilities.logging import get_logger
from pydantic import BaseModel, Field

from github_ai_editor.assistant.protocol import CodeAssistant
from github_ai_editor.clients.errors.generative import AiError
from github_ai_editor.clients.errors.github import ClientError, DecodeError
from github_ai_editor.clients.github import RepositoryHostClient
from github_ai_editor.clients.models.github import UNDECODABLE_CONTENT_MESSAGE, Repository
from github_ai_editor.models.repository.tree import PathRecord, RepositoryTreeListing, TreeNode, build_tree, get_dir_and_file_from_path
from github_ai_editor.session.errors import InvalidTransitionError, SessionBusyError, ValidationError
from github_ai_editor.session.tree_view import TreeViewController

DEFAULT_DOWNLOAD_NAME = "file"

MODIFY_SUCCESS_MESSAGE = "Code updated based on your instructions. Review the changes in the editor."
MODIFY_FAILURE_MESSAGE = "Error processing AI request. Please try again."
EXPLAIN_FAILURE_MESSAGE = "Could not generate explanation."

SessionListener = Callable[["Session"], Any]


class SessionState(StrEnum):
    IDLE = "idle"
    REPO_LOADING = "repo_loading"
    REPO_LOADED = "repo_loaded"
    FILE_LOADING = "file_loading"
    FILE_OPEN = "file_open"


class OpenFile(BaseModel):
    """The single file loaded into the editor."""

    path: str = Field(description="The path of the file in the repository.")
    content: str = Field(description="The current, possibly edited, content of the file.")
    identity: str = Field(description="The content hash of the file as listed by the host.")
    dirty: bool = Field(default=False, description="Whether the content was changed since it was fetched.")

    @property
    def name(self) -> str:
        _, file_name = get_dir_and_file_from_path(self.path)
        return file_name

    @property
    def download_name(self) -> str:
        return self.name or DEFAULT_DOWNLOAD_NAME


class SessionSnapshot(BaseModel):
    """A read-only summary of the session."""

    state: SessionState = Field(description="The state of the session.")
    repository: str | None = Field(default=None, description="The owner/repo of the loaded repository.")
    default_branch: str | None = Field(default=None, description="The branch the tree was listed from.")
    file_count: int = Field(default=0, description="The number of files in the loaded repository.")
    tree_truncated: bool = Field(default=False, description="Whether the host truncated the repository listing.")
    open_file: OpenFile | None = Field(default=None, description="The file loaded into the editor.")
    ai_panel_open: bool = Field(default=False, description="Whether the AI assistant panel is visible.")
    ai_in_flight: bool = Field(default=False, description="Whether an AI request is in progress.")
    ai_response: str | None = Field(default=None, description="The last AI response or status message.")
    error: str | None = Field(default=None, description="The last error shown to the user.")


def parse_repository_name(name: str) -> tuple[str, str]:
    """Split `owner/repo` into its parts. Surrounding whitespace is ignored.

    Raises:
        ValidationError: If the name does not contain exactly one slash with text on both sides.
    """

    parts: list[str] = name.strip().split("/")

    if len(parts) != 2 or not all(parts):  # noqa: PLR2004
        raise ValidationError(action="Load repository", message="Invalid repository format. Use owner/repo", value=name)

    owner, repo = parts
    return owner, repo


class Session:
    """All state of one editing session, and the only place it changes.

    Repository loads, file loads and AI requests each allow one call in flight; a second call of the same kind is
    refused. Results are checked against what is current when they arrive, so a late response for a file or a
    repository that is no longer selected is dropped instead of overwriting newer state."""

    host_client: RepositoryHostClient
    assistant: CodeAssistant
    tree_view: TreeViewController
    logger: Logger

    def __init__(
        self,
        host_client: RepositoryHostClient | None = None,
        assistant: CodeAssistant | None = None,
        credential: str | None = None,
        logger: Logger | None = None,
    ):
        self.host_client = host_client or RepositoryHostClient()
        self.assistant = assistant or CodeAssistant()
        self.logger = logger or get_logger(name=__name__)
        self.tree_view = TreeViewController(on_select=self.select_blob, logger=self.logger)

        self.credential: str | None = credential or None

        self.repository_name: str | None = None
        self.repository: Repository | None = None
        self.records: list[PathRecord] = []
        self.tree: TreeNode = TreeNode()
        self.tree_truncated: bool = False

        self.open_file: OpenFile | None = None
        self.ai_panel_open: bool = False
        self.ai_response: str | None = None
        self.error: str | None = None

        self.repository_loading: bool = False
        self.ai_in_flight: bool = False
        self._file_target: PathRecord | None = None
        self._open_file_generation: int = 0

        self._listeners: list[SessionListener] = []

    # Observation

    @property
    def state(self) -> SessionState:
        if self.repository_loading:
            return SessionState.REPO_LOADING
        if self._file_target is not None:
            return SessionState.FILE_LOADING
        if self.open_file is not None:
            return SessionState.FILE_OPEN
        if self.repository_name is not None:
            return SessionState.REPO_LOADED
        return SessionState.IDLE

    @property
    def file_loading(self) -> bool:
        return self._file_target is not None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call the listener after every change to the session. Returns a function that unsubscribes it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self.state,
            repository=self.repository_name,
            default_branch=self.repository.default_branch if self.repository else None,
            file_count=self.tree.count_blobs(),
            tree_truncated=self.tree_truncated,
            open_file=self.open_file.model_copy() if self.open_file else None,
            ai_panel_open=self.ai_panel_open,
            ai_in_flight=self.ai_in_flight,
            ai_response=self.ai_response,
            error=self.error,
        )

    # Settings

    def set_credential(self, credential: str | None) -> None:
        """Set the token used for subsequent repository host requests. A blank token means anonymous access."""

        self.credential = credential.strip() if credential and credential.strip() else None
        self._notify()

    def toggle_ai_panel(self) -> bool:
        self.ai_panel_open = not self.ai_panel_open
        self._notify()
        return self.ai_panel_open

    # Repository

    async def load_repository(self, name: str) -> None:
        """Load the tree of `owner/repo` from its default branch.

        A failed load keeps whatever repository was loaded before and only records the error.

        Raises:
            ValidationError: If the name is not `owner/repo`. Nothing else changes and no request is made.
            SessionBusyError: If a repository load is already in progress.
        """

        owner, repo = parse_repository_name(name)

        if self.repository_loading:
            self.logger.warning(f"Ignoring request to load {owner}/{repo}, a repository load is already in progress")
            raise SessionBusyError(action="Load repository", in_flight="repository load")

        self.repository_loading = True
        self.error = None

        self.logger.info(f"Loading repository {owner}/{repo}")

        try:
            self._notify()

            repository: Repository = await self.host_client.get_repository(owner=owner, repo=repo, credential=self.credential)
            listing: RepositoryTreeListing = await self.host_client.get_tree(
                owner=owner, repo=repo, branch=repository.default_branch, credential=self.credential
            )
        except ClientError as e:
            self.repository_loading = False
            self.error = f"Failed to load repository: {e}"
            self.logger.error(f"Failed to load repository {owner}/{repo}: {e}")  # noqa: TRY400
            self._notify()
            return
        except BaseException:
            self.repository_loading = False
            raise

        full_name: str = f"{owner}/{repo}"
        same_repository: bool = self.repository_name == full_name

        self.repository_loading = False
        self.repository_name = full_name
        self.repository = repository
        self.records = listing.records
        self.tree = build_tree(listing.records)
        self.tree_truncated = listing.truncated
        self.tree_view.set_root(self.tree, keep_state=same_repository)
        self.tree_view.selected_path = None

        self._file_target = None
        self._set_open_file(None)
        self.ai_response = None
        self.error = None

        self.logger.info(f"Loaded repository {full_name} with {len(listing.records)} entries from {repository.default_branch}")

        self._notify()

    def _require_repository(self, action: str) -> None:
        if self.repository_name is None:
            raise InvalidTransitionError(action=action, state=self.state)

    # Tree

    def toggle(self, path: str) -> bool:
        self._require_repository(action="Toggle folder")

        expanded: bool = self.tree_view.toggle(path)
        self._notify()
        return expanded

    async def select(self, node: TreeNode) -> None:
        """Handle a click on a tree node."""

        self._require_repository(action="Select node")

        await self.tree_view.select(node)

        if node.is_tree:
            self._notify()

    async def open_path(self, path: str) -> None:
        """Open a file by its path in the loaded tree.

        Raises:
            ValidationError: If the path is not a file of the loaded repository.
        """

        self._require_repository(action="Open file")

        node: TreeNode | None = self.tree.find(path) if path else None

        if node is None or not node.is_blob:
            raise ValidationError(action="Open file", message="Not a file in the loaded repository.", value=path)

        self.tree_view.expand_to(path)

        await self.select_blob(node)

    # Files

    async def select_blob(self, node: TreeNode) -> None:
        """Fetch a file and make it the open file.

        A file whose content cannot be decoded is opened with a placeholder message as its content. Any other failure
        leaves the open file as it was and records the error.

        Raises:
            ValidationError: If the node is not a file.
            SessionBusyError: If a different file is already being loaded.
        """

        self._require_repository(action="Open file")

        if not node.is_blob or node.source_record is None:
            raise ValidationError(action="Open file", message="Only files can be opened.", value=node.full_path)

        record: PathRecord = node.source_record

        if self._file_target is not None:
            if self._file_target == record:
                self.logger.info(f"Already loading {record.path}")
                return

            self.logger.warning(f"Ignoring request to open {record.path}, {self._file_target.path} is still loading")
            raise SessionBusyError(action="Open file", in_flight=self._file_target.path)

        self._file_target = record
        self.error = None

        self.logger.info(f"Opening {record.path}")

        try:
            self._notify()

            content: str = await self._fetch_file_content(record)
        except ClientError as e:
            if not self._release_file_target(record):
                return

            self.error = f"Failed to open file: {e}"
            self.logger.error(f"Failed to open {record.path}: {e}")  # noqa: TRY400
            self._notify()
            return
        except BaseException:
            if self._file_target == record:
                self._file_target = None
            raise

        if not self._release_file_target(record):
            return

        self._set_open_file(OpenFile(path=record.path, content=content, identity=record.identity, dirty=False))
        self.tree_view.selected_path = record.path
        self.ai_response = None

        self._notify()

    async def _fetch_file_content(self, record: PathRecord) -> str:
        try:
            return await self.host_client.get_file_text(fetch_locator=record.fetch_locator, credential=self.credential)
        except DecodeError as e:
            self.logger.warning(f"Could not decode {record.path}: {e}")
            return UNDECODABLE_CONTENT_MESSAGE

    def _release_file_target(self, record: PathRecord) -> bool:
        """Finish a file load. Returns False if the load was superseded and its result must be dropped."""

        if self._file_target != record:
            self.logger.warning(f"Discarding late result for {record.path}, it is no longer the selected file")
            return False

        self._file_target = None
        return True

    def _set_open_file(self, open_file: OpenFile | None) -> None:
        self.open_file = open_file
        self._open_file_generation += 1

    def _require_open_file(self, action: str) -> OpenFile:
        if self.open_file is None or self._file_target is not None:
            raise InvalidTransitionError(action=action, state=self.state)

        return self.open_file

    def close_file(self) -> None:
        self._require_open_file(action="Close file")

        self._set_open_file(None)
        self.tree_view.selected_path = None
        self.ai_response = None
        self._notify()

    def edit(self, text: str) -> None:
        """Replace the content of the open file with the user's edit."""

        open_file: OpenFile = self._require_open_file(action="Edit file")

        open_file.content = text
        open_file.dirty = True
        self._notify()

    def download(self, directory: Path) -> Path:
        """Write the content of the open file into a directory, named after the file. Nothing is sent anywhere."""

        open_file: OpenFile = self._require_open_file(action="Download file")

        directory.mkdir(parents=True, exist_ok=True)

        target: Path = directory / open_file.download_name
        _ = target.write_text(open_file.content, encoding="utf-8")

        self.logger.info(f"Downloaded {open_file.path} to {target}")

        return target

    # AI

    def _begin_ai_request(self, action: str) -> OpenFile:
        open_file: OpenFile = self._require_open_file(action=action)

        if self.ai_in_flight:
            self.logger.warning(f"Ignoring {action}, an AI request is already in progress")
            raise SessionBusyError(action=action, in_flight="AI request")

        return open_file

    async def explain(self) -> str:
        """Ask the assistant to explain the open file. Failures become a message, they are never raised.

        Raises:
            ValidationError: If the open file is empty.
            SessionBusyError: If an AI request is already in progress.
            ConfigError: If the assistant has no credential.
        """

        open_file: OpenFile = self._begin_ai_request(action="Explain file")

        if not open_file.content:
            raise ValidationError(action="Explain file", message="There is no code to explain.", value=open_file.path)

        generation: int = self._open_file_generation

        self.ai_in_flight = True
        self.ai_panel_open = True

        try:
            self._notify()

            response: str = await self.assistant.explain(code=open_file.content, path=open_file.path)
        except AiError as e:
            self.logger.error(f"Failed to explain {open_file.path}: {e}")  # noqa: TRY400
            response = EXPLAIN_FAILURE_MESSAGE
        except BaseException:
            self.ai_in_flight = False
            self._notify()
            raise

        self.ai_in_flight = False

        if generation != self._open_file_generation:
            self.logger.warning(f"Discarding explanation of {open_file.path}, a different file is open now")
            self._notify()
            return response

        self.ai_response = response
        self._notify()
        return response

    async def modify(self, instruction: str) -> str:
        """Ask the assistant to rewrite the open file following an instruction.

        On success the returned text replaces the content verbatim and the file is marked dirty. On failure the content
        is left exactly as it was.

        Raises:
            ValidationError: If the instruction is blank.
            SessionBusyError: If an AI request is already in progress.
            ConfigError: If the assistant has no credential.
        """

        open_file: OpenFile = self._begin_ai_request(action="Modify file")

        if not instruction.strip():
            raise ValidationError(action="Modify file", message="An instruction is required.")

        generation: int = self._open_file_generation

        self.ai_in_flight = True

        try:
            self._notify()

            new_code: str = await self.assistant.modify(code=open_file.content, instruction=instruction, path=open_file.path)
        except AiError as e:
            self.ai_in_flight = False
            self.logger.error(f"Failed to modify {open_file.path}: {e}")  # noqa: TRY400
            if generation == self._open_file_generation:
                self.ai_response = MODIFY_FAILURE_MESSAGE
            self._notify()
            return MODIFY_FAILURE_MESSAGE
        except BaseException:
            self.ai_in_flight = False
            self._notify()
            raise

        self.ai_in_flight = False

        if generation != self._open_file_generation:
            self.logger.warning(f"Discarding modification of {open_file.path}, a different file is open now")
            self._notify()
            return MODIFY_SUCCESS_MESSAGE

        open_file.content = new_code
        open_file.dirty = True
        self.ai_response = MODIFY_SUCCESS_MESSAGE

        self.logger.info(f"Applied AI modification to {open_file.path}")

        self._notify()
        return MODIFY_SUCCESS_MESSAGE
