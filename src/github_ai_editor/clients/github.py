import os
from collections.abc import Awaitable, Callable, Sequence
from logging import Logger, getLogger
from typing import TYPE_CHECKING, Any

from githubkit import GitHub as GitHubKit
from githubkit import UnauthAuthStrategy
from githubkit.auth.token import TokenAuthStrategy
from githubkit.exception import GitHubException as GitHubKitGitHubException
from githubkit.exception import RequestFailed as GitHubKitRequestFailed
from githubkit.response import Response as GitHubKitResponse
from githubkit.versions.v2022_11_28.models import Blob as GitHubKitBlob
from pydantic import BaseModel

from github_ai_editor.clients.errors.github import HttpError, ResourceNotFoundError
from github_ai_editor.clients.models.github import Repository, RepositoryBlob, decode_text
from github_ai_editor.models.repository.tree import RepositoryTreeListing

if TYPE_CHECKING:
    from githubkit.versions.v2022_11_28.models import FullRepository as GitHubKitFullRepository
    from githubkit.versions.v2022_11_28.models import GitTree as GitHubKitGitTree

NOT_FOUND_ERROR = 404

GITHUBKIT_RESPONSE_TYPE = BaseModel | Sequence[BaseModel]


def extract_response[T: GITHUBKIT_RESPONSE_TYPE](response: GitHubKitResponse[T], /) -> T:
    """Extract the response from a response."""

    return response.parsed_data


def get_github_token() -> str | None:
    for env_var in ("GITHUB_TOKEN", "GITHUB_PERSONAL_ACCESS_TOKEN"):
        if token := os.environ.get(env_var):
            return token
    return None


def get_githubkit_client(token: str | None = None) -> GitHubKit[Any]:
    """Build a githubkit client. Requests are never retried, a failure is reported to the caller as-is.

    Without a token the client makes anonymous requests, which only reach public repositories."""

    token = token or get_github_token()

    if token:
        return GitHubKit[TokenAuthStrategy](auth=TokenAuthStrategy(token=token), auto_retry=False)

    return GitHubKit[UnauthAuthStrategy](auth=UnauthAuthStrategy(), auto_retry=False)


class RepositoryHostClient:
    githubkit_client: GitHubKit[Any]
    logger: Logger

    log_requests: bool
    log_responses: bool
    log_on_error: bool

    def __init__(
        self,
        githubkit_client: GitHubKit[Any] | None = None,
        logger: Logger | None = None,
        log_requests: bool = True,
        log_responses: bool = False,
        log_on_error: bool = True,
    ):
        self.githubkit_client = githubkit_client or get_githubkit_client()
        self.logger = logger or getLogger(__name__)
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.log_on_error = log_on_error

    def _get_loggers(
        self, log_request: bool | None = None, log_response: bool | None = None, log_on_error: bool | None = None
    ) -> tuple[Callable[[str], Any], Callable[[str], Any], Callable[[BaseException | str], Any]]:
        request_logger = self.logger.info if log_request or self.log_requests else self.logger.debug
        response_logger = self.logger.info if log_response or self.log_responses else self.logger.debug
        error_logger = self.logger.exception if log_on_error or self.log_on_error else self.logger.debug
        return request_logger, response_logger, error_logger

    def _with_credential(self, credential: str | None) -> GitHubKit[Any]:
        """Use the credential supplied for this call instead of the client's own, when there is one."""

        if not credential:
            return self.githubkit_client

        return self.githubkit_client.with_auth(TokenAuthStrategy(token=credential))

    async def _perform_rest_request[T: GITHUBKIT_RESPONSE_TYPE](
        self,
        action: str,
        log_request: bool | None = None,
        log_response: bool | None = None,
        log_on_error: bool | None = None,
        *,
        method: Callable[..., Awaitable[GitHubKitResponse[T]]],
        **request_args: Any,  # pyright: ignore[reportAny]
    ) -> T:
        """Perform a request and extract the response.

        Args:
            action: The action being performed.
            log_request: Whether to log the request.
            log_response: Whether to log the response.
            log_on_error: Whether to log on error.

        Raises:
            ResourceNotFoundError: If the resource is not found.
            HttpError: If the host answers with any other error status, or cannot be reached.
        """

        request_logger, response_logger, error_logger = self._get_loggers(
            log_request=log_request, log_response=log_response, log_on_error=log_on_error
        )

        request_logger(f"Performing {action} using {method.__name__} with kwargs {request_args}")

        try:
            response: GitHubKitResponse[T] = await method(**request_args)
        except GitHubKitRequestFailed as e:
            if e.response.status_code == NOT_FOUND_ERROR:
                raise ResourceNotFoundError(action=action, resource=e.request.url.path) from e

            error_logger(f"RequestFailed error performing {action} using {method.__name__} with kwargs {request_args}: {e}")

            raise HttpError(action=action, status=e.response.status_code, message=str(e)) from e
        except GitHubKitGitHubException as e:
            error_logger(f"Error performing {action} using {method.__name__} with kwargs {request_args}: {e}")

            raise HttpError(action=action, status=None, message=str(e)) from e

        extracted_response = extract_response(response)

        response_logger(f"Extracted response for {action} using {method.__name__} with kwargs {request_args}: {extracted_response}")

        return extracted_response

    async def get_repository(self, owner: str, repo: str, credential: str | None = None) -> Repository:
        """Get the details of a repository."""

        githubkit_client: GitHubKit[Any] = self._with_credential(credential)

        githubkit_repository: GitHubKitFullRepository = await self._perform_rest_request(
            action="Get repository",
            method=githubkit_client.rest.repos.async_get,
            owner=owner,
            repo=repo,
        )

        return Repository.from_full_repository(full_repository=githubkit_repository)

    async def get_default_branch(self, owner: str, repo: str, credential: str | None = None) -> str:
        """Get the default branch of a repository."""

        repository: Repository = await self.get_repository(owner=owner, repo=repo, credential=credential)

        return repository.default_branch

    async def get_tree(self, owner: str, repo: str, branch: str, credential: str | None = None) -> RepositoryTreeListing:
        """Get the flat, recursive listing of every file and directory of a repository at a branch.

        Args:
            owner: The owner of the repository.
            repo: The name of the repository.
            branch: The branch (or any tree-ish ref) to list.
            credential: A token to use for this request instead of the client's own.
        """

        githubkit_client: GitHubKit[Any] = self._with_credential(credential)

        tree: GitHubKitGitTree = await self._perform_rest_request(
            action="Get repository tree",
            method=githubkit_client.rest.git.async_get_tree,
            owner=owner,
            repo=repo,
            tree_sha=branch,
            recursive="1",
        )

        listing: RepositoryTreeListing = RepositoryTreeListing.from_git_tree(git_tree=tree, owner=owner, repo=repo)

        if listing.truncated:
            self.logger.warning(f"The tree of {owner}/{repo} at {branch} was truncated by the host, some files will be missing.")

        return listing

    async def get_blob(self, fetch_locator: str, credential: str | None = None) -> RepositoryBlob:
        """Get a blob, still wrapped in the host's encoding envelope, from the URL listed for it in the tree."""

        githubkit_client: GitHubKit[Any] = self._with_credential(credential)

        async def get_blob_by_url(url: str) -> GitHubKitResponse[GitHubKitBlob]:
            return await githubkit_client.arequest("GET", url, response_model=GitHubKitBlob)

        blob: GitHubKitBlob = await self._perform_rest_request(action="Get file", method=get_blob_by_url, url=fetch_locator)

        return RepositoryBlob.from_blob(blob=blob)

    async def get_file_bytes(self, fetch_locator: str, credential: str | None = None) -> bytes:
        """Get the raw bytes of a file.

        Raises:
            DecodeError: If the host's envelope cannot be decoded.
        """

        blob: RepositoryBlob = await self.get_blob(fetch_locator=fetch_locator, credential=credential)

        return blob.to_bytes()

    async def get_file_text(self, fetch_locator: str, credential: str | None = None) -> str:
        """Get the content of a file as text.

        Raises:
            DecodeError: If the envelope cannot be decoded, or the file is binary.
        """

        raw: bytes = await self.get_file_bytes(fetch_locator=fetch_locator, credential=credential)

        return decode_text(raw=raw, resource=fetch_locator)
