import asyncio
import base64
import hashlib
from collections.abc import Sequence
from types import SimpleNamespace
from typing import Any, overload

import httpx
import pytest
from fastmcp import FastMCP
from fastmcp.client.client import CallToolResult
from fastmcp.server.middleware.logging import LoggingMiddleware
from githubkit.auth.token import TokenAuthStrategy
from githubkit.exception import RequestFailed
from githubkit.response import Response
from pydantic import BaseModel

from github_ai_editor.assistant.protocol import CodeAssistant
from github_ai_editor.clients.generative import GenerateOptions
from github_ai_editor.clients.github import RepositoryHostClient
from github_ai_editor.models.repository.tree import PathRecord
from github_ai_editor.session.state import Session

API_URL = "https://api.github.com"


def blob_sha(content: bytes) -> str:
    return hashlib.sha1(b"blob %d\0" % len(content) + content).hexdigest()  # noqa: S324


def encode_blob_content(content: bytes) -> str:
    """Base64 with a newline every 60 characters, the way the host sends it."""

    encoded: str = base64.b64encode(content).decode("ascii")
    return "\n".join(encoded[index : index + 60] for index in range(0, len(encoded), 60)) + "\n"


def make_record(path: str, kind: str = "blob", identity: str | None = None) -> PathRecord:
    identity = identity or hashlib.sha1(path.encode()).hexdigest()  # noqa: S324
    return PathRecord(
        path=path,
        kind=kind,  # pyright: ignore[reportArgumentType]
        identity=identity,
        fetch_locator=f"{API_URL}/repos/octocat/Hello-World/git/{kind}s/{identity}",
        size=10 if kind == "blob" else None,
        mode="100644" if kind == "blob" else "040000",
    )


def request_failed(url: str, status_code: int) -> RequestFailed:
    return RequestFailed(Response(httpx.Response(status_code=status_code, request=httpx.Request("GET", url)), Any))


def not_found(url: str) -> RequestFailed:
    return request_failed(url=url, status_code=404)


class FakeGitHubKit:
    """An in-memory stand-in for the githubkit client, serving the repositories added to it.

    Requests can be held open with `hold` to control the order in which they complete."""

    def __init__(self):
        self.repositories: dict[str, SimpleNamespace] = {}
        self.trees: dict[str, SimpleNamespace] = {}
        self.blobs: dict[str, SimpleNamespace] = {}
        self.failures: dict[str, BaseException] = {}
        self.gates: dict[str, asyncio.Event] = {}

        self.requests: list[str] = []
        self.credentials: list[str] = []

        self.rest = SimpleNamespace(
            repos=SimpleNamespace(async_get=self.async_get_repository),
            git=SimpleNamespace(async_get_tree=self.async_get_tree),
        )

    def add_repository(
        self,
        owner: str,
        repo: str,
        files: dict[str, str | bytes],
        default_branch: str = "main",
        truncated: bool = False,
        too_large: Sequence[str] = (),
    ) -> None:
        full_name: str = f"{owner}/{repo}"

        self.repositories[full_name] = SimpleNamespace(
            name=repo,
            full_name=full_name,
            description=f"The {repo} repository",
            default_branch=default_branch,
            url=f"{API_URL}/repos/{full_name}",
            private=False,
        )

        tree_items: list[SimpleNamespace] = []
        directories: set[str] = set()

        for path, content in files.items():
            raw: bytes = content.encode("utf-8") if isinstance(content, str) else content
            sha: str = blob_sha(raw)
            url: str = f"{API_URL}/repos/{full_name}/git/blobs/{sha}"

            tree_items.append(SimpleNamespace(path=path, mode="100644", type="blob", sha=sha, size=len(raw), url=url))

            self.blobs[url] = SimpleNamespace(
                sha=sha,
                url=url,
                encoding="base64",
                content="" if path in too_large else encode_blob_content(raw),
                size=len(raw),
            )

            segments: list[str] = path.split("/")
            directories.update("/".join(segments[:index]) for index in range(1, len(segments)))

        for directory in sorted(directories):
            sha = hashlib.sha1(directory.encode()).hexdigest()  # noqa: S324
            tree_items.append(
                SimpleNamespace(path=directory, mode="040000", type="tree", sha=sha, size=None, url=f"{API_URL}/repos/{full_name}/git/trees/{sha}")
            )

        self.trees[f"{full_name}@{default_branch}"] = SimpleNamespace(
            sha=hashlib.sha1(full_name.encode()).hexdigest(),  # noqa: S324
            url=f"{API_URL}/repos/{full_name}/git/trees/{default_branch}",
            truncated=truncated,
            tree=sorted(tree_items, key=lambda item: item.path),
        )

    def blob_url(self, full_name: str, path: str) -> str:
        tree: SimpleNamespace = next(tree for key, tree in self.trees.items() if key.startswith(f"{full_name}@"))
        return next(item.url for item in tree.tree if item.path == path)

    def hold(self, key: str) -> asyncio.Event:
        """Hold requests for `key` (a repository full name or a blob url) open until the returned event is set."""

        self.gates[key] = asyncio.Event()
        return self.gates[key]

    async def _serve(self, key: str, url: str) -> None:
        self.requests.append(url)

        if gate := self.gates.get(key):
            _ = await gate.wait()

        if failure := self.failures.get(key):
            raise failure

    def with_auth(self, auth: TokenAuthStrategy) -> "FakeGitHubKit":
        self.credentials.append(auth.token)
        return self

    async def async_get_repository(self, owner: str, repo: str) -> SimpleNamespace:
        full_name: str = f"{owner}/{repo}"
        url: str = f"{API_URL}/repos/{full_name}"

        await self._serve(key=full_name, url=url)

        if full_name not in self.repositories:
            raise not_found(url)

        return SimpleNamespace(parsed_data=self.repositories[full_name])

    async def async_get_tree(self, owner: str, repo: str, tree_sha: str, recursive: str | None = None) -> SimpleNamespace:
        full_name: str = f"{owner}/{repo}"
        url: str = f"{API_URL}/repos/{full_name}/git/trees/{tree_sha}?recursive={recursive}"

        self.requests.append(url)

        if (tree := self.trees.get(f"{full_name}@{tree_sha}")) is None:
            raise not_found(url)

        return SimpleNamespace(parsed_data=tree)

    async def arequest(self, method: str, url: str, response_model: Any = None) -> SimpleNamespace:
        await self._serve(key=url, url=url)

        if url not in self.blobs:
            raise not_found(url)

        return SimpleNamespace(parsed_data=self.blobs[url])


class FakeGenerativeClient:
    """Returns queued responses and records every prompt it is given. Exceptions in the queue are raised."""

    default_model: str = "fake-model"

    def __init__(self, responses: Sequence[str | BaseException] = ()):
        self.responses: list[str | BaseException] = list(responses)
        self.prompts: list[str] = []
        self.options: list[GenerateOptions | None] = []
        self.gate: asyncio.Event | None = None

    def hold(self) -> asyncio.Event:
        self.gate = asyncio.Event()
        return self.gate

    async def generate(self, prompt: str, options: GenerateOptions | None = None) -> str:
        self.prompts.append(prompt)
        self.options.append(options)

        if self.gate is not None:
            _ = await self.gate.wait()

        response: str | BaseException = self.responses.pop(0) if self.responses else ""

        if isinstance(response, BaseException):
            raise response

        return response


HELLO_WORLD_README = "Hello World!\n"


@pytest.fixture
def fake_githubkit() -> FakeGitHubKit:
    fake_githubkit = FakeGitHubKit()
    fake_githubkit.add_repository(owner="octocat", repo="Hello-World", default_branch="master", files={"README": HELLO_WORLD_README})
    fake_githubkit.add_repository(
        owner="octocat",
        repo="Spoon-Knife",
        files={
            "index.html": "<html></html>\n",
            "README.md": "# Spoon-Knife\n",
            "src/index.ts": "export const answer = 42;\n",
            "src/index/main.ts": "console.log('main');\n",
            "src/utils/strings.ts": "export const trim = (value: string) => value.trim();\n",
            "assets/logo.png": b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR",
            "docs/big.txt": "a" * 100,
        },
        too_large=["docs/big.txt"],
    )
    return fake_githubkit


@pytest.fixture
def host_client(fake_githubkit: FakeGitHubKit) -> RepositoryHostClient:
    return RepositoryHostClient(githubkit_client=fake_githubkit)  # pyright: ignore[reportArgumentType]


@pytest.fixture
def generative_client() -> FakeGenerativeClient:
    return FakeGenerativeClient()


@pytest.fixture
def code_assistant(generative_client: FakeGenerativeClient) -> CodeAssistant:
    return CodeAssistant(generative_client=generative_client)


@pytest.fixture
def session(host_client: RepositoryHostClient, code_assistant: CodeAssistant) -> Session:
    return Session(host_client=host_client, assistant=code_assistant)


@pytest.fixture
def logging_middleware() -> LoggingMiddleware:
    return LoggingMiddleware(include_payloads=True)


@pytest.fixture
def fastmcp(logging_middleware: LoggingMiddleware) -> FastMCP[Any]:
    return FastMCP(name="GitHub AI Editor", middleware=[logging_middleware])


def handle_exclude_keys(dictionary: dict[str, Any], exclude_keys: list[str] | None = None) -> dict[str, Any]:
    if exclude_keys is None:
        return dictionary
    return {key: value for key, value in dictionary.items() if key not in exclude_keys}


@overload
def dump_for_snapshot(
    basemodel: None,
    /,
    exclude_keys: list[str] | None = None,
    exclude_none: bool = True,
    **dump_kwargs: Any,
) -> None: ...


@overload
def dump_for_snapshot(
    basemodel: BaseModel,
    /,
    exclude_keys: list[str] | None = None,
    exclude_none: bool = True,
    **dump_kwargs: Any,
) -> dict[str, Any]: ...


def dump_for_snapshot(
    basemodel: None | BaseModel,
    /,
    exclude_keys: list[str] | None = None,
    exclude_none: bool = True,
    **dump_kwargs: Any,
) -> dict[str, Any] | None:
    if basemodel is None:
        return None

    return handle_exclude_keys(basemodel.model_dump(exclude_none=exclude_none, **dump_kwargs), exclude_keys)


def dump_list_for_snapshot(
    basemodel: None | Sequence[BaseModel],
    /,
    exclude_keys: list[str] | None = None,
    exclude_none: bool = True,
    **dump_kwargs: Any,
) -> list[dict[str, Any]] | None:
    if basemodel is None:
        return []

    return [dump_for_snapshot(item, exclude_keys, exclude_none, **dump_kwargs) for item in basemodel]


def dump_call_tool_result_for_snapshot(
    call_tool_result: CallToolResult,
    /,
) -> dict[str, Any]:
    return {
        "content": [item.model_dump() for item in call_tool_result.content],
        "structured_content": call_tool_result.structured_content,
    }
