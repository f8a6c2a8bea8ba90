import base64
import binascii
from typing import TYPE_CHECKING, Self

from pydantic import BaseModel, ConfigDict, Field

from github_ai_editor.clients.errors.github import DecodeError

if TYPE_CHECKING:
    from githubkit.versions.v2022_11_28.models import Blob as GitHubKitBlob
    from githubkit.versions.v2022_11_28.models import FullRepository as GitHubKitFullRepository

UNDECODABLE_CONTENT_MESSAGE = "Error: Could not decode file content (possibly binary or too large)."


class Repository(BaseModel):
    """A repository."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(description="The name of the repository.")
    full_name: str = Field(description="The owner/name of the repository.")
    description: str | None = Field(description="The description of the repository.")
    default_branch: str = Field(description="The default branch of the repository.")
    url: str = Field(description="The API URL of the repository.")
    private: bool = Field(description="Whether the repository is private.")

    @classmethod
    def from_full_repository(cls, full_repository: "GitHubKitFullRepository") -> Self:
        return cls(
            name=full_repository.name,
            full_name=full_repository.full_name,
            description=full_repository.description,
            default_branch=full_repository.default_branch,
            url=full_repository.url,
            private=full_repository.private,
        )


class RepositoryBlob(BaseModel):
    """A blob as returned by the host: content wrapped in an encoding envelope."""

    model_config = ConfigDict(frozen=True)

    identity: str = Field(description="The content hash of the blob.")
    url: str = Field(description="The URL the blob was fetched from.")
    encoding: str = Field(description="The encoding of the content, usually base64.")
    content: str = Field(description="The encoded content of the blob.")
    size: int | None = Field(default=None, description="The size of the decoded blob in bytes.")

    @classmethod
    def from_blob(cls, blob: "GitHubKitBlob") -> Self:
        return cls(identity=blob.sha, url=blob.url, encoding=blob.encoding, content=blob.content, size=blob.size)

    def to_bytes(self) -> bytes:
        return decode_content(content=self.content, encoding=self.encoding, resource=self.url, size=self.size)


def decode_content(content: str, encoding: str, resource: str, size: int | None = None) -> bytes:
    """Unwrap the host's content envelope. The host inserts newlines into base64 payloads."""

    if encoding == "utf-8":
        return content.encode("utf-8")

    if encoding != "base64":
        raise DecodeError(resource=resource, reason=f"unsupported encoding {encoding}")

    if not content and size:
        raise DecodeError(resource=resource, reason="content too large to be inlined")

    try:
        return base64.b64decode(content.replace("\n", ""), validate=True)
    except binascii.Error as e:
        raise DecodeError(resource=resource, reason=str(e)) from e


def decode_text(raw: bytes, resource: str) -> str:
    """Decode raw file bytes as UTF-8 text, refusing binary content."""

    if b"\x00" in raw:
        raise DecodeError(resource=resource, reason="binary content")

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(resource=resource, reason="binary content") from e
