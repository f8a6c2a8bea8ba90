from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Literal, Self

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from githubkit.versions.v2022_11_28.models import GitTree, GitTreePropTreeItems

NodeKind = Literal["blob", "tree"]

GITHUB_API_URL = "https://api.github.com"


def get_dir_and_file_from_path(path: str) -> tuple[str, str]:
    path_parts = path.split("/")
    directory_path = "/".join(path_parts[:-1])
    file_path = path_parts[-1]
    return directory_path, file_path


def join_path(parent_path: str, name: str) -> str:
    return f"{parent_path}/{name}" if parent_path else name


class PathRecord(BaseModel):
    """One entry of a repository's flat file/directory listing."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="The slash-delimited path of the entry, without a leading slash.")
    kind: NodeKind = Field(description="Whether the entry is a file (blob) or a directory (tree).")
    identity: str = Field(description="The content hash of the entry.")
    fetch_locator: str = Field(description="The URL used to fetch the content of the entry.")
    size: int | None = Field(default=None, description="The size of the entry in bytes, only known for blobs.")
    mode: str | None = Field(default=None, description="The file mode of the entry.")

    @property
    def segments(self) -> list[str]:
        return self.path.split("/")

    @classmethod
    def from_git_tree_item(cls, tree_item: "GitTreePropTreeItems", owner: str, repo: str) -> Self:
        # size and url are optional on the host's tree items
        size: int | None = tree_item.size if isinstance(tree_item.size, int) else None
        url: str = (
            tree_item.url if isinstance(tree_item.url, str) else f"{GITHUB_API_URL}/repos/{owner}/{repo}/git/{tree_item.type}s/{tree_item.sha}"
        )

        return cls(
            path=tree_item.path,
            kind=tree_item.type,
            identity=tree_item.sha,
            fetch_locator=url,
            size=size,
            mode=tree_item.mode if isinstance(tree_item.mode, str) else None,
        )


class RepositoryTreeListing(BaseModel):
    """The flat listing of a repository at a branch."""

    records: list[PathRecord] = Field(default_factory=list, description="The entries of the repository.")
    truncated: bool = Field(
        default=False,
        description="Whether the host truncated the listing. If true, the records do not contain all entries.",
    )

    @classmethod
    def from_git_tree(cls, git_tree: "GitTree", owner: str, repo: str) -> Self:
        # Submodules are listed as "commit" entries and have no content to fetch
        records: list[PathRecord] = [
            PathRecord.from_git_tree_item(tree_item=tree_item, owner=owner, repo=repo)
            for tree_item in git_tree.tree
            if tree_item.type in ("blob", "tree")
        ]

        return cls(records=records, truncated=bool(git_tree.truncated))


class TreeNode(BaseModel):
    """A node of the hierarchical tree built from a flat listing. The root has an empty name and path."""

    name: str = Field(default="", description="The single path segment this node represents.")
    full_path: str = Field(default="", description="The path from the root to this node.")
    kind: NodeKind = Field(default="tree", description="Whether the node is a file (blob) or a directory (tree).")
    children: dict[str, "TreeNode"] = Field(default_factory=dict, description="The children of the node, keyed by name.")
    source_record: PathRecord | None = Field(
        default=None, description="The record this node corresponds to. Directories implied by deeper paths have none."
    )

    @property
    def is_tree(self) -> bool:
        return self.kind == "tree"

    @property
    def is_blob(self) -> bool:
        return self.kind == "blob"

    @property
    def is_root(self) -> bool:
        return self.full_path == ""

    def child(self, name: str) -> "TreeNode":
        """Return the child with the given name, synthesizing a directory node if it does not exist yet."""

        if (existing := self.children.get(name)) is not None:
            return existing

        node = TreeNode(name=name, full_path=join_path(self.full_path, name))
        self.children[name] = node
        return node

    def find(self, path: str) -> "TreeNode | None":
        """Walk the segments of a path relative to this node."""

        if not path:
            return self

        current: TreeNode = self
        for segment in path.split("/"):
            if (next_node := current.children.get(segment)) is None:
                return None
            current = next_node

        return current

    def iter_nodes(self) -> Iterator["TreeNode"]:
        """Yield this node and all of its descendants, parents before children."""

        yield self
        for child in self.children.values():
            yield from child.iter_nodes()

    def count_blobs(self) -> int:
        return sum(1 for node in self.iter_nodes() if node.is_blob)


def build_tree(records: Sequence[PathRecord]) -> TreeNode:
    """Build a nested tree from a flat listing.

    Every segment of every path gets a node, created once and keyed by name. The node at the last segment of a record
    takes that record's kind, even if a deeper path already synthesized it as a directory, so the result does not depend
    on the order of the records. Duplicate paths keep the last record."""

    root = TreeNode()

    for record in records:
        current: TreeNode = root

        for segment in record.segments:
            current = current.child(segment)

        current.kind = record.kind
        current.source_record = record

    return root
