import unicodedata
from collections.abc import Awaitable, Callable
from logging import Logger
from typing import Any

from fastmcp.utilities.logging import get_logger
from pydantic import BaseModel, Field

from github_ai_editor.models.repository.tree import TreeNode, get_dir_and_file_from_path

INDENT = "  "

# Punctuation and symbols in the order of the Unicode default collation table. Unlisted ones follow in code point order.
PUNCTUATION_ORDER = "_-,;:!?.'\"()[]{}@*/\\&#%`^+<=>|~$"

WHITESPACE_GROUP, PUNCTUATION_GROUP, DIGIT_GROUP, LETTER_GROUP = range(4)


def _primary_weight(character: str) -> tuple[int, int]:
    category: str = unicodedata.category(character)

    if category.startswith("Z") or character.isspace():
        return WHITESPACE_GROUP, ord(character)
    if category.startswith(("P", "S")):
        rank: int = PUNCTUATION_ORDER.find(character)
        return PUNCTUATION_GROUP, rank if rank >= 0 else len(PUNCTUATION_ORDER) + ord(character)
    if category.startswith("N"):
        return DIGIT_GROUP, ord(character)
    return LETTER_GROUP, ord(character)


def locale_sort_key(name: str) -> tuple[tuple[tuple[int, int], ...], str, str]:
    """Order names the way a locale-aware collation does for common file names.

    Whitespace sorts before punctuation, punctuation before digits and digits before letters, with `_` ahead of `-`
    and `.`. Accents and case are ignored first, then accents break ties, then lower case sorts before upper case."""

    decomposed: str = unicodedata.normalize("NFKD", name)
    base: str = "".join(character for character in decomposed if not unicodedata.combining(character))
    return tuple(_primary_weight(character) for character in base.casefold()), decomposed.casefold(), name.swapcase()


def sort_children(node: TreeNode) -> list[TreeNode]:
    """Directories before files, each group ordered by name."""

    return sorted(node.children.values(), key=lambda child: (not child.is_tree, locale_sort_key(child.name)))


class TreeRow(BaseModel):
    """One visible line of the tree view."""

    node: TreeNode = Field(description="The node shown on this row.")
    depth: int = Field(description="The nesting depth of the node, 0 for children of the root.")
    expanded: bool = Field(default=False, description="Whether the node is an expanded directory.")
    selected: bool = Field(default=False, description="Whether the node is the open file.")

    def render_text(self) -> str:
        marker: str
        if self.node.is_tree:
            marker = "[-]" if self.expanded else "[+]"
        else:
            marker = "*  " if self.selected else "   "

        suffix: str = "/" if self.node.is_tree else ""

        return f"{INDENT * self.depth}{marker} {self.node.name}{suffix}"


class TreeViewController:
    """Expand/collapse state and click dispatch for a tree.

    Expand state is keyed by full path rather than held on the nodes, so it survives rebuilding the tree. Children are
    always read from the current tree, nothing else is remembered about a collapsed directory."""

    root: TreeNode
    expanded: dict[str, bool]
    selected_path: str | None
    on_select: Callable[[TreeNode], Awaitable[Any]] | None
    logger: Logger

    def __init__(
        self,
        root: TreeNode | None = None,
        on_select: Callable[[TreeNode], Awaitable[Any]] | None = None,
        logger: Logger | None = None,
    ):
        self.root = root or TreeNode()
        self.expanded = {}
        self.selected_path = None
        self.on_select = on_select
        self.logger = logger or get_logger(name=__name__)

    def set_root(self, root: TreeNode, keep_state: bool = False) -> None:
        self.root = root

        if not keep_state:
            self.reset()

    def reset(self) -> None:
        self.expanded = {}
        self.selected_path = None

    def is_expanded(self, path: str) -> bool:
        return self.expanded.get(path, False)

    def toggle(self, node_path: str) -> bool:
        """Flip the expand state of a directory and return the new state. Files and unknown paths are left alone."""

        node: TreeNode | None = self.root.find(node_path)

        if node is None or not node.is_tree or node.is_root:
            return False

        self.expanded[node_path] = not self.is_expanded(node_path)

        return self.expanded[node_path]

    def expand_to(self, path: str) -> None:
        """Expand every directory above the given path."""

        directory_path, _ = get_dir_and_file_from_path(path)

        if not directory_path:
            return

        segments: list[str] = directory_path.split("/")
        for index in range(1, len(segments) + 1):
            self.expanded["/".join(segments[:index])] = True

    async def select(self, node: TreeNode) -> None:
        """Handle a click on a node: directories toggle, files are handed to the open-file workflow."""

        if node.is_tree:
            _ = self.toggle(node.full_path)
            return

        if self.on_select is None:
            self.logger.warning(f"Selected {node.full_path} but nothing is listening for selections")
            return

        await self.on_select(node)

    def visible_rows(self) -> list[TreeRow]:
        rows: list[TreeRow] = []
        self._collect_rows(node=self.root, depth=0, rows=rows)
        return rows

    def _collect_rows(self, node: TreeNode, depth: int, rows: list[TreeRow]) -> None:
        for child in sort_children(node):
            expanded: bool = child.is_tree and self.is_expanded(child.full_path)

            rows.append(TreeRow(node=child, depth=depth, expanded=expanded, selected=child.full_path == self.selected_path))

            if expanded:
                self._collect_rows(node=child, depth=depth + 1, rows=rows)

    def render_text(self) -> str:
        return "\n".join(row.render_text() for row in self.visible_rows())
