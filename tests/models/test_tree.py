import itertools
from types import SimpleNamespace

from inline_snapshot import snapshot

from github_ai_editor.models.repository.tree import (
    PathRecord,
    RepositoryTreeListing,
    TreeNode,
    build_tree,
    get_dir_and_file_from_path,
    join_path,
)
from tests.conftest import make_record


def shape(node: TreeNode) -> dict[str, object]:
    return {
        "kind": node.kind,
        "record": node.source_record.path if node.source_record else None,
        "children": {name: shape(child) for name, child in sorted(node.children.items())},
    }


RECORDS: list[PathRecord] = [
    make_record("src", kind="tree"),
    make_record("src/index.ts"),
    make_record("src/index", kind="tree"),
    make_record("src/index/main.ts"),
    make_record("docs/guide/intro.md"),
    make_record("README.md"),
]


def test_get_dir_and_file_from_path():
    assert get_dir_and_file_from_path("README") == ("", "README")
    assert get_dir_and_file_from_path("src/utils/strings.ts") == ("src/utils", "strings.ts")


def test_join_path():
    assert join_path("", "src") == "src"
    assert join_path("src", "index.ts") == "src/index.ts"


def test_build_empty():
    root = build_tree([])

    assert root.is_root
    assert root.is_tree
    assert root.children == {}
    assert root.source_record is None


def test_build_tree():
    root = build_tree(RECORDS)

    assert shape(root) == snapshot(
        {
            "kind": "tree",
            "record": None,
            "children": {
                "README.md": {"kind": "blob", "record": "README.md", "children": {}},
                "docs": {
                    "kind": "tree",
                    "record": None,
                    "children": {
                        "guide": {
                            "kind": "tree",
                            "record": None,
                            "children": {"intro.md": {"kind": "blob", "record": "docs/guide/intro.md", "children": {}}},
                        }
                    },
                },
                "src": {
                    "kind": "tree",
                    "record": "src",
                    "children": {
                        "index": {
                            "kind": "tree",
                            "record": "src/index",
                            "children": {"main.ts": {"kind": "blob", "record": "src/index/main.ts", "children": {}}},
                        },
                        "index.ts": {"kind": "blob", "record": "src/index.ts", "children": {}},
                    },
                },
            },
        }
    )


def test_build_is_order_independent():
    expected = shape(build_tree(RECORDS))

    for permutation in itertools.permutations(RECORDS):
        assert shape(build_tree(list(permutation))) == expected


def test_build_is_idempotent():
    assert build_tree(RECORDS) == build_tree(RECORDS)


def test_full_path_round_trip():
    root = build_tree(RECORDS)

    for node in root.iter_nodes():
        if node.is_root:
            continue

        assert node.full_path.split("/")[-1] == node.name
        assert root.find(node.full_path) is node

    for record in RECORDS:
        node = root.find(record.path)
        assert node is not None
        assert node.full_path == record.path
        assert node.source_record == record


def test_file_and_directory_with_shared_prefix_are_distinct():
    root = build_tree([make_record("src/index.ts"), make_record("src/index/main.ts")])

    src = root.find("src")
    assert src is not None
    assert sorted(src.children) == ["index", "index.ts"]
    assert src.children["index"].is_tree
    assert src.children["index.ts"].is_blob


def test_explicit_record_wins_over_inferred_directory():
    blob_then_child = build_tree([make_record("lib"), make_record("lib/inner.py")])
    child_then_blob = build_tree([make_record("lib/inner.py"), make_record("lib")])

    for root in (blob_then_child, child_then_blob):
        lib = root.find("lib")
        assert lib is not None
        assert lib.is_blob
        assert lib.source_record == make_record("lib")
        assert "inner.py" in lib.children


def test_duplicate_paths_keep_the_last_record():
    first = make_record("README.md", identity="1" * 40)
    second = make_record("README.md", identity="2" * 40)

    root = build_tree([first, second])

    assert list(root.children) == ["README.md"]
    assert root.children["README.md"].source_record == second


def test_find_missing():
    root = build_tree(RECORDS)

    assert root.find("") is root
    assert root.find("missing") is None
    assert root.find("src/missing/deeper") is None


def test_count_blobs():
    assert build_tree(RECORDS).count_blobs() == 4


class TestListing:
    def test_from_git_tree(self):
        git_tree = SimpleNamespace(
            truncated=True,
            tree=[
                SimpleNamespace(path="src", mode="040000", type="tree", sha="a" * 40, size=None, url=None),
                SimpleNamespace(path="src/main.py", mode="100644", type="blob", sha="b" * 40, size=12, url="https://example.test/blob"),
                SimpleNamespace(path="vendor/lib", mode="160000", type="commit", sha="c" * 40, size=None, url=None),
            ],
        )

        listing = RepositoryTreeListing.from_git_tree(git_tree=git_tree, owner="octocat", repo="Hello-World")  # pyright: ignore[reportArgumentType]

        assert listing.truncated is True
        assert [record.model_dump() for record in listing.records] == snapshot(
            [
                {
                    "path": "src",
                    "kind": "tree",
                    "identity": "aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa",
                    "fetch_locator": "https://api.github.com/repos/octocat/Hello-World/git/trees/aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa",
                    "size": None,
                    "mode": "040000",
                },
                {
                    "path": "src/main.py",
                    "kind": "blob",
                    "identity": "bbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb",
                    "fetch_locator": "https://example.test/blob",
                    "size": 12,
                    "mode": "100644",
                },
            ]
        )
