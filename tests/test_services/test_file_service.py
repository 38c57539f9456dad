"""Tests for the file record store helpers and tree assembly."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from backend.exceptions import NotFoundError
from backend.models.file import FILE_TYPE, FOLDER_TYPE, FileRecord
from backend.remote.base import FOLDER_MIME_TYPE
from backend.services.file_service import (
    build_file_tree,
    collect_descendants,
    content_digest,
    content_size,
    file_extension,
    get_file,
    get_owned_project,
    join_path,
    language_for,
    mime_type_for,
    normalize_path,
    validate_name,
)
from backend.services.sync_service import create_entry

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from backend.models.project import Project
    from backend.schemas.file import FileTreeNode
    from tests._remote_fakes import InMemoryRemoteStore


def _record(
    record_id: int, name: str, entry_type: str = FILE_TYPE, parent: FileRecord | None = None
) -> FileRecord:
    return FileRecord(
        id=record_id,
        project_id=1,
        parent_id=parent.id if parent else None,
        name=name,
        path=join_path(parent.path if parent else None, name),
        type=entry_type,
        size=0,
        extension="",
        sync_status="synced",
    )


def _flatten(nodes: list[FileTreeNode]) -> list[FileTreeNode]:
    flat: list[FileTreeNode] = []
    for node in nodes:
        flat.append(node)
        flat.extend(_flatten(node.children))
    return flat


_names = st.text(alphabet="abcXYZ._-", min_size=1, max_size=6)


@st.composite
def _record_sets(draw: st.DrawFn) -> tuple[list[FileRecord], list[FileRecord]]:
    count = draw(st.integers(min_value=0, max_value=25))
    records: list[FileRecord] = []
    folders: list[FileRecord] = []
    for record_id in range(1, count + 1):
        is_folder = draw(st.booleans())
        parent = draw(st.sampled_from([None, *folders]))
        entry_type = FOLDER_TYPE if is_folder else FILE_TYPE
        record = _record(record_id, draw(_names), entry_type, parent)
        records.append(record)
        if is_folder:
            folders.append(record)
    return records, draw(st.permutations(records))


class TestPathHelpers:
    def test_join_path_at_root(self) -> None:
        assert join_path(None, "main.py") == "/main.py"

    def test_join_path_nested(self) -> None:
        assert join_path("/src/lib", "util.py") == "/src/lib/util.py"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("main.py", "/main.py"),
            ("/src/app.js", "/src/app.js"),
            ("  src/app.js  ", "/src/app.js"),
            ("//src//app.js", "/src/app.js"),
            ("/src/../app.js", "/app.js"),
            ("/../../etc/passwd", "/etc/passwd"),
        ],
    )
    def test_normalize_path(self, raw: str, expected: str) -> None:
        assert normalize_path(raw) == expected

    @pytest.mark.parametrize("name", ["main.py", ".env", "Makefile", "a b.txt"])
    def test_valid_names(self, name: str) -> None:
        assert validate_name(name) == name

    @pytest.mark.parametrize("name", ["", " x", "x ", "a/b", "a\\b", ".", ".."])
    def test_invalid_names(self, name: str) -> None:
        with pytest.raises(ValueError):
            validate_name(name)


class TestFileMetadataHelpers:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [("app.JS", "js"), ("archive.tar.gz", "gz"), (".bashrc", ""), ("Makefile", "")],
    )
    def test_file_extension(self, name: str, expected: str) -> None:
        assert file_extension(name) == expected

    def test_language_for(self) -> None:
        assert language_for("main.py") == "python"
        assert language_for("index.html") == "html"
        assert language_for("README") == "plaintext"

    def test_mime_type_for(self) -> None:
        assert mime_type_for("src", FOLDER_TYPE) == FOLDER_MIME_TYPE
        assert mime_type_for("main.py", FILE_TYPE) == "text/x-python"
        assert mime_type_for("data.bin", FILE_TYPE) == "text/plain"

    def test_content_digest_is_md5_of_utf8(self) -> None:
        assert content_digest("") == "d41d8cd98f00b204e9800998ecf8427e"
        assert content_digest("ż") != content_digest("z")

    def test_content_size_counts_bytes(self) -> None:
        assert content_size("abc") == 3
        assert content_size("żó") == 4


class TestBuildFileTree:
    def test_folders_first_then_case_insensitive_names(self) -> None:
        src = _record(1, "src", FOLDER_TYPE)
        records = [
            _record(2, "b.py"),
            _record(3, "A.py"),
            src,
            _record(4, "zeta", FOLDER_TYPE),
            _record(5, "inner.py", parent=src),
        ]

        tree = build_file_tree(records)

        assert [n.name for n in tree] == ["src", "zeta", "A.py", "b.py"]
        assert [n.name for n in tree[0].children] == ["inner.py"]
        assert tree[0].children[0].path == "/src/inner.py"

    def test_orphans_are_attached_at_root(self) -> None:
        orphan = FileRecord(
            id=7,
            project_id=1,
            parent_id=99,
            name="lost.py",
            path="/gone/lost.py",
            type=FILE_TYPE,
            size=0,
            extension="py",
            sync_status="error",
        )

        tree = build_file_tree([orphan])

        assert [n.id for n in tree] == [7]
        assert tree[0].sync_status == "error"

    def test_empty_input(self) -> None:
        assert build_file_tree([]) == []

    @settings(max_examples=100)
    @given(data=_record_sets())
    def test_tree_depends_only_on_record_set(
        self, data: tuple[list[FileRecord], list[FileRecord]]
    ) -> None:
        records, shuffled = data
        tree = build_file_tree(records)

        assert build_file_tree(shuffled) == tree
        assert sorted(n.id for n in _flatten(tree)) == [r.id for r in records]

    @settings(max_examples=100)
    @given(data=_record_sets())
    def test_siblings_list_folders_before_files(
        self, data: tuple[list[FileRecord], list[FileRecord]]
    ) -> None:
        records, _ = data

        def check(nodes: list[FileTreeNode]) -> None:
            kinds = [n.type for n in nodes]
            assert kinds == sorted(kinds, key=lambda kind: kind != FOLDER_TYPE)
            for node in nodes:
                check(node.children)

        check(build_file_tree(records))


class TestRecordLookups:
    async def test_get_file_by_id_and_path(
        self, db_session: AsyncSession, project: Project, remote: InMemoryRemoteStore
    ) -> None:
        created = await create_entry(
            db_session, project, remote, name="main.py", entry_type=FILE_TYPE, content="x"
        )

        assert (await get_file(db_session, project.id, file_id=created.id)).id == created.id
        assert (await get_file(db_session, project.id, path="main.py")).id == created.id

    async def test_get_file_missing_raises_not_found(
        self, db_session: AsyncSession, project: Project
    ) -> None:
        with pytest.raises(NotFoundError):
            await get_file(db_session, project.id, file_id=12345)
        with pytest.raises(NotFoundError):
            await get_file(db_session, project.id, path="/nope.py")

    async def test_get_file_needs_id_or_path(
        self, db_session: AsyncSession, project: Project
    ) -> None:
        with pytest.raises(ValueError, match="file_id is required"):
            await get_file(db_session, project.id)

    async def test_foreign_project_is_not_found(
        self, db_session: AsyncSession, project: Project
    ) -> None:
        assert (await get_owned_project(db_session, project.id, project.owner_id)).id == project.id
        with pytest.raises(NotFoundError, match="Project not found"):
            await get_owned_project(db_session, project.id, project.owner_id + 1)

    async def test_collect_descendants_lists_children_before_parents(
        self, db_session: AsyncSession, project: Project, remote: InMemoryRemoteStore
    ) -> None:
        src = await create_entry(
            db_session, project, remote, name="src", entry_type=FOLDER_TYPE
        )
        inner = await create_entry(
            db_session, project, remote, name="inner", entry_type=FOLDER_TYPE, parent_id=src.id
        )
        leaf = await create_entry(
            db_session, project, remote, name="a.py", entry_type=FILE_TYPE, parent_id=inner.id
        )
        top = await create_entry(
            db_session, project, remote, name="b.py", entry_type=FILE_TYPE, parent_id=src.id
        )

        ordered = await collect_descendants(db_session, src)

        assert [r.id for r in ordered] == [leaf.id, inner.id, top.id]
