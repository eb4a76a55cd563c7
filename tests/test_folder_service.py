# tests/test_folder_service.py
import pytest

from telecloud.core.exceptions import Conflict, InternalError, InvalidArgument, NotFound
from telecloud.schemas.common import UNSET
from telecloud.schemas.folder import FolderCreate, FolderUpdate
from telecloud.services import file_service, folder_service


def make_folder(owner, repo, name, parent=None):
    return folder_service.create_new_folder(
        FolderCreate(name=name, parent_id=parent.id if parent else None), owner, repo
    )


def upload(owner, repo, relay, name, size=10, folder=None):
    return file_service.upload_new_file(
        owner, folder.id if folder else None, name, "text/plain", b"x" * size, repo, relay
    )


def test_create_folder_trims_name_and_defaults_to_root(owner, repo):
    folder = make_folder(owner, repo, "  Belgeler ")
    assert folder.name == "Belgeler"
    assert folder.parent_id is None
    assert folder.owner_id == owner.id


def test_create_folder_sibling_conflict(owner, repo):
    make_folder(owner, repo, "Docs")
    with pytest.raises(Conflict):
        make_folder(owner, repo, "Docs")


def test_same_name_allowed_under_different_parents(owner, repo):
    a = make_folder(owner, repo, "A")
    b = make_folder(owner, repo, "B")
    make_folder(owner, repo, "Ortak", a)
    make_folder(owner, repo, "Ortak", b)
    assert len(folder_service.get_folders_by_owner(owner, repo, parent_id=UNSET)) == 4


def test_folder_names_are_case_sensitive(owner, repo):
    make_folder(owner, repo, "docs")
    assert make_folder(owner, repo, "Docs").name == "Docs"


def test_create_under_foreign_parent_is_not_found(owner, other_owner, repo):
    foreign = make_folder(other_owner, repo, "Gizli")
    with pytest.raises(NotFound):
        make_folder(owner, repo, "Alt", foreign)


def test_rename_conflict_under_same_parent(owner, repo):
    make_folder(owner, repo, "A")
    b = make_folder(owner, repo, "B")
    with pytest.raises(Conflict):
        folder_service.rename_folder(owner, b.id, "A", repo)
    assert folder_service.rename_folder(owner, b.id, "C", repo).name == "C"


def test_move_into_itself_or_descendant_is_rejected(owner, repo):
    a = make_folder(owner, repo, "A")
    b = make_folder(owner, repo, "B", a)
    c = make_folder(owner, repo, "C", b)

    with pytest.raises(InvalidArgument, match="circular reference"):
        folder_service.move_folder(owner, a.id, a.id, repo)
    with pytest.raises(InvalidArgument, match="circular reference"):
        folder_service.move_folder(owner, a.id, c.id, repo)

    # Kök dizine taşımak her zaman geçerli
    moved = folder_service.move_folder(owner, c.id, None, repo)
    assert moved.parent_id is None


def test_every_cycle_creating_move_is_rejected(owner, repo):
    r1 = make_folder(owner, repo, "R1")
    a = make_folder(owner, repo, "A", r1)
    b = make_folder(owner, repo, "B", a)
    c = make_folder(owner, repo, "C", a)
    d = make_folder(owner, repo, "D", b)
    r2 = make_folder(owner, repo, "R2")
    e = make_folder(owner, repo, "E", r2)
    folders = [r1, a, b, c, d, r2, e]
    children = {r1.id: [a], a.id: [b, c], b.id: [d], r2.id: [e]}

    def self_and_descendants(folder):
        found = [folder.id]
        for child in children.get(folder.id, []):
            found.extend(self_and_descendants(child))
        return set(found)

    for folder in folders:
        blocked = self_and_descendants(folder)
        for target in folders:
            if target.id in blocked:
                with pytest.raises(InvalidArgument, match="circular reference"):
                    folder_service.move_folder(owner, folder.id, target.id, repo)
                assert repo.get_folder(folder.id).parent_id == folder.parent_id
            else:
                moved = folder_service.move_folder(owner, folder.id, target.id, repo)
                assert moved.parent_id == target.id
                folder_service.move_folder(owner, folder.id, folder.parent_id, repo)


def test_cycle_walk_depth_cap_raises_internal(owner, repo, monkeypatch):
    monkeypatch.setattr(folder_service, "MAX_FOLDER_DEPTH", 3)
    parent = None
    for i in range(5):
        parent = make_folder(owner, repo, f"f{i}", parent)
    loose = make_folder(owner, repo, "serbest")
    with pytest.raises(InternalError):
        folder_service.move_folder(owner, loose.id, parent.id, repo)


def test_update_folder_distinguishes_omitted_and_null_parent(owner, repo):
    a = make_folder(owner, repo, "A")
    b = make_folder(owner, repo, "B", a)

    renamed = folder_service.update_folder(owner, b.id, FolderUpdate(name="B2"), repo)
    assert renamed.parent_id == a.id

    to_root = folder_service.update_folder(owner, b.id, FolderUpdate(parent_id=None), repo)
    assert to_root.parent_id is None
    assert to_root.name == "B2"


def test_list_children_three_modes(owner, repo):
    docs = make_folder(owner, repo, "Docs")
    make_folder(owner, repo, "Arşiv")
    make_folder(owner, repo, "2024", docs)
    make_folder(owner, repo, "2023", docs)

    everything = folder_service.get_folders_by_owner(owner, repo, parent_id=UNSET)
    root_only = folder_service.get_folders_by_owner(owner, repo, parent_id=None)
    children = folder_service.get_folders_by_owner(owner, repo, parent_id=docs.id)

    assert len(everything) == 4
    assert [f.name for f in root_only] == ["Arşiv", "Docs"]
    assert [f.name for f in children] == ["2023", "2024"]


def test_delete_recursively_docs_scenario(owner, repo, relay):
    """Docs -> Docs/2024 -> a.txt silinince 2 klasör, 1 dosya ve boş liste."""
    docs = make_folder(owner, repo, "Docs")
    year = make_folder(owner, repo, "2024", docs)
    upload(owner, repo, relay, "a.txt", size=10, folder=year)

    result = folder_service.delete_folder_service(owner, docs.id, repo, relay)

    assert result.folders_deleted == 2
    assert result.files_deleted == 1
    assert result.errors == []
    listing = file_service.get_files_by_owner(owner, repo)
    assert listing.pagination.total_items == 0


def test_delete_recursively_counts_trashed_files(owner, repo, relay):
    root = make_folder(owner, repo, "Kök")
    child = make_folder(owner, repo, "Çocuk", root)
    upload(owner, repo, relay, "canli.txt", folder=root)
    trashed = upload(owner, repo, relay, "cop.txt", folder=child)
    file_service.soft_delete_file(owner, trashed.id, repo)

    result = folder_service.delete_folder_recursive(root.id, repo, relay)

    assert (result.folders_deleted, result.files_deleted) == (2, 2)
    assert len(relay.released) == 2


def test_delete_recursively_is_idempotent(owner, repo, relay):
    folder = make_folder(owner, repo, "Tek")
    folder_service.delete_folder_recursive(folder.id, repo, relay)
    again = folder_service.delete_folder_recursive(folder.id, repo, relay)
    assert (again.folders_deleted, again.files_deleted, again.errors) == (0, 0, [])


def test_delete_recursively_continues_after_file_failure(owner, repo, relay, monkeypatch):
    root = make_folder(owner, repo, "Kök")
    left = make_folder(owner, repo, "Sol", root)
    right = make_folder(owner, repo, "Sag", root)
    bad = upload(owner, repo, relay, "bozuk.txt", folder=left)
    upload(owner, repo, relay, "iyi.txt", folder=right)

    original = repo.delete_file_record

    def flaky_delete(file_id):
        if file_id == bad.id:
            raise RuntimeError("yazma hatası")
        return original(file_id)

    monkeypatch.setattr(repo, "delete_file_record", flaky_delete)
    result = folder_service.delete_folder_recursive(root.id, repo, relay)

    assert result.files_deleted == 1
    assert result.folders_deleted == 3
    assert len(result.errors) == 1
    assert "bozuk.txt" in result.errors[0]


def test_contents_stats_and_path(owner, repo, relay):
    docs = make_folder(owner, repo, "Docs")
    year = make_folder(owner, repo, "2024", docs)
    make_folder(owner, repo, "Q1", year)
    upload(owner, repo, relay, "a.txt", size=100, folder=docs)
    upload(owner, repo, relay, "b.txt", size=250, folder=year)
    gone = upload(owner, repo, relay, "c.txt", size=999, folder=year)
    file_service.soft_delete_file(owner, gone.id, repo)

    contents = folder_service.get_folder_contents(owner, docs.id, repo)
    assert (contents.total_folders, contents.total_files) == (2, 2)

    stats = folder_service.get_folder_stats(owner, docs.id, repo)
    assert stats.file_count == 2
    assert stats.total_size == 350
    assert stats.subfolder_count == 1
    assert stats.formatted_size == "350 Bytes"

    q1 = folder_service.get_folders_by_owner(owner, repo, parent_id=year.id)[0]
    path = folder_service.get_folder_path(owner, q1.id, repo)
    assert path.path == "/Docs/2024/Q1"
    assert [item.id for item in path.items] == [docs.id, year.id, q1.id]


def test_folder_tree(owner, repo):
    docs = make_folder(owner, repo, "Docs")
    make_folder(owner, repo, "Fotoğraflar")
    make_folder(owner, repo, "2024", docs)

    tree = folder_service.get_folder_tree(owner, repo)

    assert [node.name for node in tree] == ["Docs", "Fotoğraflar"]
    assert [child.name for child in tree[0].children] == ["2024"]
