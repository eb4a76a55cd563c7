# tests/test_account_service.py
from datetime import timedelta

import pytest

from telecloud.core.exceptions import InternalError, InvalidArgument
from telecloud.schemas.folder import FolderCreate
from telecloud.services import account_service, file_service, folder_service


def latest_code(repo, owner):
    codes = [c for c in repo.codes.values() if c.email == owner.email and not c.used]
    return codes[-1]


def test_issue_and_confirm_deletes_everything(owner, other_owner, repo, relay):
    docs = folder_service.create_new_folder(FolderCreate(name="Docs"), owner, repo)
    file_service.upload_new_file(owner, docs.id, "a.txt", "text/plain", b"abc", repo, relay)
    trashed = file_service.upload_new_file(owner, None, "b.txt", "text/plain", b"abc", repo, relay)
    file_service.soft_delete_file(owner, trashed.id, repo)
    kept = file_service.upload_new_file(other_owner, None, "c.txt", "text/plain", b"abc", repo, relay)

    issued = account_service.issue_deletion_code(owner, repo)
    code = latest_code(repo, owner).code
    assert issued.expires_at > file_service.utc_now()

    result = account_service.confirm_account_deletion(owner, code, repo, relay)

    assert (result.files_deleted, result.folders_deleted) == (2, 1)
    assert repo.get_owner_by_id(owner.id) is None
    assert [f.id for f in repo.files.values()] == [kept.id]
    assert not any(c.email == owner.email for c in repo.codes.values())
    assert len(relay.released) == 2


def test_new_code_invalidates_previous(owner, repo):
    account_service.issue_deletion_code(owner, repo)
    first = latest_code(repo, owner).code
    account_service.issue_deletion_code(owner, repo)
    second = latest_code(repo, owner).code

    if first != second:
        with pytest.raises(InvalidArgument):
            account_service.confirm_account_deletion(owner, first, repo)
    assert account_service.confirm_account_deletion(owner, second, repo).files_deleted == 0


@pytest.mark.parametrize("code", ["", "12345", "abcdef", "1234567"])
def test_malformed_code(owner, repo, code):
    with pytest.raises(InvalidArgument):
        account_service.confirm_account_deletion(owner, code, repo)


def test_wrong_or_expired_code(owner, repo):
    account_service.issue_deletion_code(owner, repo)
    record = latest_code(repo, owner)
    wrong = "000000" if record.code != "000000" else "111111"
    with pytest.raises(InvalidArgument):
        account_service.confirm_account_deletion(owner, wrong, repo)

    repo.codes[record.id].expires_at = file_service.utc_now() - timedelta(seconds=1)
    with pytest.raises(InvalidArgument):
        account_service.confirm_account_deletion(owner, record.code, repo)
    assert repo.get_owner_by_id(owner.id) is not None


def test_cascade_failure_changes_nothing(owner, repo, relay, monkeypatch):
    file_service.upload_new_file(owner, None, "a.txt", "text/plain", b"abc", repo, relay)

    def failing_cascade(owner_id):
        raise RuntimeError("transaction aborted")

    monkeypatch.setattr(repo, "delete_owner_cascade", failing_cascade)
    with pytest.raises(InternalError):
        account_service.delete_account(owner.id, repo, relay)
    assert repo.get_owner_by_id(owner.id) is not None
    assert len(repo.files) == 1
    assert relay.released == []


def test_generate_code_format():
    code = account_service.generate_code()
    assert len(code) == 6 and code.isdigit()
