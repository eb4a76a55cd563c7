# tests/test_create_admin.py
import create_admin


def test_main_creates_admin_then_reports_conflict(repo, monkeypatch, capsys):
    monkeypatch.setattr(create_admin, "get_db_repository", lambda: repo)
    monkeypatch.setenv("ADMIN_EMAIL", "admin@telecloud.dev")
    monkeypatch.setenv("ADMIN_PASSWORD", "yonetici123")
    monkeypatch.delenv("ADMIN_NAME", raising=False)

    assert create_admin.main() == 0
    admin = repo.get_owner_by_email("admin@telecloud.dev")
    assert admin.role == "admin"
    assert admin.name == "Admin"

    assert create_admin.main() == 1
    assert "zaten kayıtlı" in capsys.readouterr().out


def test_main_requires_credentials(monkeypatch):
    monkeypatch.delenv("ADMIN_EMAIL", raising=False)
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    assert create_admin.main() == 1
