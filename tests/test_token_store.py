from unittest.mock import MagicMock

from adapters.token_store import FileTokenStore, MemoryTokenStore, invalidate_session
from core.domain.models import AuthUser
from core.interfaces.token_store import TokenStore


def test_memory_store_lifecycle():
    store = MemoryTokenStore()
    assert isinstance(store, TokenStore)
    assert not store.is_authenticated()
    assert store.get_current_user() is None

    store.set_token("t1", {"_id": 7, "role": "admin", "name": "Ada", "email": "ada@example.com"})
    assert store.is_authenticated()
    assert store.get_token() == "t1"
    assert store.get_current_user() == AuthUser(id="7", role="admin", name="Ada", email="ada@example.com")

    store.set_token("t2")
    assert store.get_token() == "t2"
    assert store.get_current_user() is None

    store.clear()
    store.clear()
    assert not store.is_authenticated()


def test_memory_store_ignores_invalid_user():
    store = MemoryTokenStore()
    store.set_token("t", {"email": ["not", "a", "string"]})
    assert store.is_authenticated()
    assert store.get_current_user() is None


def test_file_store_persists_between_instances(tmp_path):
    path = tmp_path / "nested" / "session.json"
    FileTokenStore(path).set_token("abc", AuthUser(id="1", email="a@b.c"))

    reloaded = FileTokenStore(path)
    assert reloaded.is_authenticated()
    assert reloaded.get_token() == "abc"
    assert reloaded.get_current_user().email == "a@b.c"
    assert not (tmp_path / "nested" / "session.json.tmp").exists()


def test_file_store_clear_is_idempotent(tmp_path):
    store = FileTokenStore(tmp_path / "session.json")
    store.set_token("abc")
    store.clear()
    store.clear()
    assert not store.is_authenticated()
    assert not store.path.exists()


def test_file_store_tolerates_corrupt_file(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")
    store = FileTokenStore(path)
    assert store.get_token() is None
    assert store.get_current_user() is None

    path.write_text('{"token": "abc", "user": "garbage"}', encoding="utf-8")
    assert store.is_authenticated()
    assert store.get_current_user() is None


def test_empty_token_is_not_authenticated(tmp_path):
    path = tmp_path / "session.json"
    path.write_text('{"token": ""}', encoding="utf-8")
    assert not FileTokenStore(path).is_authenticated()


def test_invalidate_session_clears_and_notifies():
    store = MemoryTokenStore()
    store.set_token("abc")
    on_expired = MagicMock()

    invalidate_session(store, on_expired, "/api/users")

    assert not store.is_authenticated()
    on_expired.assert_called_once_with("/api/users")


def test_invalidate_session_without_callback():
    store = MemoryTokenStore()
    invalidate_session(store, None, "/api/users")
    assert not store.is_authenticated()


def test_invalidate_session_without_active_session_skips_callback():
    store = MemoryTokenStore()
    on_expired = MagicMock()

    invalidate_session(store, on_expired, "/api/admin/login")

    on_expired.assert_not_called()
    assert not store.is_authenticated()
