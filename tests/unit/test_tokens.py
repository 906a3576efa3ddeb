"""Tests for token storage."""

import json

import pytest

from sunyield.client.tokens import (
    ADMIN_KEY,
    USER_KEY,
    FileTokenStore,
    TokenStore,
    token_store_from_settings,
)


class TestTokenStore:
    def test_tokens_are_independent(self):
        store = TokenStore()
        store.set_user_token("u")
        store.set_admin_token("a")
        store.clear_user()
        assert store.user_token is None
        assert store.admin_token == "a"

    def test_clear_missing_is_noop(self):
        store = TokenStore()
        store.clear_admin()
        assert store.admin_token is None


class TestFileTokenStore:
    def test_persists_under_original_keys(self, tmp_path):
        path = tmp_path / "session" / "tokens.json"
        store = FileTokenStore(path)
        store.set_user_token("user-1")
        store.set_admin_token("admin-1")

        assert json.loads(path.read_text()) == {USER_KEY: "user-1", ADMIN_KEY: "admin-1"}
        reopened = FileTokenStore(path)
        assert reopened.user_token == "user-1"
        assert reopened.admin_token == "admin-1"

    def test_clear_is_persisted(self, tmp_path):
        path = tmp_path / "tokens.json"
        store = FileTokenStore(path)
        store.set_user_token("user-1")
        store.clear_user()
        assert FileTokenStore(path).user_token is None

    def test_unreadable_file_starts_empty(self, tmp_path):
        path = tmp_path / "tokens.json"
        path.write_text("{not json")
        assert FileTokenStore(path).user_token is None

    @pytest.mark.parametrize("content", ['["x"]', '"token"', "42", "null"])
    def test_non_object_file_starts_empty(self, tmp_path, content):
        path = tmp_path / "tokens.json"
        path.write_text(content)
        store = FileTokenStore(path)
        assert store.user_token is None
        assert store.admin_token is None

    def test_ignores_unknown_keys(self, tmp_path):
        path = tmp_path / "tokens.json"
        path.write_text(json.dumps({"token": "t", "theme": "dark", "adminToken": 3}))
        store = FileTokenStore(path)
        assert store.user_token == "t"
        assert store.admin_token is None

    def test_factory(self, tmp_path):
        assert type(token_store_from_settings(None)) is TokenStore
        assert isinstance(token_store_from_settings(str(tmp_path / "t.json")), FileTokenStore)
