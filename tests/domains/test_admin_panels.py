"""Tests for the admin panel refresh cycle."""

from unittest.mock import AsyncMock

import pytest

from sunyield.client.errors import ApiError, ErrorKind
from sunyield.domains.admin import AdminPanel, UsersPanel
from sunyield.models import User
from sunyield.shared.notifications import Notifier


class TestAdminPanel:
    def test_base_panel_is_abstract(self):
        with pytest.raises(TypeError):
            AdminPanel(AsyncMock(), Notifier())

    @pytest.mark.asyncio
    async def test_failed_action_still_refreshes(self):
        api = AsyncMock()
        api.users.return_value = [User(id=1, email="ravi@example.com")]
        api.delete_user.side_effect = ApiError(
            "User has active subscriptions", 400, ErrorKind.BUSINESS_RULE
        )
        panel = UsersPanel(api, Notifier())

        assert not await panel.delete(1)

        assert panel.notifier.errors() == ["User has active subscriptions"]
        assert [u.id for u in panel.items] == [1]
        api.users.assert_awaited_once()
