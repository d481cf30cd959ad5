"""Tests for the Telegram-backed gateway."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.constants import ChatMemberStatus, ParseMode
from telegram.error import BadRequest, Forbidden, TimedOut

from ghostbuster.errors import GatewaySendFailed
from ghostbuster.models import ChatMember
from ghostbuster.services.gateway import TelegramGateway
from ghostbuster.texts import Texts

from conftest import CHAT_ID

BOT_ID = 4242


@pytest.fixture
def bot():
    bot = AsyncMock()
    bot.id = BOT_ID
    return bot


@pytest.fixture
def tg_gateway(bot):
    return TelegramGateway(bot, Texts())


def chat_member(status, **rights):
    return MagicMock(status=status, **rights)


class TestSendWarning:
    async def test_sends_one_html_message(self, tg_gateway, bot):
        members = [
            ChatMember(chat_id=CHAT_ID, user_id=1, display_name='Ann'),
            ChatMember(chat_id=CHAT_ID, user_id=2, display_name='Bob'),
        ]

        await tg_gateway.send_warning(CHAT_ID, members)

        bot.send_message.assert_awaited_once()
        kwargs = bot.send_message.await_args.kwargs
        assert kwargs['chat_id'] == CHAT_ID
        assert kwargs['parse_mode'] == ParseMode.HTML
        assert 'tg://user?id=1' in kwargs['text']
        assert 'tg://user?id=2' in kwargs['text']

    @pytest.mark.parametrize("error", [Forbidden('bot was kicked'), TimedOut()])
    async def test_telegram_errors_become_gateway_failures(self, tg_gateway, bot, error):
        bot.send_message.side_effect = error
        members = [ChatMember(chat_id=CHAT_ID, user_id=1, display_name='Ann')]

        with pytest.raises(GatewaySendFailed) as exc_info:
            await tg_gateway.send_warning(CHAT_ID, members)

        assert exc_info.value.action == 'send_warning'
        assert exc_info.value.chat_id == CHAT_ID


class TestRemove:
    async def test_bans_member(self, tg_gateway, bot):
        await tg_gateway.remove(CHAT_ID, 7)

        bot.ban_chat_member.assert_awaited_once_with(chat_id=CHAT_ID, user_id=7)

    async def test_failure_is_reported(self, tg_gateway, bot):
        bot.ban_chat_member.side_effect = BadRequest('Not enough rights to restrict/unrestrict chat member')

        with pytest.raises(GatewaySendFailed, match='user 7'):
            await tg_gateway.remove(CHAT_ID, 7)


class TestIsAdmin:
    @pytest.mark.parametrize("status, expected", [
        (ChatMemberStatus.OWNER, True),
        (ChatMemberStatus.ADMINISTRATOR, True),
        (ChatMemberStatus.MEMBER, False),
        (ChatMemberStatus.RESTRICTED, False),
    ])
    async def test_status(self, tg_gateway, bot, status, expected):
        bot.get_chat_member.return_value = chat_member(status)

        assert await tg_gateway.is_admin(CHAT_ID, 1) is expected

    async def test_lookup_failure_means_not_admin(self, tg_gateway, bot):
        bot.get_chat_member.side_effect = BadRequest('User not found')

        assert await tg_gateway.is_admin(CHAT_ID, 1) is False


class TestBotStatus:
    async def test_admin_with_ban_right(self, tg_gateway, bot):
        bot.get_chat_member.return_value = chat_member(ChatMemberStatus.ADMINISTRATOR, can_restrict_members=True)

        status = await tg_gateway.bot_status(CHAT_ID)

        bot.get_chat_member.assert_awaited_once_with(chat_id=CHAT_ID, user_id=BOT_ID)
        assert status.status == ChatMemberStatus.ADMINISTRATOR
        assert status.can_restrict is True

    async def test_admin_without_ban_right(self, tg_gateway, bot):
        bot.get_chat_member.return_value = chat_member(ChatMemberStatus.ADMINISTRATOR, can_restrict_members=False)

        assert (await tg_gateway.bot_status(CHAT_ID)).can_restrict is False

    async def test_owner_can_always_restrict(self, tg_gateway, bot):
        bot.get_chat_member.return_value = chat_member(ChatMemberStatus.OWNER, can_restrict_members=None)

        assert (await tg_gateway.bot_status(CHAT_ID)).can_restrict is True

    async def test_failure_is_reported(self, tg_gateway, bot):
        bot.get_chat_member.side_effect = Forbidden('bot is not a member of the supergroup chat')

        with pytest.raises(GatewaySendFailed):
            await tg_gateway.bot_status(CHAT_ID)
