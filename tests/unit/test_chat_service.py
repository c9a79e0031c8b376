"""Unit tests for chat membership rules."""

from datetime import timedelta

import pytest

from chatline.core.exceptions import ResourceAccessDeniedError, ValidationError
from chatline.database import MUTED_FOREVER, Chat, Image, User, UserBlock, utcnow
from chatline.repositories import (
    ChatRepository,
    ImageRepository,
    UserBlockRepository,
    UserRepository,
)
from chatline.services import ChatService
from chatline.services.chat_service import is_muted


@pytest.fixture
def chat_service(session):
    return ChatService(
        ChatRepository(Chat, session),
        UserRepository(User, session),
        UserBlockRepository(UserBlock, session),
        ImageRepository(Image, session),
    )


@pytest.fixture
async def users(session):
    repo = UserRepository(User, session)
    return [
        await repo.create(name=name, email=f"{name.lower()}@example.com")
        for name in ("Ann", "Ben", "Cat")
    ]


async def test_private_chat_is_reused(chat_service, users):
    ann, ben, _ = users

    chat, created = await chat_service.create_chat(ann, "private", [ben.id])
    again, created_again = await chat_service.create_chat(ben, "private", [ann.id])

    assert created is True
    assert created_again is False
    assert again.id == chat.id


async def test_creator_is_admin_and_has_seen(chat_service, users):
    ann, ben, cat = users
    chat, _ = await chat_service.create_chat(ann, "group", [ben.id, cat.id, ann.id], group_name="G")

    memberships = {p.user_id: p for p in chat.participants}
    assert len(memberships) == 3
    assert memberships[ann.id].role == "admin"
    assert memberships[ann.id].is_seen is True
    assert memberships[ben.id].role == "member"
    assert memberships[ben.id].is_seen is False


async def test_block_prevents_private_chat(chat_service, users, session):
    ann, ben, _ = users
    await UserBlockRepository(UserBlock, session).create(blocker_id=ben.id, blocked_id=ann.id)

    with pytest.raises(ResourceAccessDeniedError):
        await chat_service.create_chat(ann, "private", [ben.id])


async def test_leave_promotes_longest_standing_member(chat_service, users):
    ann, ben, cat = users
    chat, _ = await chat_service.create_chat(ann, "group", [ben.id, cat.id])

    assert await chat_service.leave_chat(chat.id, ann) == []

    ben_membership = await chat_service.chat_repo.get_membership(chat.id, ben.id)
    cat_membership = await chat_service.chat_repo.get_membership(chat.id, cat.id)
    assert ben_membership.role == "admin"
    assert cat_membership.role == "member"


async def test_leave_private_chat_rejected(chat_service, users):
    ann, ben, _ = users
    chat, _ = await chat_service.create_chat(ann, "private", [ben.id])

    with pytest.raises(ValidationError):
        await chat_service.leave_chat(chat.id, ann)


async def test_mute_semantics(chat_service, users):
    ann, ben, _ = users
    chat, _ = await chat_service.create_chat(ann, "private", [ben.id])

    membership = await chat_service.set_muted(chat.id, ann, None)
    assert membership.muted_until == MUTED_FOREVER
    assert is_muted(membership)

    membership = await chat_service.set_muted(chat.id, ann, 60)
    assert utcnow() < membership.muted_until <= utcnow() + timedelta(seconds=60)

    membership = await chat_service.set_muted(chat.id, ann, 0)
    assert membership.muted_until is None
    assert not is_muted(membership)


async def test_mute_past_far_future_clamps(chat_service, users):
    ann, ben, _ = users
    chat, _ = await chat_service.create_chat(ann, "private", [ben.id])

    membership = await chat_service.set_muted(chat.id, ann, 10**12)
    assert membership.muted_until == MUTED_FOREVER


def test_expired_mute_is_not_muted():
    class Membership:
        muted_until = utcnow() - timedelta(seconds=1)

    assert not is_muted(Membership())
