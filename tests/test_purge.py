from datetime import timedelta

import pytest

from conftest import NOW, FakeChannel, make_message
from utils.constants import ERROR_ALL_MESSAGES_TOO_OLD, ERROR_NO_MESSAGES
from utils.purge import (
    ClearStage,
    delete_messages,
    fetch_candidates,
    partition_by_age,
    purge,
)


def test_partition_by_age_boundaries():
    day13 = make_message(1, timedelta(days=13))
    day14 = make_message(1, timedelta(days=14))
    day15 = make_message(1, timedelta(days=15))

    eligible, too_old = partition_by_age([day13, day14, day15], NOW)

    assert eligible == [day13, day14]
    assert too_old == [day15]


@pytest.mark.asyncio
async def test_fetch_without_author_uses_amount():
    channel = FakeChannel([make_message(1, timedelta(minutes=i)) for i in range(10)])

    messages = await fetch_candidates(channel, 3)

    assert len(messages) == 3
    assert channel.history_limits == [3]


@pytest.mark.asyncio
async def test_fetch_with_author_overfetches_then_filters():
    messages = [make_message(7 if i % 3 == 0 else 8, timedelta(minutes=i)) for i in range(30)]
    channel = FakeChannel(messages)

    result = await fetch_candidates(channel, 5, author_id=7)

    assert channel.history_limits == [100]
    assert len(result) == 5
    assert all(message.author.id == 7 for message in result)
    assert result == [m for m in messages if m.author.id == 7][:5]


@pytest.mark.asyncio
async def test_single_message_uses_plain_delete():
    message = make_message(1, timedelta(minutes=1))
    channel = FakeChannel([message])

    assert await delete_messages(channel, [message]) == 1

    message.delete.assert_awaited_once()
    channel.delete_messages.assert_not_awaited()


@pytest.mark.asyncio
async def test_many_messages_use_one_bulk_delete():
    messages = [make_message(1, timedelta(minutes=i)) for i in range(4)]
    channel = FakeChannel(messages)

    assert await delete_messages(channel, messages) == 4

    channel.delete_messages.assert_awaited_once_with(messages)
    for message in messages:
        message.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_purge_fewer_messages_than_requested():
    messages = [make_message(1, timedelta(hours=i)) for i in range(3)]
    channel = FakeChannel(messages)

    result = await purge(channel, 5, now=NOW)

    assert result.stage is ClearStage.REPORTING
    assert result.deleted == 3
    assert result.skipped == 0
    channel.delete_messages.assert_awaited_once_with(messages)


@pytest.mark.asyncio
async def test_purge_reports_skipped_old_messages():
    recent = [make_message(1, timedelta(days=1)) for _ in range(2)]
    old = make_message(1, timedelta(days=20))
    channel = FakeChannel(recent + [old])

    result = await purge(channel, 3, now=NOW)

    assert result.deleted == 2
    assert result.skipped == 1
    old.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_purge_aborts_when_everything_is_too_old():
    channel = FakeChannel([make_message(1, timedelta(days=30)) for _ in range(3)])

    result = await purge(channel, 3, now=NOW)

    assert result.aborted
    assert result.reason == ERROR_ALL_MESSAGES_TOO_OLD
    assert result.skipped == 3
    channel.delete_messages.assert_not_awaited()


@pytest.mark.asyncio
async def test_purge_aborts_on_empty_channel():
    channel = FakeChannel([])

    result = await purge(channel, 10, now=NOW)

    assert result.aborted
    assert result.reason == ERROR_NO_MESSAGES


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, 101])
async def test_purge_rejects_out_of_range_amount(amount):
    with pytest.raises(ValueError):
        await purge(FakeChannel([]), amount)
