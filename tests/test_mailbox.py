import anyio
import pytest

from parley.exceptions import MailboxClosed
from parley.identity import ClientIdentity, Role
from parley.mailbox import Mailbox
from parley.messages import OutboundMessage
from tests._support import wait_until

pytestmark = pytest.mark.anyio

SENDER = ClientIdentity(Role.STUDENT, "s1")


def msg(text: str) -> OutboundMessage:
    return OutboundMessage(sender=SENDER, text=text)


async def test_messages_are_popped_in_push_order():
    mailbox = Mailbox(capacity=None)

    for i in range(5):
        await mailbox.push(msg(str(i)))

    assert [(await mailbox.pop()).text for _ in range(5)] == ["0", "1", "2", "3", "4"]


async def test_close_drains_remaining_messages_before_end_of_stream():
    mailbox = Mailbox(capacity=2)
    await mailbox.push(msg("a"))
    await mailbox.push(msg("b"))

    await mailbox.close()

    assert (await mailbox.pop()).text == "a"
    assert (await mailbox.pop()).text == "b"
    assert await mailbox.pop() is None
    assert await mailbox.pop() is None


async def test_push_after_close_raises():
    mailbox = Mailbox()
    await mailbox.close()

    assert mailbox.closed
    with pytest.raises(MailboxClosed):
        await mailbox.push(msg("late"))


async def test_close_is_idempotent():
    mailbox = Mailbox()

    await mailbox.close()
    await mailbox.close()

    assert await mailbox.pop() is None


async def test_push_blocks_when_full_until_capacity_frees():
    mailbox = Mailbox(capacity=2)
    done = anyio.Event()

    async def producer():
        for i in range(3):
            await mailbox.push(msg(str(i)))
        done.set()

    async with anyio.create_task_group() as tg:
        tg.start_soon(producer)

        await wait_until(lambda: mailbox.pending == 2)
        await anyio.sleep(0.05)
        assert not done.is_set()

        assert (await mailbox.pop()).text == "0"
        with anyio.fail_after(1):
            await done.wait()

    assert (await mailbox.pop()).text == "1"
    assert (await mailbox.pop()).text == "2"


async def test_close_wakes_blocked_pusher():
    mailbox = Mailbox(capacity=1)
    await mailbox.push(msg("queued"))
    outcome: list[str] = []

    async def producer():
        try:
            await mailbox.push(msg("blocked"))
            outcome.append("delivered")
        except MailboxClosed:
            outcome.append("closed")

    async with anyio.create_task_group() as tg:
        tg.start_soon(producer)
        await wait_until(lambda: mailbox._send.statistics().tasks_waiting_send == 1)

        await mailbox.close()
        await wait_until(lambda: bool(outcome))

    assert outcome == ["closed"]
    assert (await mailbox.pop()).text == "queued"
    assert await mailbox.pop() is None


async def test_close_wakes_blocked_pop():
    mailbox = Mailbox()
    results: list[object] = []

    async def consumer():
        results.append(await mailbox.pop())

    async with anyio.create_task_group() as tg:
        tg.start_soon(consumer)
        await wait_until(lambda: mailbox._recv.statistics().tasks_waiting_receive == 1)
        await mailbox.close()

    assert results == [None]


async def test_wait_closed_returns_once_closed_even_with_queued_messages():
    mailbox = Mailbox()
    await mailbox.push(msg("queued"))
    woken = anyio.Event()

    async def watcher():
        await mailbox.wait_closed()
        woken.set()

    async with anyio.create_task_group() as tg:
        tg.start_soon(watcher)
        await anyio.sleep(0.01)
        assert not woken.is_set()

        await mailbox.close()
        with anyio.fail_after(1):
            await woken.wait()

    # Already closed: returns immediately.
    with anyio.fail_after(1):
        await mailbox.wait_closed()
    assert mailbox.pending == 1
