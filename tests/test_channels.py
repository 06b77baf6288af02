import asyncio

import pytest

from lxpbridge.channels import Broadcast, ChannelClosed, Channels, Message


def test_send_without_receivers_raises():
    channel = Broadcast()
    with pytest.raises(ChannelClosed):
        channel.send("x")


def test_send_after_close_raises():
    channel = Broadcast()
    sub = channel.subscribe()
    channel.close()
    with pytest.raises(ChannelClosed):
        channel.send("x")
    assert sub.missed == 0


def test_invalid_capacity():
    with pytest.raises(ValueError):
        Broadcast(0)


@pytest.mark.asyncio
async def test_items_arrive_in_order():
    channel = Broadcast()
    sub = channel.subscribe()
    assert channel.send("a") == 1
    channel.send("b")
    assert await sub.recv() == "a"
    assert await sub.recv() == "b"


@pytest.mark.asyncio
async def test_every_subscriber_gets_each_item():
    channel = Broadcast()
    first = channel.subscribe()
    second = channel.subscribe()
    assert channel.send(Message("t", "p")) == 2
    assert await first.recv() == Message("t", "p")
    assert await second.recv() == Message("t", "p")


@pytest.mark.asyncio
async def test_close_drains_then_raises():
    channel = Broadcast()
    sub = channel.subscribe()
    channel.send(1)
    channel.close()
    assert await sub.recv() == 1
    with pytest.raises(ChannelClosed):
        await sub.recv()


@pytest.mark.asyncio
async def test_overflow_drops_oldest():
    channel = Broadcast(capacity=2)
    sub = channel.subscribe()
    for item in ("a", "b", "c"):
        channel.send(item)
    assert await sub.recv() == "b"
    assert await sub.recv() == "c"
    assert sub.missed == 1


def test_unsubscribe_with_context_manager():
    channel = Broadcast()
    with channel.subscribe():
        assert channel.receiver_count == 1
    assert channel.receiver_count == 0
    with pytest.raises(ChannelClosed):
        channel.send("x")


@pytest.mark.asyncio
async def test_recv_waits_for_later_send():
    channel = Broadcast()
    sub = channel.subscribe()
    task = asyncio.create_task(sub.recv())
    await asyncio.sleep(0)
    assert not task.done()
    channel.send("late")
    assert await asyncio.wait_for(task, 1) == "late"


@pytest.mark.asyncio
async def test_async_iteration_stops_on_close():
    channel = Broadcast()
    sub = channel.subscribe()
    channel.send(1)
    channel.send(2)
    channel.close()
    assert [item async for item in sub] == [1, 2]


@pytest.mark.asyncio
async def test_channels_are_independent():
    channels = Channels()
    to_inverter = channels.to_inverter.subscribe()
    from_inverter = channels.from_inverter.subscribe()
    channels.from_inverter.send("packet")
    assert await from_inverter.recv() == "packet"
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(to_inverter.recv(), 0.05)


def test_channels_default_capacity():
    channels = Channels()
    assert channels.to_mqtt.capacity == 2048
    assert channels.to_mqtt is not channels.from_mqtt