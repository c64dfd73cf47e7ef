import asyncio

from storeadmin.realtime import ChangeEvent, RealtimeChannel
from storeadmin.refresh import LiveRefreshCoordinator
from storeadmin.state import LocalStateFile, Observable, SharedState


def make_coordinator(tmp_path, reload, live=True, interval=3600.0):
    state = SharedState(LocalStateFile(str(tmp_path / "state.json")))
    state.live_updates.set(live)
    channel = RealtimeChannel()
    key = Observable("refreshKey", 0)
    coordinator = LiveRefreshCoordinator("test", reload, state, key, channel, interval=interval)
    return coordinator, state, channel, key


def test_no_polling_or_realtime_while_live_updates_are_off(tmp_path):
    calls = []

    async def reload():
        calls.append("reload")

    async def scenario():
        coordinator, state, channel, _ = make_coordinator(tmp_path, reload, live=False, interval=0.01)
        coordinator.start()
        await asyncio.sleep(0.1)
        delivered = channel.publish(ChangeEvent(type="INSERT", table="orders"))
        await asyncio.sleep(0.01)
        await coordinator.drain()
        await coordinator.stop()
        return delivered, coordinator

    delivered, coordinator = asyncio.run(scenario())
    assert delivered == 0
    assert calls == []
    assert not coordinator.realtime_subscribed


def test_polling_resumes_when_live_updates_are_switched_on(tmp_path):
    calls = []

    async def reload():
        calls.append("reload")

    async def scenario():
        coordinator, state, _, _ = make_coordinator(tmp_path, reload, live=False, interval=0.01)
        coordinator.start()
        await asyncio.sleep(0.05)
        before = len(calls)
        state.live_updates.set(True)
        await asyncio.sleep(0.1)
        await coordinator.drain()
        await coordinator.stop()
        return before, coordinator

    before, coordinator = asyncio.run(scenario())
    assert before == 0
    assert coordinator.triggers["poll"] >= 1
    assert len(calls) == coordinator.triggers["poll"]


def test_realtime_change_reloads_without_waiting_for_the_timer(tmp_path):
    calls = []

    async def reload():
        calls.append("reload")

    async def scenario():
        coordinator, _, channel, _ = make_coordinator(tmp_path, reload)
        coordinator.start()
        # Published from a worker thread, like the gateway does after a write
        await asyncio.to_thread(channel.publish, ChangeEvent(type="UPDATE", table="orders"))
        await asyncio.sleep(0.01)
        await coordinator.drain()
        other = channel.publish(ChangeEvent(type="UPDATE", table="products"))
        await coordinator.stop()
        return other, coordinator

    other, coordinator = asyncio.run(scenario())
    assert calls == ["reload"]
    assert coordinator.triggers["realtime"] == 1
    assert coordinator.triggers["poll"] == 0
    assert other == 0


def test_turning_live_updates_off_drops_the_realtime_subscription(tmp_path):
    async def reload():
        pass

    async def scenario():
        coordinator, state, channel, _ = make_coordinator(tmp_path, reload)
        coordinator.start()
        subscribed = channel.subscriber_count("orders")
        state.live_updates.set(False)
        after = channel.subscriber_count("orders")
        await coordinator.stop()
        return subscribed, after

    assert asyncio.run(scenario()) == (1, 0)


def test_refresh_key_change_triggers_a_reload(tmp_path):
    calls = []

    async def reload():
        calls.append("reload")

    async def scenario():
        coordinator, _, _, key = make_coordinator(tmp_path, reload, live=False)
        coordinator.start()
        key.set(1)
        await coordinator.drain()
        await coordinator.stop()
        key.set(2)
        return coordinator

    coordinator = asyncio.run(scenario())
    assert calls == ["reload"]
    assert coordinator.triggers["refresh-key"] == 1


def test_stop_cancels_in_flight_reloads(tmp_path):
    finished = []

    async def reload():
        await asyncio.sleep(0.5)
        finished.append("late")

    async def scenario():
        coordinator, _, channel, _ = make_coordinator(tmp_path, reload)
        coordinator.start()
        coordinator.trigger("mount")
        await asyncio.sleep(0.01)
        await coordinator.stop()
        await asyncio.sleep(0.6)
        return coordinator, channel

    coordinator, channel = asyncio.run(scenario())
    assert finished == []
    assert not coordinator.running
    assert channel.subscriber_count("orders") == 0
    assert coordinator.trigger("after-stop") is None


def test_failing_reload_does_not_stop_the_coordinator(tmp_path):
    calls = []

    async def reload():
        calls.append("reload")
        raise RuntimeError("boom")

    async def scenario():
        coordinator, _, _, _ = make_coordinator(tmp_path, reload)
        coordinator.start()
        coordinator.trigger("first")
        await coordinator.drain()
        coordinator.trigger("second")
        await coordinator.drain()
        running = coordinator.running
        await coordinator.stop()
        return running

    assert asyncio.run(scenario()) is True
    assert calls == ["reload", "reload"]
