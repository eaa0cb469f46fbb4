import asyncio

from medscan.core.debounce import Debouncer

from conftest import run


def test_rearming_runs_only_the_last_callback():
    fired = []

    async def record(value):
        fired.append(value)

    async def scenario():
        debouncer = Debouncer(0.02)
        for value in ("p", "pa", "pan"):
            debouncer.arm(record, value)
            await asyncio.sleep(0.005)
        assert debouncer.pending
        await debouncer.settle()
        assert not debouncer.pending

    run(scenario())
    assert fired == ["pan"]


def test_cancel_prevents_firing():
    fired = []

    async def record(value):
        fired.append(value)

    async def scenario():
        debouncer = Debouncer(0.01)
        debouncer.arm(record, "x")
        debouncer.cancel()
        await asyncio.sleep(0.03)
        await debouncer.settle()

    run(scenario())
    assert fired == []


def test_aclose_cancels_running_callbacks():
    started = []

    async def slow(value):
        started.append(value)
        await asyncio.sleep(10)

    async def scenario():
        debouncer = Debouncer(0.001)
        debouncer.arm(slow, "x")
        while not started:
            await asyncio.sleep(0.001)
        await asyncio.wait_for(debouncer.aclose(), timeout=1)

    run(scenario())
    assert started == ["x"]
