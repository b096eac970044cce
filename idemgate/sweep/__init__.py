"""
Sweep — periodic purge of expired ledger records.

    from idemgate import sweep as W

    sweeper = W.ExpirySweeper(ledger, batch_size=500, interval=timedelta(minutes=1))
    purged = await sweeper.sweep_once()

    stop = asyncio.Event()
    task = asyncio.create_task(sweeper.run(stop))
    ...
    stop.set()
    await task
"""

from idemgate.sweep._sweeper import ExpirySweeper

__all__ = ("ExpirySweeper",)
