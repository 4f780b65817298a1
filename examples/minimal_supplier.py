import asyncio

from feeds.queue_source import QueueSource
from prefetcher.config import SupplierConfig
from prefetcher.supplier import PrefetchingSupplier
from prefetcher.updates import Drop, Put
from prefetcher.utils.logger import init_logging

# ------------------------------------------------------------------------------
# 1. Example config
# ------------------------------------------------------------------------------
config = SupplierConfig.from_dict({
    "max_batch_size": 3,
    "max_latency_ms": 200,
})

initial = {"EURUSD": 1.08, "USDJPY": 151.2}


# ------------------------------------------------------------------------------
# 2. Feed updates and read snapshots
# ------------------------------------------------------------------------------
async def main() -> None:
    source = QueueSource()
    async with PrefetchingSupplier.from_config(initial, source, config, name="fx") as supplier:
        print("initial :", dict(supplier.get()))

        # three updates: the window closes on size
        await source.offer(Put("EURUSD", 1.09))
        await source.offer(Put("GBPUSD", 1.27))
        await source.offer(Drop("USDJPY"))
        await asyncio.sleep(0.05)
        print("size    :", dict(supplier.get()), supplier.last_successful_update())

        # one update: the window closes on max_latency
        await source.offer(Put("EURUSD", 1.10))
        await asyncio.sleep(0.3)
        print("latency :", dict(supplier.get()), supplier.last_successful_update())

        source.close()
        await supplier.wait_closed()
        print("state   :", supplier.state.value, supplier.stats)


if __name__ == "__main__":
    init_logging()
    asyncio.run(main())
