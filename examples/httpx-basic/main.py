from __future__ import annotations
import asyncio
import logging

from robust_fetch import CancellationToken, ExponentialRetry, retry_on_status, robust_fetch


async def main():
    logging.basicConfig(level=logging.INFO)
    token = CancellationToken()

    # give up entirely after 10s, whatever attempt we're on
    asyncio.get_running_loop().call_later(10.0, token.cancel, "demo deadline")

    res = await robust_fetch(
        "https://httpbin.org/status/503,200",
        timeout=2.0,
        retry=ExponentialRetry(
            attempts=4,
            base_delay=0.2,
            backoff_factor=2.0,
            max_delay=2.0,
            should_retry=retry_on_status(),
        ),
        cancellation=token,
        headers={"Accept": "application/json"},
    )
    if res.is_ok:
        print("status:", res.value.status)
    else:
        print("failed:", res.error.kind.value, "-", res.error)


if __name__ == "__main__":
    asyncio.run(main())
