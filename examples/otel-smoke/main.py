import asyncio
import os
import random

from robust_fetch import LinearRetry, Response
from robust_fetch.otel_runtime import robust_fetch_traced_optional
from robust_fetch.otel_setup import init_metrics, init_tracer

# Enable tracing / metrics via env (can still be disabled by user)
os.environ.setdefault("ROBUST_FETCH_OTEL_ENABLED", "1")
os.environ.setdefault("ROBUST_FETCH_OTEL_METRICS_ENABLED", "1")

# Defaults for local collector
os.environ.setdefault("OTEL_EXPORTER_OTLP_ENDPOINT", "http://127.0.0.1:4317")


def flaky_transport(fail_prob: float):
    """
    In-process transport: answers 503 with probability ``fail_prob`` and
    sometimes stalls long enough to hit the per-attempt timeout.
    """

    async def send(target, options, signal):
        await asyncio.sleep(random.uniform(0.02, 0.15))
        if random.random() < 0.1:
            await asyncio.sleep(1.0)
        if random.random() < fail_prob:
            return Response(503, url=target)
        return Response(200, content=b'{"ok": true}', url=target)

    return send


async def main() -> None:
    exporter = os.getenv("ROBUST_FETCH_OTEL_EXPORTER", "http").lower()
    if exporter not in ("http", "grpc"):
        print(f"[robust-fetch] Unknown ROBUST_FETCH_OTEL_EXPORTER={exporter!r}, falling back to 'http'")
        exporter = "http"

    service_name = "robust-fetch-otel-smoke"
    init_tracer(service_name=service_name, exporter=exporter)
    init_metrics(service_name=service_name, exporter=exporter)

    n_ops = int(os.getenv("ROBUST_FETCH_SMOKE_OPS", "50"))
    fail_prob = float(os.getenv("ROBUST_FETCH_SMOKE_FAIL_PROB", "0.5"))
    print(f"[robust-fetch] running smoke: n_ops={n_ops}, fail_prob={fail_prob}, exporter={exporter}")

    for i in range(n_ops):
        res = await robust_fetch_traced_optional(
            f"https://smoke.invalid/op/{i}",
            timeout=0.5,
            retry=LinearRetry(attempts=2, delay=0.05),
            transport=flaky_transport(fail_prob),
            span_name="robust_fetch.smoke",
            base_attrs={"robust_fetch.demo_op_index": i},
        )
        if res.is_ok:
            print(f"[robust-fetch] op #{i} -> {res.value.status}")
        else:
            print(f"[robust-fetch] op #{i} failed: {res.error.kind.value} ({res.error})")

    print("[robust-fetch] smoke run complete")


if __name__ == "__main__":
    asyncio.run(main())
