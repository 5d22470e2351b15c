from __future__ import annotations

from pressmetrics.collectors.base import CollectorContext, as_count, mapping_or_empty


async def collect_users(ctx: CollectorContext) -> str:
    """One sample per role, plus role="total" as reported by the host."""
    counts = ctx.host.users.count_users()
    name = ctx.metric("users_total")

    block = ctx.block()
    block.declare(name, "Number of users per role.", "counter")
    if counts is not None:
        for role, count in mapping_or_empty(counts.by_role).items():
            block.add(name, {"role": role}, as_count(count))
    block.add(name, {"role": "total"}, as_count(getattr(counts, "total", 0)))
    return block.render()
