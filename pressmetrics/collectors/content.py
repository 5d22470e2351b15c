"""Content collectors: posts, pages, comments, taxonomies and media."""

from __future__ import annotations

import logging

from pressmetrics.collectors.base import (
    CollectorContext,
    as_count,
    is_numeric,
    mapping_or_empty,
)
from pressmetrics.core.logging import log_collection_error

logger = logging.getLogger(__name__)

# Statuses polled per content type; "all" is their sum.
POLLED_STATUSES = (("published", "publish"), ("draft", "draft"))

# Host comment-count fields renamed to stable label values.
COMMENT_STATUS_LABELS = {
    "awaiting_moderation": "moderated",
    "post-trashed": "post_trashed",
}
COMMENT_TOTAL_FIELD = "total_comments"

MEDIA_COUNT_TTL = 300


async def collect_posts(ctx: CollectorContext) -> str:
    block = ctx.block()
    for post_type, metric, help_text in (
        ("post", "posts_total", "Number of posts."),
        ("page", "pages_total", "Number of pages."),
    ):
        name = ctx.metric(metric)
        counts = mapping_or_empty(ctx.host.content.count_posts(post_type))
        block.declare(name, help_text, "counter")

        total = 0
        for label, host_status in POLLED_STATUSES:
            count = as_count(counts.get(host_status))
            total += count
            block.add(name, {"status": label}, count)
        block.add(name, {"status": "all"}, total)
    return block.render()


async def collect_content(ctx: CollectorContext) -> str:
    block = ctx.block()

    comments = ctx.metric("comments_total")
    block.declare(comments, "Total number of comments by status.", "counter")
    for status, count in mapping_or_empty(ctx.host.comments.count_comments()).items():
        if status == COMMENT_TOTAL_FIELD or not is_numeric(count):
            continue
        label = COMMENT_STATUS_LABELS.get(status, status)
        block.add(comments, {"status": label}, as_count(count))

    categories = ctx.metric("categories_total")
    block.declare(categories, "Total number of categories.", "counter")
    block.add(categories, None, as_count(ctx.host.taxonomies.count_terms("category")))

    media = ctx.metric("media_total")
    block.declare(media, "Total number of media items.", "counter")
    block.add(media, None, await media_count(ctx))

    tags = ctx.metric("tags_total")
    block.declare(tags, "Total number of tags.", "counter")
    block.add(tags, None, as_count(ctx.host.taxonomies.count_terms("post_tag")))

    return block.render()


async def media_count(ctx: CollectorContext) -> int:
    """Attachment count, memoised for MEDIA_COUNT_TTL seconds.

    Sums every attachment status first; when that yields nothing, falls
    back to the host's slower listing count.
    """
    memo_key = f"{ctx.cache_prefix}:media_count"
    if ctx.store is not None:
        cached = await ctx.store.get(memo_key)
        if cached is not None:
            return as_count(cached)

    by_status = mapping_or_empty(ctx.host.content.count_posts("attachment"))
    count = sum(as_count(v) for v in by_status.values())
    if count == 0:
        try:
            count = as_count(ctx.host.content.count_attachments_listing())
        except Exception as exc:
            log_collection_error(
                logger,
                "Attachment listing failed",
                {"error": str(exc)},
                verbose=ctx.verbose,
            )

    if ctx.store is not None:
        await ctx.store.set(memo_key, str(count), MEDIA_COUNT_TTL)
    return count
