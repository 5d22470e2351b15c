from __future__ import annotations

from pressmetrics.collectors.base import CollectorContext


async def collect_plugins(ctx: CollectorContext) -> str:
    """Plugin activation and update status, plus installed theme kinds.

    inactive = installed - active, and update availability is
    installed & has_update: the host's update feed may still list
    plugins that were deleted since it was fetched.
    """
    registry = ctx.host.plugins
    installed = set(registry.installed_plugins() or ())
    active = set(registry.active_plugins() or ())
    with_updates = set(registry.plugins_with_updates() or ())

    inactive = installed - active
    needing_update = installed & with_updates
    up_to_date = installed - needing_update

    block = ctx.block()

    plugins = ctx.metric("plugins_total")
    block.declare(plugins, "Number of active and inactive plugins.", "counter")
    block.add(plugins, {"status": "active"}, len(active))
    block.add(plugins, {"status": "inactive"}, len(inactive))
    block.add(plugins, {"status": "all"}, len(installed))

    updates = ctx.metric("plugins_update_total")
    block.declare(updates, "Plugin update status.", "counter")
    block.add(updates, {"status": "available"}, len(needing_update))
    block.add(updates, {"status": "uptodate"}, len(up_to_date))

    child = parent = 0
    for theme in ctx.host.themes.installed_themes() or ():
        if getattr(theme, "is_child", False):
            child += 1
        else:
            parent += 1

    themes = ctx.metric("themes_total")
    block.declare(themes, "Number of installed themes.", "counter")
    block.add(themes, {"type": "child"}, child)
    block.add(themes, {"type": "parent"}, parent)

    return block.render()
