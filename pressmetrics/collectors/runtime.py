"""Static-tier collectors: platform version and runtime configuration."""

from __future__ import annotations

import re

from pressmetrics.collectors.base import CollectorContext

RUNTIME_CONFIG_KEYS = (
    "max_input_vars",
    "max_execution_time",
    "memory_limit",
    "max_input_time",
    "upload_max_filesize",
    "post_max_size",
)

# config key -> (metric suffix, label key, help text)
DISPLAY_METRICS = {
    "memory_limit": ("memory_limit_info", "memory_limit", "Memory limit for table display."),
    "upload_max_filesize": (
        "upload_max_info",
        "upload_max",
        "Upload max filesize for table display.",
    ),
    "post_max_size": ("post_max_info", "post_max", "Post max size for table display."),
    "max_execution_time": (
        "exec_time_info",
        "exec_time",
        "Max execution time for table display.",
    ),
}

_SIZE_MULTIPLIERS = {"K": 1024, "M": 1024**2, "G": 1024**3}
_LEADING_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)")


def convert_to_bytes(size: str | None) -> float:
    """Convert shorthand like "128M", "1g" or "512K" to a byte count.

    A value without a recognised suffix is taken as bytes.  Unparsable
    input yields 0.
    """
    if size is None:
        return 0.0
    text = str(size).strip()
    if not text:
        return 0.0

    multiplier = _SIZE_MULTIPLIERS.get(text[-1].upper())
    number = text[:-1] if multiplier else text
    match = _LEADING_NUMBER.match(number.strip())
    if match is None:
        return 0.0
    return float(match.group(0)) * (multiplier or 1)


def version_parts(version: str) -> tuple[int, int, int]:
    """Leading numeric components of a version string, padded to three."""
    numbers = [int(n) for n in re.findall(r"\d+", version.split("-", 1)[0])[:3]]
    while len(numbers) < 3:
        numbers.append(0)
    return numbers[0], numbers[1], numbers[2]


async def collect_version(ctx: CollectorContext) -> str:
    runtime = ctx.host.runtime
    name = ctx.metric("version")
    block = ctx.block()
    block.declare(name, "Platform version information.", "gauge")
    block.add(
        name,
        {
            "version": runtime.platform_version() or "unknown",
            "update_available": "1" if runtime.core_update_available() else "0",
        },
        1,
    )
    return block.render()


async def collect_runtime(ctx: CollectorContext) -> str:
    runtime = ctx.host.runtime
    version = runtime.runtime_version() or "0.0.0"
    major, minor, release = version_parts(version)

    block = ctx.block()

    info = ctx.metric("runtime_info")
    block.declare(info, "Runtime configuration information.", "gauge")
    # Numeric id keeps "newer than" comparisons possible in PromQL
    block.add(info, {"type": "version", "label": version}, major * 10000 + minor * 100 + release)
    block.add(info, {"type": "major_version", "label": str(major)}, major)
    block.add(info, {"type": "minor_version", "label": str(minor)}, minor)
    block.add(info, {"type": "release_version", "label": str(release)}, release)

    version_info = ctx.metric("runtime_version_info")
    block.declare(version_info, "Runtime version as readable string.", "gauge")
    block.add(version_info, {"runtime_version": version}, 1)

    config = ctx.metric("config_info")
    block.declare(config, "Platform and runtime configuration values.", "gauge")
    for suffix, _, help_text in DISPLAY_METRICS.values():
        block.declare(ctx.metric(suffix), help_text, "gauge")

    for key in RUNTIME_CONFIG_KEYS:
        raw = runtime.config_value(key)
        if raw is None:
            continue
        numeric = convert_to_bytes(raw)
        block.add(info, {"type": key, "label": raw}, numeric)
        block.add(config, {"config": key, "value": raw}, numeric)
        if key in DISPLAY_METRICS:
            suffix, label_key, _ = DISPLAY_METRICS[key]
            block.add(ctx.metric(suffix), {label_key: raw}, 1)

    return block.render()
