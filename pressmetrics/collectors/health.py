"""Site health diagnostics.

Two sources, in order of preference:

  1. The host's own diagnostic subsystem, when it has one.  Its status
     vocabulary varies ("pass", "warning", "fail", ...) and is normalized
     to the three-tier good / recommended / critical set; categories are
     derived from the test identifier by keyword.
  2. A fixed battery of checks evaluated from host flags and runtime
     configuration.

Each test becomes one detail sample (good=1, recommended=0, critical=-1)
and feeds rollups per status and, for failing tests, per category.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from pressmetrics.collectors.base import CollectorContext
from pressmetrics.collectors.runtime import convert_to_bytes, version_parts
from pressmetrics.core.logging import log_collection_error
from pressmetrics.host.interfaces import HealthTestResult

logger = logging.getLogger(__name__)

Status = Literal["good", "recommended", "critical"]

STATUS_VALUES: dict[str, int] = {"good": 1, "recommended": 0, "critical": -1}

_STATUS_ALIASES: dict[str, Status] = {
    "good": "good",
    "pass": "good",
    "passed": "good",
    "ok": "good",
    "recommended": "recommended",
    "warning": "recommended",
    "warn": "recommended",
    "critical": "critical",
    "fail": "critical",
    "failed": "critical",
    "error": "critical",
}

# Security keywords are checked first and win on overlap ("https" vs "php").
SECURITY_KEYWORDS = ("security", "debug", "file_edit", "https", "ssl", "update")
PERFORMANCE_KEYWORDS = ("performance", "php", "runtime", "memory", "cache", "database")


@dataclass(frozen=True, slots=True)
class HealthThresholds:
    runtime_critical_below: str = "3.9"
    runtime_recommended_below: str = "3.11"
    memory_critical_below: int = 128 * 1024 * 1024
    memory_recommended_below: int = 256 * 1024 * 1024


DEFAULT_THRESHOLDS = HealthThresholds()


@dataclass(frozen=True, slots=True)
class HealthDetail:
    test: str
    status: Status
    category: str
    description: str


def normalize_status(raw: str | None) -> Status:
    # Unknown vocabulary is treated as a soft failure rather than dropped
    return _STATUS_ALIASES.get((raw or "").strip().lower(), "recommended")


def categorize(test_name: str) -> str:
    name = test_name.lower()
    if any(keyword in name for keyword in SECURITY_KEYWORDS):
        return "security"
    if any(keyword in name for keyword in PERFORMANCE_KEYWORDS):
        return "performance"
    return "general"


def _tiered(value: float, critical_below: float, recommended_below: float) -> Status:
    if value < critical_below:
        return "critical"
    if value < recommended_below:
        return "recommended"
    return "good"


def from_host_results(results: list[HealthTestResult]) -> list[HealthDetail]:
    details = []
    for result in results:
        if not result.test:
            continue
        details.append(
            HealthDetail(
                test=result.test,
                status=normalize_status(result.status),
                category=categorize(result.test),
                description=result.description,
            )
        )
    return details


async def builtin_checks(
    ctx: CollectorContext, thresholds: HealthThresholds = DEFAULT_THRESHOLDS
) -> list[HealthDetail]:
    runtime = ctx.host.runtime
    details: list[HealthDetail] = []

    if runtime.file_editing_disabled():
        details.append(
            HealthDetail("file_editing", "good", "security", "File editing is properly disabled")
        )
    else:
        details.append(
            HealthDetail(
                "file_editing",
                "recommended",
                "security",
                "File editing should be disabled in production environments",
            )
        )

    if runtime.debug_enabled():
        details.append(
            HealthDetail(
                "debug_mode", "recommended", "security", "Debug mode should be disabled in production"
            )
        )
    else:
        details.append(
            HealthDetail("debug_mode", "good", "security", "Debug mode is properly disabled")
        )

    installed = set(ctx.host.plugins.installed_plugins() or ())
    pending = len(installed & set(ctx.host.plugins.plugins_with_updates() or ()))
    if pending:
        details.append(
            HealthDetail(
                "plugin_updates", "recommended", "security", f"{pending} plugin updates available"
            )
        )
    else:
        details.append(
            HealthDetail("plugin_updates", "good", "security", "All plugins are up to date")
        )

    version = runtime.runtime_version() or "0"
    version_status = _tiered_version(version, thresholds)
    details.append(
        HealthDetail(
            "runtime_version",
            version_status,
            "performance",
            {
                "critical": f"Runtime version {version} is outdated and unsupported",
                "recommended": (
                    f"Runtime version {version} should be updated to "
                    f"{thresholds.runtime_recommended_below}+"
                ),
                "good": f"Runtime version {version} is current",
            }[version_status],
        )
    )

    memory_limit = runtime.config_value("memory_limit")
    memory_bytes = convert_to_bytes(memory_limit)
    if memory_bytes < 0:
        # -1 means "no limit"
        memory_status: Status = "good"
    else:
        memory_status = _tiered(
            memory_bytes,
            thresholds.memory_critical_below,
            thresholds.memory_recommended_below,
        )
    details.append(
        HealthDetail(
            "memory_limit",
            memory_status,
            "performance",
            {
                "critical": f"Memory limit {memory_limit} is too low",
                "recommended": f"Memory limit {memory_limit} could be increased",
                "good": f"Memory limit {memory_limit} is adequate",
            }[memory_status],
        )
    )

    try:
        reachable = await ctx.host.storage.ping()
    except Exception as exc:
        log_collection_error(
            logger, "Database ping failed", {"error": str(exc)}, verbose=ctx.verbose
        )
        reachable = False
    details.append(
        HealthDetail(
            "database_connection",
            "good" if reachable else "critical",
            "general",
            "Database connection is working properly"
            if reachable
            else "Database connection has errors",
        )
    )

    if runtime.is_https():
        details.append(HealthDetail("https_status", "good", "security", "Site is using HTTPS"))
    else:
        details.append(
            HealthDetail(
                "https_status",
                "recommended",
                "security",
                "Site should use HTTPS for better security",
            )
        )

    return details


def _tiered_version(version: str, thresholds: HealthThresholds) -> Status:
    current = version_parts(version)
    if current < version_parts(thresholds.runtime_critical_below):
        return "critical"
    if current < version_parts(thresholds.runtime_recommended_below):
        return "recommended"
    return "good"


async def gather_health_details(ctx: CollectorContext) -> list[HealthDetail]:
    diagnostics = ctx.host.health
    if diagnostics.available():
        try:
            details = from_host_results(list(diagnostics.run_tests() or ()))
        except Exception as exc:
            log_collection_error(
                logger,
                "Host diagnostics failed, using built-in checks",
                {"error": str(exc)},
                verbose=ctx.verbose,
            )
        else:
            if details:
                return details
    return await builtin_checks(ctx)


def rollup(details: list[HealthDetail]) -> dict[str, int]:
    counts = {
        "good": 0,
        "recommended": 0,
        "critical": 0,
        "security": 0,
        "performance": 0,
        "total_failed": 0,
    }
    for detail in details:
        counts[detail.status] += 1
        if detail.status == "good":
            continue
        counts["total_failed"] += 1
        if detail.category in ("security", "performance"):
            counts[detail.category] += 1
    return counts


async def collect_health(ctx: CollectorContext) -> str:
    details = await gather_health_details(ctx)
    if not details:
        return ""

    block = ctx.block()

    totals = ctx.metric("health_check_total")
    block.declare(totals, "Site health check results.", "gauge")
    for category, count in rollup(details).items():
        block.add(totals, {"category": category}, count)

    detail_name = ctx.metric("health_check_detail_info")
    block.declare(detail_name, "Individual health check test results.", "gauge")
    for detail in details:
        block.add(
            detail_name,
            {
                "test_name": detail.test,
                "status": detail.status,
                "category": detail.category,
                "description": detail.description,
            },
            STATUS_VALUES[detail.status],
        )
    return block.render()
