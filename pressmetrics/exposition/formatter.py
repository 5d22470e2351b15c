"""Prometheus text exposition rendering.

Every line the exporter emits goes through format_sample().  It is the
only place that knows the grammar:

  # HELP <name> <description>
  # TYPE <name> counter|gauge
  <name>{site="<site>",k="v",...} <value>

Label values come straight from the host (site names, plugin slugs,
health-check descriptions) and cannot be trusted to be well-formed, so
sanitization happens here rather than in each collector.  Nothing in
this module raises: a bad name drops the line, a bad value becomes 0.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

logger = logging.getLogger(__name__)

MetricType = Literal["counter", "gauge"]

MAX_LABEL_VALUE_LENGTH = 1000

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_:]")
_INVALID_LABEL_KEY_CHARS = re.compile(r"[^a-zA-Z0-9_]")
_NON_PRINTABLE = re.compile(r"[^\x20-\x7e]")

_ESCAPES = str.maketrans(
    {
        "\\": "\\\\",
        '"': '\\"',
        "\n": "\\n",
        "\r": "\\r",
        "\t": "\\t",
    }
)


def sanitize_metric_name(name: object) -> str:
    return _INVALID_NAME_CHARS.sub("_", str(name))


def sanitize_label_key(key: object) -> str:
    return _INVALID_LABEL_KEY_CHARS.sub("_", str(key))


def escape_label_value(value: object) -> str:
    text = "" if value is None else str(value)
    if len(text) > MAX_LABEL_VALUE_LENGTH:
        logger.debug("Label value truncated original_length=%d", len(text))
        text = text[:MAX_LABEL_VALUE_LENGTH] + "..."
    return _NON_PRINTABLE.sub("", text.translate(_ESCAPES))


def coerce_value(value: object) -> float | None:
    """Return value as a finite float, or None when it is not a real number.

    Booleans, NaN and infinities (including the strings "nan" and "inf")
    count as non-numeric.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def render_value(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def format_sample(
    name: str,
    labels: Mapping[str, object] | None = None,
    value: object = 1,
    *,
    site: str,
) -> str:
    """Render one sample line, including the trailing newline.

    The site label always comes first; additional labels keep the
    caller's order.  Returns "" when the name sanitizes to nothing.
    """
    metric_name = sanitize_metric_name(name)
    if not metric_name:
        logger.error("Invalid metric name provided original=%r", name)
        return ""

    numeric = coerce_value(value)
    if numeric is None:
        logger.warning(
            "Non-numeric value provided for metric=%s value=%r", metric_name, value
        )
        numeric = 0.0

    parts = [f'site="{escape_label_value(site)}"']
    for key, label_value in (labels or {}).items():
        clean_key = sanitize_label_key(key)
        if clean_key:
            parts.append(f'{clean_key}="{escape_label_value(label_value)}"')

    return f"{metric_name}{{{','.join(parts)}}} {render_value(numeric)}\n"


def format_header(name: str, help_text: str, metric_type: MetricType) -> str:
    metric_name = sanitize_metric_name(name)
    # HELP text escapes only backslash and newline in the exposition grammar
    help_clean = help_text.replace("\\", "\\\\").replace("\n", "\\n")
    return f"# HELP {metric_name} {help_clean}\n# TYPE {metric_name} {metric_type}\n"


@dataclass
class MetricBlock:
    """Ordered samples for one collector, grouped by metric name.

    Samples added for a name that already has a header are appended to
    that name's group, so output stays contiguous per name even when a
    collector interleaves its calls.
    """

    site: str
    _order: list[str] = field(default_factory=list)
    _headers: dict[str, str] = field(default_factory=dict)
    _lines: dict[str, list[str]] = field(default_factory=dict)

    def declare(self, name: str, help_text: str, metric_type: MetricType) -> None:
        if name in self._headers:
            return
        self._order.append(name)
        self._headers[name] = format_header(name, help_text, metric_type)
        self._lines[name] = []

    def add(
        self,
        name: str,
        labels: Mapping[str, object] | None = None,
        value: object = 1,
    ) -> None:
        if name not in self._headers:
            raise KeyError(f"metric {name!r} added before it was declared")
        line = format_sample(name, labels, value, site=self.site)
        if line:
            self._lines[name].append(line)

    def render(self) -> str:
        return "".join(
            self._headers[name] + "".join(self._lines[name]) for name in self._order
        )

    def __len__(self) -> int:
        return sum(len(lines) for lines in self._lines.values())
