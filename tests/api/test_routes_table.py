from __future__ import annotations

import pytest

from pressmetrics.api.routes_table import REST_METRICS_PATH, is_safe_path, match_metrics_route


@pytest.mark.parametrize(
    ("path", "params", "expected"),
    [
        ("/anything", {"pressmetrics": ""}, "query_marker"),
        ("/anything", {"pressmetrics_metrics": "1"}, "query_marker"),
        ("/metrics", {}, "clean_path"),
        ("/pressmetrics/", {}, "clean_path"),
        ("/pressmetrics/metrics", {}, "clean_path"),
        ("/index", {"pressmetrics_endpoint": "metrics"}, "rewrite_var"),
        (REST_METRICS_PATH, {}, "rest"),
        (REST_METRICS_PATH + "/", {}, "rest"),
    ],
)
def test_route_shapes(path: str, params: dict[str, str], expected: str) -> None:
    assert match_metrics_route(path, params) == expected


def test_query_marker_checked_first() -> None:
    assert match_metrics_route("/metrics", {"pressmetrics": ""}) == "query_marker"


@pytest.mark.parametrize(
    ("path", "params"),
    [
        ("/blog/post", {}),
        ("/metrics/extra", {}),
        ("/index", {"pressmetrics_endpoint": "other"}),
        ("/metrics.txt", {}),
        ("/wp-login.php", {"pressmetrics": ""}),
    ],
)
def test_non_matching(path: str, params: dict[str, str]) -> None:
    assert match_metrics_route(path, params) is None


def test_is_safe_path() -> None:
    assert is_safe_path("/")
    assert is_safe_path("/a/b_c-d/1")
    assert not is_safe_path("/a/../b")
    assert not is_safe_path("/a%20b")
