"""
web_vitals.py - Web Vitals wiring for the harness page (CLS, LCP, INP, FID, TTFB).

Usage:
    # Inside the harness document, after the web-vitals bundle has loaded
    script = observer_script("window.__RESULT__")

    # After a measurement
    values = summarize_vitals(result.web_vitals)
"""

from __future__ import annotations

from typing import Any, Mapping

# Result slot -> web-vitals 3.x registration function
VITALS_OBSERVERS = (
    ("cls", "onCLS"),
    ("lcp", "onLCP"),
    ("inp", "onINP"),
    ("fid", "onFID"),
    ("ttfb", "onTTFB"),
)

VITAL_NAMES = tuple(name for name, _ in VITALS_OBSERVERS)


def observer_script(record: str) -> str:
    """JS lines registering one observer per vital, each writing into `<record>.webVitals`."""
    lines = [
        f"webVitals.{fn}((metric) => {{ {record}.webVitals.{name} = metric; }});"
        for name, fn in VITALS_OBSERVERS
    ]
    return "\n".join(lines)


def summarize_vitals(web_vitals: Mapping[str, Any] | None) -> dict[str, float | None]:
    """
    Flatten metric objects to their numeric value.
    Vitals that never fired (common for INP/FID without user input) map to None.
    """
    summary: dict[str, float | None] = {}
    for name in VITAL_NAMES:
        metric = (web_vitals or {}).get(name)
        value = metric.get("value") if isinstance(metric, dict) else None
        summary[name] = float(value) if isinstance(value, (int, float)) else None
    return summary
