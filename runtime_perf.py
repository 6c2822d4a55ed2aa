"""
runtime_perf.py - Measure how long a React component takes to mount in headless Chromium.

Usage:
    result = await measure_performance(source)
    # or, outside an event loop
    result = measure_performance_sync(source)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from playwright.async_api import TimeoutError as PlaywrightTimeout

import config
from component_transpiler import transpile
from harness import RESULT_VAR, build_harness_document
from headless_browser import HeadlessBrowser
from perf_errors import MeasurementTimeoutError

logger = logging.getLogger(__name__)

DONE_CONDITION = (
    f"{RESULT_VAR} !== undefined && "
    f"({RESULT_VAR}.renderTime !== null || {RESULT_VAR}.error !== null)"
)

# Error objects and PerformanceEntry lists don't serialize as plain objects;
# normalise in the page before the value crosses over.
EXTRACT_RESULT = f"""() => {{
    const r = {RESULT_VAR};
    let error = r.error;
    if (error instanceof Error) {{
        error = {{ message: error.message, stack: error.stack }};
    }}
    return JSON.parse(JSON.stringify({{
        renderTime: r.renderTime,
        webVitals: r.webVitals,
        reactProfilerMetrics: r.reactProfilerMetrics,
        error: error === undefined ? null : error
    }}));
}}"""


@dataclass
class PerfResult:
    render_time: Optional[float] = None
    web_vitals: dict[str, Any] = field(default_factory=dict)
    react_profiler_metrics: dict[str, Any] = field(default_factory=dict)
    error: Union[dict[str, Any], str, None] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.render_time is not None

    @classmethod
    def from_page(cls, payload: dict | None) -> "PerfResult":
        payload = payload or {}
        render_time = payload.get("renderTime")
        return cls(
            render_time=float(render_time) if render_time is not None else None,
            web_vitals=dict(payload.get("webVitals") or {}),
            react_profiler_metrics=dict(payload.get("reactProfilerMetrics") or {}),
            error=payload.get("error"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "renderTime": self.render_time,
            "webVitals": self.web_vitals,
            "reactProfilerMetrics": self.react_profiler_metrics,
            "error": self.error,
        }


async def run_document(html: str) -> PerfResult:
    """Load a harness document in a fresh browser and read back window.__RESULT__."""
    async with HeadlessBrowser(timeout_ms=config.PROTOCOL_TIMEOUT_MS) as browser:
        page = await browser.new_page(config.VIEWPORT)

        try:
            await page.set_content(html, wait_until="networkidle", timeout=config.PROTOCOL_TIMEOUT_MS)
        except PlaywrightTimeout as e:
            logger.warning("Timeout loading harness document")
            raise MeasurementTimeoutError("harness document did not finish loading") from e

        try:
            await page.wait_for_function(DONE_CONDITION, timeout=config.RENDER_TIMEOUT_MS)
        except PlaywrightTimeout as e:
            logger.warning(f"No render result after {config.RENDER_TIMEOUT_MS} ms")
            raise MeasurementTimeoutError(
                f"component did not finish rendering within {config.RENDER_TIMEOUT_MS} ms"
            ) from e

        payload = await page.evaluate(EXTRACT_RESULT)

    return PerfResult.from_page(payload)


async def measure_performance(code: str) -> PerfResult:
    # Parse/transpile failures surface here, before any browser is launched.
    transpiled = await asyncio.to_thread(transpile, code)
    html = build_harness_document(transpiled)
    logger.debug(f"Harness document is {len(html)} chars")

    try:
        result = await run_document(html)
    except Exception as e:
        logger.error(f"Measurement aborted: {e}")
        raise

    if result.error is not None:
        logger.info("Component reported an error while rendering")
    else:
        logger.info(f"Render time: {result.render_time} ms")
    return result


def measure_performance_sync(code: str) -> PerfResult:
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    return asyncio.run(measure_performance(code))
