import asyncio

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeout

import config
import headless_browser
import runtime_perf
from perf_errors import MeasurementTimeoutError, ParseError
from runtime_perf import PerfResult, measure_performance, run_document

OK_PAYLOAD = {
    "renderTime": 3.2,
    "webVitals": {"ttfb": {"name": "TTFB", "value": 1.5}},
    "reactProfilerMetrics": {
        "id": "App",
        "phase": "mount",
        "actualDuration": 1.1,
        "baseDuration": 0.9,
        "startTime": 10.0,
        "commitTime": 11.4,
    },
    "error": None,
}


class _Page:
    def __init__(self, payload, wait_exc=None, content_exc=None, evaluate_exc=None):
        self._payload = payload
        self._wait_exc = wait_exc
        self._content_exc = content_exc
        self._evaluate_exc = evaluate_exc
        self.calls = []

    def set_default_timeout(self, timeout):
        self.calls.append(("default_timeout", timeout))

    async def set_viewport_size(self, viewport):
        self.calls.append(("viewport", viewport))

    async def set_content(self, html, wait_until=None, timeout=None):
        self.calls.append(("set_content", wait_until, timeout))
        if self._content_exc:
            raise self._content_exc

    async def wait_for_function(self, expression, timeout=None):
        self.calls.append(("wait_for_function", expression, timeout))
        if self._wait_exc:
            raise self._wait_exc

    async def evaluate(self, expression):
        self.calls.append(("evaluate",))
        if self._evaluate_exc:
            raise self._evaluate_exc
        return self._payload


class _Browser:
    def __init__(self, page):
        self.page = page
        self.closed = False

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True


class _Chromium:
    def __init__(self, browser, launch_exc=None):
        self.browser = browser
        self.launch_exc = launch_exc
        self.launch_kwargs = None

    async def launch(self, **kwargs):
        self.launch_kwargs = kwargs
        if self.launch_exc:
            raise self.launch_exc
        return self.browser


class _Playwright:
    def __init__(self, chromium):
        self.chromium = chromium
        self.stopped = False

    async def stop(self):
        self.stopped = True


class _Starter:
    def __init__(self, playwright):
        self.playwright = playwright

    async def start(self):
        return self.playwright


def _install(monkeypatch, page, launch_exc=None):
    browser = _Browser(page)
    playwright = _Playwright(_Chromium(browser, launch_exc))
    monkeypatch.setattr(headless_browser, "async_playwright", lambda: _Starter(playwright))
    return browser, playwright


def test_run_document_returns_result_and_closes_browser(monkeypatch):
    page = _Page(OK_PAYLOAD)
    browser, playwright = _install(monkeypatch, page)

    result = asyncio.run(run_document("<html></html>"))

    assert result.render_time == 3.2
    assert result.error is None
    assert result.ok
    assert result.react_profiler_metrics["id"] == "App"
    assert browser.closed
    assert playwright.stopped
    assert ("viewport", {"width": 1280, "height": 720}) in page.calls
    assert ("set_content", "networkidle", 600_000) in page.calls
    waits = [c for c in page.calls if c[0] == "wait_for_function"]
    assert waits[0][1] == runtime_perf.DONE_CONDITION
    assert waits[0][2] == 600_000
    assert playwright.chromium.launch_kwargs["timeout"] == config.PROTOCOL_TIMEOUT_MS
    assert playwright.chromium.launch_kwargs["headless"] is True


def test_wait_timeout_raises_and_closes_browser(monkeypatch):
    page = _Page(OK_PAYLOAD, wait_exc=PlaywrightTimeout("Timeout 600000ms exceeded."))
    browser, playwright = _install(monkeypatch, page)

    with pytest.raises(MeasurementTimeoutError) as exc_info:
        asyncio.run(run_document("<html></html>"))

    assert isinstance(exc_info.value, TimeoutError)
    assert browser.closed
    assert playwright.stopped
    assert ("evaluate",) not in page.calls


def test_load_timeout_raises_and_closes_browser(monkeypatch):
    page = _Page(OK_PAYLOAD, content_exc=PlaywrightTimeout("Timeout exceeded."))
    browser, playwright = _install(monkeypatch, page)

    with pytest.raises(MeasurementTimeoutError):
        asyncio.run(run_document("<html></html>"))
    assert browser.closed
    assert playwright.stopped


def test_extraction_failure_still_closes_browser(monkeypatch):
    page = _Page(OK_PAYLOAD, evaluate_exc=RuntimeError("Target closed"))
    browser, playwright = _install(monkeypatch, page)

    with pytest.raises(RuntimeError):
        asyncio.run(run_document("<html></html>"))
    assert browser.closed
    assert playwright.stopped


def test_launch_failure_stops_driver(monkeypatch):
    page = _Page(OK_PAYLOAD)
    browser, playwright = _install(monkeypatch, page, launch_exc=RuntimeError("no chromium"))

    with pytest.raises(RuntimeError):
        asyncio.run(run_document("<html></html>"))
    assert playwright.stopped
    assert not browser.closed


def test_parse_error_raised_before_browser_launch(monkeypatch):
    def _never():
        raise AssertionError("browser must not be launched")

    monkeypatch.setattr(headless_browser, "async_playwright", _never)
    with pytest.raises(ParseError):
        asyncio.run(measure_performance("export function App() { return <div>; }"))


def test_in_page_error_is_returned_as_data(monkeypatch):
    payload = {
        "renderTime": None,
        "webVitals": {},
        "reactProfilerMetrics": {},
        "error": {"message": "boom", "stack": "Error: boom\n    at App"},
    }
    page = _Page(payload)
    browser, playwright = _install(monkeypatch, page)

    result = asyncio.run(measure_performance("export function App() { throw new Error('boom'); }"))

    assert result.error["message"] == "boom"
    assert result.render_time is None
    assert not result.ok
    assert browser.closed
    html_loaded = [c for c in page.calls if c[0] == "set_content"]
    assert len(html_loaded) == 1


def test_measure_performance_sync(monkeypatch):
    page = _Page(OK_PAYLOAD)
    browser, _ = _install(monkeypatch, page)

    result = runtime_perf.measure_performance_sync("export function App() { return <div>Hi</div>; }")
    assert result.render_time == 3.2
    assert browser.closed


def test_perf_result_wire_shape():
    result = PerfResult.from_page(OK_PAYLOAD)
    assert result.to_dict() == OK_PAYLOAD

    empty = PerfResult.from_page(None)
    assert empty.to_dict() == {
        "renderTime": None,
        "webVitals": {},
        "reactProfilerMetrics": {},
        "error": None,
    }


def test_string_error_survives_round_trip():
    result = PerfResult.from_page({"renderTime": None, "error": "Uncaught ReferenceError: x is not defined"})
    assert result.error == "Uncaught ReferenceError: x is not defined"
    assert result.web_vitals == {}
