"""Harness document: the page that mounts the component and fills window.__RESULT__."""

from __future__ import annotations

import re
from string import Template

import config
from web_vitals import observer_script

RESULT_VAR = "window.__RESULT__"

_DOCUMENT = Template("""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>React Performance Test</title>
    <script crossorigin src="$react_url"></script>
    <script crossorigin src="$react_dom_url"></script>
    <script src="$web_vitals_url"></script>
    <style>
        body { margin: 0; }
        #root { padding: 20px; }
    </style>
</head>
<body>
    <div id="root"></div>
    <script>
        $result = {
            renderTime: null,
            webVitals: {},
            reactProfilerMetrics: {},
            error: null
        };

        // Terminal slot: null -> value once, first writer wins.
        window.__recordError = function (error) {
            if ($result.error === null) {
                $result.error = error;
            }
        };

$vitals

        try {
            // Module shims for the lowered import/export statements.
            const exports = {};
            const require = (name) => {
                throw new Error("Cannot find module '" + name + "'");
            };

$component_code

            const AppComponent =
                exports.$component ||
                (typeof $component !== 'undefined' && $component) ||
                exports.default ||
                (() => React.createElement('div', null, 'No $component component exported'));

            const root = ReactDOM.createRoot(document.getElementById('root'), {
                onUncaughtError: (error, errorInfo) => {
                    window.__recordError(error);
                }
            });

            const renderStart = performance.now();

            ReactDOM.flushSync(() => {
                root.render(
                    React.createElement(React.Profiler, {
                        id: '$component',
                        onRender: (id, phase, actualDuration, baseDuration, startTime, commitTime) => {
                            const metrics = $result.reactProfilerMetrics;
                            metrics.id = id;
                            metrics.phase = phase;
                            metrics.actualDuration = actualDuration;
                            metrics.baseDuration = baseDuration;
                            metrics.startTime = startTime;
                            metrics.commitTime = commitTime;
                        }
                    }, React.createElement(AppComponent))
                );
            });

            const renderEnd = performance.now();

            if ($result.error === null) {
                $result.renderTime = renderEnd - renderStart;
            }
        } catch (error) {
            console.error('Error rendering component:', error);
            window.__recordError({
                message: error && error.message !== undefined ? error.message : String(error),
                stack: error && error.stack !== undefined ? error.stack : null
            });
        }
    </script>
    <script>
        window.onerror = function (message, url, lineNumber) {
            window.__recordError(String(message));
        };
    </script>
</body>
</html>
""")


def _indent(code: str, prefix: str) -> str:
    return "\n".join(prefix + line if line.strip() else line for line in code.splitlines())


def escape_script_body(code: str) -> str:
    # "</script" would end the inline block early; "<\/script" means the same inside JS literals.
    return re.sub(r"</(script)", r"<\\/\1", code, flags=re.I)


def build_harness_document(transpiled: str) -> str:
    return _DOCUMENT.substitute(
        react_url=config.REACT_SCRIPT_URL,
        react_dom_url=config.REACT_DOM_SCRIPT_URL,
        web_vitals_url=config.WEB_VITALS_SCRIPT_URL,
        result=RESULT_VAR,
        vitals=_indent(observer_script(RESULT_VAR), " " * 8),
        component=config.COMPONENT_NAME,
        component_code=escape_script_body(transpiled),
    )
