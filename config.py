import os

# Timeouts (ms)
PROTOCOL_TIMEOUT_MS = 600_000
RENDER_TIMEOUT_MS = 600_000

# Page
VIEWPORT = {"width": 1280, "height": 720}
COMPONENT_NAME = "App"

# Runtime bundles loaded by the harness page
REACT_SCRIPT_URL = "https://unpkg.com/react@18/umd/react.development.js"
REACT_DOM_SCRIPT_URL = "https://unpkg.com/react-dom@18/umd/react-dom.development.js"
WEB_VITALS_SCRIPT_URL = "https://unpkg.com/web-vitals@3.0.0/dist/web-vitals.iife.js"

# Modules provided as page globals instead of imports
FRAMEWORK_MODULES = frozenset({"react", "react-dom"})

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--font-render-hinting=none",
]

# Logging
LOG_LEVEL = os.getenv("RUNTIME_PERF_LOG_LEVEL", "INFO").upper()
