from __future__ import annotations

import os
import tempfile

# Settings are read at import time; seed them before any app module loads.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("ALLOWED_ORIGIN", "http://localhost:3000")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("ANTHROPIC_MODEL", "claude-test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("TEMP_DIR", os.path.join(tempfile.gettempdir(), "summary-api-tests"))
