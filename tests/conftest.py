"""Root conftest — shared test configuration."""

import os

# Ensure tests don't accidentally use a real API key or a developer's .env endpoint
os.environ["WATCHTOWER_API_KEY"] = "wt-test-fake-key"
os.environ.setdefault("WATCHTOWER_API_BASE_URL", "http://watchtower.test")
