"""Global pytest configuration."""

import os

# Tests run against in-memory stores and offline providers unless a test opts in
for _var in ("DATABASE_URL", "REDIS_URL", "OPENAI_API_KEY", "ADMIN_TOKEN", "RETRIEVAL_MODE"):
    os.environ.pop(_var, None)
