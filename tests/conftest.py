import os

os.environ.setdefault("CLEANUP_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./dropbin-test.db")
