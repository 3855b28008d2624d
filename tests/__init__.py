import os

# The app modules build their engine at import time; tests swap in their own SQLite engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
