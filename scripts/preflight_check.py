#!/usr/bin/env python3
import sys
import os

print("Running preflight import check...")
try:
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

    import hazardbot.main
    print("Import hazardbot.main: OK")

    import hazardbot.queue.jobs
    print("Import hazardbot.queue.jobs: OK")

    from hazardbot.core.prompts import hazard_categories
    from hazardbot.settings import settings
    cats = hazard_categories(settings.HAZARD_CATEGORIES)
    print(f"Hazard categories configured: {len(cats)}")

    if settings.STORE_BACKEND == "redis":
        from hazardbot.store.redis_conn import get_redis
        get_redis().ping()
        print(f"Redis reachable at {settings.REDIS_URL}: OK")

    print("Preflight check passed.")
    sys.exit(0)
except Exception as e:
    print(f"Preflight check FAILED: {e}")
    import traceback
    traceback.print_exc()
    sys.exit(1)
