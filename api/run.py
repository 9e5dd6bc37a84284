# api/run.py
# Launcher for the FastAPI app.
# - Prints a banner on start (shop domain, API version, fallback flag)
# - Imports api.main:app and starts Uvicorn
# - If import/start fails, prints the full traceback and exits non-zero

import os
import sys
import traceback


def main():
    print("============================================================")
    print("🚀 Starting Popup Subscribe API (api.run)")
    print("PYTHONPATH:", os.getenv("PYTHONPATH"))
    print("CWD       :", os.getcwd())
    print("============================================================", flush=True)

    try:
        # Import here so we can catch any import-time errors
        from api.main import app  # noqa: F401
        from app.config import get_settings

        settings = get_settings()
        print("✅ api.run: import api.main:app OK", flush=True)
        print(f"🛒 Shop      : {settings.SHOPIFY_SHOP_DOMAIN or '(not configured)'}", flush=True)
        print(f"🔖 API ver   : {settings.SHOPIFY_API_VERSION}", flush=True)
        print(f"↩️  Fallback  : {'create on failed update' if settings.FALLBACK_ON_UPDATE_FAILURE else 'off'}", flush=True)

        import uvicorn
        host = os.getenv("HOST", "0.0.0.0")
        port = int(os.getenv("PORT", "8000"))
        print(f"🔈 Uvicorn serving on http://{host}:{port}", flush=True)
        uvicorn.run("api.main:app", host=host, port=port, log_level=settings.LOG_LEVEL.lower())
    except Exception:
        print("❌ api.run: FAILED to start the server", flush=True)
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
