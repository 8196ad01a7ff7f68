import os

from dotenv import load_dotenv

# Load environment variables before the app reads its settings
load_dotenv()

from marketplace.main import app  # noqa: E402,F401

if __name__ == "__main__":
    import uvicorn

    workers = int(os.getenv("UVICORN_WORKERS", "1"))
    uvicorn.run(
        "marketplace.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("UVICORN_RELOAD", "0") == "1",
        workers=workers,
    )
