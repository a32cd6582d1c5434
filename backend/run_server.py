"""Simple server runner: FastAPI (provider callbacks) + Telegram bot in one process."""
import uvicorn

from vmtopup.core.config import settings

if __name__ == "__main__":
    print("=" * 50)
    print("  Starting VMTopup Backend")
    print("=" * 50)
    uvicorn.run(
        "vmtopup.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
