import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

import uvicorn


def main() -> None:
    host = os.environ.get("API_HOST", "0.0.0.0")
    port = int(os.environ.get("API_PORT", "8000"))
    # API_RELOAD=1 restarts on code changes (local development only).
    reload = os.environ.get("API_RELOAD", "0").strip() == "1"
    uvicorn.run("sales_report.api.server:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
