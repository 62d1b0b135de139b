import argparse
import sys
from pathlib import Path

import uvicorn

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from packages.config import API_HOST, API_PORT, RUN_MODE


def main(argv=None):
    parser = argparse.ArgumentParser(description="Serve the running analytics API")
    parser.add_argument("--host", default=API_HOST)
    parser.add_argument("--port", type=int, default=API_PORT)
    args = parser.parse_args(argv)

    # Auto-reload outside prod only
    uvicorn.run(
        "apps.api.main:app",
        host=args.host,
        port=args.port,
        reload=RUN_MODE != "prod",
        app_dir=str(ROOT),
        log_config=None,
    )


if __name__ == "__main__":
    main()
