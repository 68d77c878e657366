"""Run the FastAPI server (dev helper)."""
from __future__ import annotations

import uvicorn

from posture_nudge.core.config import get_settings
from posture_nudge.core.logging_config import setup_logging


def main() -> None:
    s = get_settings()
    setup_logging(s.log_level)
    uvicorn.run("posture_nudge.api.main:app", host=s.api_host, port=s.api_port, reload=s.environment == "dev")


if __name__ == "__main__":
    main()
