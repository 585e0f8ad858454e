"""Run the API with uvicorn: ``python -m events_api``.

HOST and PORT are read from the environment (or a ``.env`` file);
defaults are ``0.0.0.0`` and ``3000``.
"""
import os

import uvicorn
from dotenv import load_dotenv


def main() -> None:
    load_dotenv()
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "3000"))
    uvicorn.run("events_api.main:app", host=host, port=port, reload=False, log_level="info")


if __name__ == "__main__":
    main()
