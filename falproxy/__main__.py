"""Entry point for `python -m falproxy`."""

import uvicorn

from .main import SERVER_HOST, SERVER_PORT


def main():
    uvicorn.run(
        "falproxy.main:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
    )


if __name__ == "__main__":
    main()
