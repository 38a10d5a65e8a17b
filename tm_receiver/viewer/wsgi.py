"""
WSGI entrypoint for the archive viewer. In production, point your server here:

    gunicorn 'tm_receiver.viewer.wsgi:app' --bind 0.0.0.0:5000
"""

from __future__ import annotations

import os

from tm_receiver.viewer import create_app

app = create_app()


def main() -> None:
    """Development server (`tm-viewer`)."""
    app.run(host=os.getenv("TM_VIEWER_HOST", "127.0.0.1"), port=int(os.getenv("TM_VIEWER_PORT", "5000")))


if __name__ == "__main__":
    main()
