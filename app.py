# app.py  – RAAAG lyrics backend entry point (gunicorn app:app / python app.py)

from __future__ import annotations

from raaag_lyrics import config
from raaag_lyrics.api import create_app

config.configure_logging()
app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=config.PORT)
