from __future__ import annotations

from coachrelay.app.api.app import create_app

app = create_app()
