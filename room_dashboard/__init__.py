# Package initializer for the room availability dashboard.

"""
The `room_dashboard` package contains all modules for the room availability dashboard.

Modules:

- ``config``: application settings loaded from environment variables.
- ``models``: Pydantic data models for the upstream feed, listings and map regions.
- ``status``: room status classification and per-floor aggregation.
- ``registry``: the building's rooms per floor and their map regions.
- ``upstream``: client for the upstream planning API.
- ``dashboard``: live dashboard state and its refresh timers.
- ``editor``: the interactive region editor used to author map overlays.
- ``editor_api``: routes exposing the region editor.
- ``pages``: embedded HTML for the dashboard and editor pages.
- ``main``: the FastAPI application definition.

"""
