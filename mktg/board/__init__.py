# Scheduling surface: kanban boards and month calendar with drag-and-drop.
#
# Components:
#   schema.py        - SchedulableItem, per-variant status enums, column mapping
#   calendar_grid.py - Month grid engine (pure)
#   drag.py          - Drag session controller (tap vs. long-press drag)
#   store.py         - Board state store (optimistic moves, rollback)
#   sync.py          - Sync adapters (HTTP backend, in-memory)
#   feed.py          - Inbound data feed from the dashboard backend
#   events.py        - Event bridge wiring gestures to the store
#   config.py        - YAML/env configuration
#   errors.py        - Error taxonomy
