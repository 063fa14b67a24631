# flowboard: auto-save and share-link helpers for the task board
#
# Components:
#   autosave.py  - Debounced save coordinator (DebouncedSaver, SaveStatus)
#   sharing.py   - Filter token codec and shareable URL helpers
#   presets.py   - SQLite store for saved board filter presets
#   client.py    - HTTP client for the boards API
#   config.py    - YAML-backed runtime configuration
#   cli.py       - Command line entry point

__version__ = "0.1.0"
