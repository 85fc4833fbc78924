"""
Core wiring.

- state.py: AppState passed to every connector
- ports.py: Protocols the operation layer and connectors depend on
"""
