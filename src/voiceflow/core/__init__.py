"""
Core components.

- errors.py: failure taxonomy + user-facing messages
- ports.py: Protocols for persistence and transcript parsing
- state.py: AppState aggregate and its wiring
"""
