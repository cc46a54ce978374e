"""Infrastructure Layer — network gateway, deadlines, fail-open and logging.

Invariants:
    - Infrastructure never imports from services/
    - Every outbound call runs under a deadline from timeout_controller
"""
