# Taskboard: optimistic drag-and-drop move engine for Kanban boards
#
# Components:
#   schema.py        - Data model (Task, Category, BoardState, MoveIntent, Move state machine)
#   index.py         - Container index: task → container lookups, gesture resolution
#   transform.py     - Speculative transform (pure apply_move)
#   store.py         - Reconciliation store: board state + in-flight move registry
#   coordinator.py   - Drag handlers: preview, commit, confirm, rollback
#   backend.py       - Board API clients (HTTP via requests, in-memory)
#   session.py       - Board session: fetch lifecycle and handler wiring
#   notifications.py - Transient user notifications
#   config.py        - YAML configuration and logging setup
#   server.py        - Flask reference board API
