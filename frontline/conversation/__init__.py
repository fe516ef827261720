"""Per-call conversation state and the edge-case state machine."""
