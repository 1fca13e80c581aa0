"""
agent - Note agent orchestration.

Tool selection, the note tools, two-stage extraction and narration, and the
per-session executor state machine. Depends on domain/ and application/.
Never imports from infrastructure/.
"""
