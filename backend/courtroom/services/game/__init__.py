"""Game session engine: challenge catalog, fix detection, scheduling,
popup queue, session state machine and result reporting.

These modules hold the play-through logic and do not import Flask. HTTP
routes and socket handlers drive them through ``runner`` which owns the
timers and the persistence/transport collaborators.
"""
