"""HTTP and WebSocket server for the HermitHome backend.

Build the application with ``hermit.server.entrypoint.create_app``; run it
with ``python -m hermit.server``.
"""
