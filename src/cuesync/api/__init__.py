"""HTTP and WebSocket API of the relay server."""
