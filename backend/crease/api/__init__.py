"""Admin HTTP surface and websocket feed."""
