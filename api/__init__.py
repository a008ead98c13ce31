"""WebSocket gateway and app for the Mafia room server."""
