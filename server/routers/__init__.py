"""HTTP routers for the card table server."""
