"""API routes for the todosync server."""
