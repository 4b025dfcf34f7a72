"""todosync server: HTTP API, persistence and background jobs."""
