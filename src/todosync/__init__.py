"""todosync - Todo list backend with bidirectional sync to an external todo API."""

__version__ = "0.1.0"
