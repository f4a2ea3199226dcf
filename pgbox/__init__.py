"""pgbox: run a containerized PostgreSQL instance from a host data directory."""

__version__ = "0.3.0"
