"""Database I/O: connectors, the execution engine and the statement builder."""
