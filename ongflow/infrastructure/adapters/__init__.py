"""Infrastructure adapters: workflow engine, PostgreSQL and locks."""
