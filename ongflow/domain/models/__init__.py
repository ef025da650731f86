"""Domain models for projects, tasks, commitments and workflow artifacts."""
