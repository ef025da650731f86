"""Application bootstrap: configuration, logging and dependency wiring."""
