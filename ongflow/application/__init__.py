"""Application layer: ports, services and DTOs."""
