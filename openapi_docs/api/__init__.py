"""HTTP host layer: application factory and error handlers."""
