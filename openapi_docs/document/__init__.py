"""Document assembly, rendering and snapshot caching."""
