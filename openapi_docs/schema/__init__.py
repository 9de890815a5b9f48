"""Data shapes, the component table and the schema synthesizer."""
