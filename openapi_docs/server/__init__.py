"""Routes, access gates and viewer serving the assembled document."""
