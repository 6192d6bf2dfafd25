"""edit Aja backend."""
