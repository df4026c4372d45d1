"""DocChat HTTP backend."""
