"""DocChat web application."""
