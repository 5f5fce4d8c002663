"""Flask front end for the reflective editor."""
from clear_web.web import app, main

__all__ = ["app", "main"]
