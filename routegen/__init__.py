"""
routegen — metadata-driven controllers for FastAPI.

Declare routes, validation, examples and per-route middleware on controller
methods; routegen registers them, mounts one router per controller and
generates an OpenAPI document from the same metadata.
"""

__version__ = "1.0.0"
