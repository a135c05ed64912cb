"""
Demo controllers that exercise routegen end to end.

``routegen/demo/controllers`` is the default ``controllers_dir``, so running
``uvicorn routegen.main:app`` serves these under /api/v1.
"""
